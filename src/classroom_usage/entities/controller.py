from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import json_body, json_errors
from ..core.enums import EntityKind
from ..container import Container

COLLECTIONS = {
    "classrooms": EntityKind.CLASSROOM,
    "users": EntityKind.USER,
    "instructors": EntityKind.INSTRUCTOR,
    "usage": EntityKind.USAGE,
}

_ANY = "any(" + ", ".join(COLLECTIONS) + ")"


def register(app: Flask, container: Container) -> None:
    service = container.entity_service

    @app.route(f"/api/<{_ANY}:collection>", methods=["GET"], endpoint="entities_list")
    @json_errors
    def entities_list(collection: str):
        limit = request.args.get("limit")
        items = service.list(COLLECTIONS[collection], limit=limit)
        return jsonify([e.to_dict() for e in items])

    @app.route(f"/api/<{_ANY}:collection>", methods=["POST"], endpoint="entities_create")
    @json_errors
    def entities_create(collection: str):
        entity = service.create(COLLECTIONS[collection], json_body())
        return jsonify(entity.to_dict()), 201

    @app.route(f"/api/<{_ANY}:collection>/<entity_id>", methods=["GET"], endpoint="entities_get")
    @json_errors
    def entities_get(collection: str, entity_id: str):
        return jsonify(service.get(COLLECTIONS[collection], entity_id).to_dict())

    @app.route(f"/api/<{_ANY}:collection>/<entity_id>", methods=["PUT"], endpoint="entities_update")
    @json_errors
    def entities_update(collection: str, entity_id: str):
        body = json_body()
        version = body.pop("version", None)
        entity = service.update(COLLECTIONS[collection], entity_id, version, body)
        return jsonify(entity.to_dict())

    @app.route(f"/api/<{_ANY}:collection>/<entity_id>", methods=["DELETE"], endpoint="entities_delete")
    @json_errors
    def entities_delete(collection: str, entity_id: str):
        version = json_body().get("version", request.args.get("version"))
        kind = COLLECTIONS[collection]
        service.delete(kind, entity_id, version)
        return jsonify({"message": f"{kind.label} deleted", "id": entity_id})
