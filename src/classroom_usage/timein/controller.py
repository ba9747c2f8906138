from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_body, json_errors
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.event_log_service

    def _date_arg(name: str):
        value = request.args.get(name)
        if not value:
            return None
        try:
            return parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{name} must be YYYY-MM-DD")

    @app.route("/api/timein", methods=["POST"], endpoint="timein_create")
    @json_errors
    def timein_create():
        body = json_body()
        record = service.record_time_in(
            body.get("subject_ref"),
            body.get("location_ref"),
            instructor_name=body.get("instructor_name"),
            remarks=body.get("remarks"),
        )
        return jsonify({"message": "Time-in recorded successfully", "record": record.to_dict()}), 201

    @app.route("/api/timein", methods=["GET"], endpoint="timein_list")
    @json_errors
    def timein_list():
        day = _date_arg("date")
        records = service.list_records(
            start=day or _date_arg("start"),
            end=day or _date_arg("end"),
            status=request.args.get("status"),
            location_ref=request.args.get("location_ref"),
            include_archived=request.args.get("include_archived") in {"1", "true"},
            limit=request.args.get("limit"),
        )
        return jsonify([r.to_dict() for r in records])

    @app.route("/api/timein/<record_id>", methods=["GET"], endpoint="timein_get")
    @json_errors
    def timein_get(record_id: str):
        return jsonify(service.get(record_id).to_dict())

    @app.route("/api/timein/<record_id>/timeout", methods=["PUT"], endpoint="timein_timeout")
    @json_errors
    def timein_timeout(record_id: str):
        record = service.record_time_out(record_id)
        return jsonify({"message": "Time-out recorded successfully", "record": record.to_dict()})

    @app.route("/api/timein/<record_id>/verify", methods=["PUT"], endpoint="timein_verify")
    @json_errors
    def timein_verify(record_id: str):
        body = json_body()
        record = service.verify(
            record_id,
            body.get("version"),
            body.get("status"),
            reviewer=body.get("verified_by"),
            remarks=body.get("remarks"),
        )
        return jsonify({"message": f"Time-in record {record.status.value} successfully", "record": record.to_dict()})
