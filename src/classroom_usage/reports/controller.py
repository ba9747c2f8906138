from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_errors
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.report_service

    def _date_arg(name: str):
        value = request.args.get(name)
        if not value:
            return None
        try:
            return parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{name} must be YYYY-MM-DD")

    @app.route("/api/reports", methods=["GET"], endpoint="reports_list")
    @json_errors
    def reports_list():
        reports = service.list(
            kind=request.args.get("kind"),
            status=request.args.get("status"),
            start=_date_arg("start"),
            end=_date_arg("end"),
            limit=request.args.get("limit"),
        )
        return jsonify([r.to_dict() for r in reports])

    @app.route("/api/reports/<report_id>", methods=["GET"], endpoint="reports_get")
    @json_errors
    def reports_get(report_id: str):
        return jsonify(service.get(report_id).to_dict())
