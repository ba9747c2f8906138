from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_body, json_errors
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    scheduler = container.scheduler

    @app.route("/api/reports/archive-daily", methods=["POST"], endpoint="archive_daily")
    @json_errors
    def archive_daily():
        body = json_body()
        target = None
        if body.get("date"):
            try:
                target = parse_iso_date(str(body["date"]))
            except ValueError:
                raise ValidationError("date must be YYYY-MM-DD")

        run = scheduler.run_now(target=target, actor=body.get("actor") or None)
        if run.failed:
            return jsonify({"message": "Archival finished with failures", "run": run.to_dict()}), 500
        if not run.ok:
            return jsonify({"message": "Archival left records unreported", "run": run.to_dict()}), 409
        return jsonify({"message": "Daily archive completed successfully", "run": run.to_dict()})

    @app.route("/api/archival/status", methods=["GET"], endpoint="archival_status")
    @json_errors
    def archival_status():
        return jsonify(scheduler.status())
