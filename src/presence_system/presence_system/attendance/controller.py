from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..common.http import api_errors, query_int
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LOG_LIMIT
from ..core.exceptions import ValidationError
from .model import AttendanceEvent


def event_to_dict(ev: AttendanceEvent) -> dict:
    return {
        "id": ev.event_id,
        "employee_id": ev.employee_id,
        "status": ev.status.value,
        "source": ev.source,
        "esp32_id": ev.device_id,
        "rssi": ev.signal_strength,
        "timestamp": ev.timestamp.isoformat(),
    }


def register(app: Flask, container: Container) -> None:
    attendance = container.attendance_service

    @app.route("/api/attendance/log", methods=["POST"], endpoint="attendance_log")
    @api_errors
    def log():
        payload = request.get_json(silent=True) or {}
        employee_id = payload.get("employee_id")
        if employee_id is None or payload.get("status") is None:
            raise ValidationError("employee_id and status are required")
        try:
            employee_id = int(employee_id)
        except (TypeError, ValueError):
            raise ValidationError("employee_id must be an integer")

        timestamp = None
        if payload.get("timestamp"):
            try:
                timestamp = parse_iso_datetime(str(payload["timestamp"]))
            except ValueError:
                raise ValidationError("timestamp must be an ISO-8601 datetime")

        event = attendance.log_event(
            employee_id,
            payload["status"],
            payload.get("source") or "unknown",
            payload.get("esp32_id") or payload.get("device_id"),
            payload.get("rssi", payload.get("signal_strength")),
            timestamp=timestamp,
        )
        return jsonify(event_to_dict(event)), 201

    @app.route("/api/attendance/logs", methods=["GET"], endpoint="attendance_logs")
    @api_errors
    def logs():
        on_date = None
        if request.args.get("date"):
            try:
                on_date = parse_iso_date(request.args["date"])
            except ValueError:
                raise ValidationError("date must be YYYY-MM-DD")

        rows = attendance.get_logs(
            employee_id=query_int(request.args, "employee_id"),
            on_date=on_date,
            limit=query_int(request.args, "limit", DEFAULT_LOG_LIMIT),
        )
        return jsonify(
            [
                {**event_to_dict(r.event), "employee_code": r.employee_code, "employee_name": r.employee_name}
                for r in rows
            ]
        )

    @app.route("/api/attendance/history/<employee_code>", methods=["GET"], endpoint="attendance_history")
    @api_errors
    def history(employee_code: str):
        limit = query_int(request.args, "limit", DEFAULT_HISTORY_LIMIT)
        return jsonify([event_to_dict(ev) for ev in attendance.get_history(employee_code, limit)])

    @app.route("/api/attendance/logs/<int:event_id>", methods=["PUT"], endpoint="attendance_log_update")
    @api_errors
    def update(event_id: int):
        payload = request.get_json(silent=True) or {}
        event = attendance.correct_event(event_id, status=payload.get("status"), source=payload.get("source"))
        return jsonify(event_to_dict(event))

    @app.route("/api/attendance/logs/<int:event_id>", methods=["DELETE"], endpoint="attendance_log_delete")
    @api_errors
    def delete(event_id: int):
        attendance.delete_event(event_id)
        return jsonify({"success": True, "message": "Attendance log deleted successfully"})
