from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..common.http import api_errors, query_int
from ..container import Container
from ..core.constants import MOBILE_SOURCE
from ..core.exceptions import ValidationError
from .service import PresenceReport


logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    presence = container.presence_service
    sweeper = container.presence_sweeper

    @app.route("/api/presence/report", methods=["POST"], endpoint="presence_report")
    @api_errors
    def report():
        payload = request.get_json(silent=True) or {}
        report = PresenceReport.from_payload(payload, default_source=MOBILE_SOURCE)
        result = presence.report_presence(report)
        return jsonify({"success": True, "message": "Presence reported successfully", "data": result.to_dict()})

    @app.route("/api/presence/status/<employee_code>", methods=["GET"], endpoint="presence_status")
    @api_errors
    def status(employee_code: str):
        return jsonify(presence.get_presence_status(employee_code).to_dict())

    @app.route("/api/presence/monthly/<employee_code>", methods=["GET"], endpoint="presence_monthly")
    @api_errors
    def monthly(employee_code: str):
        year = query_int(request.args, "year")
        month = query_int(request.args, "month")
        if year is None or month is None:
            raise ValidationError("year and month are required")
        days = presence.get_monthly_presence(employee_code, year, month)
        return jsonify([d.to_dict() for d in days])

    @app.route("/api/presence/overview", methods=["GET"], endpoint="presence_overview")
    @api_errors
    def overview():
        return jsonify(presence.get_overview().to_dict())

    @app.route("/api/presence-background/status", methods=["GET"], endpoint="presence_background_status")
    @api_errors
    def background_status():
        return jsonify({"success": True, "data": sweeper.get_status().to_dict()})

    @app.route("/api/presence-background/trigger", methods=["POST"], endpoint="presence_background_trigger")
    @api_errors
    def background_trigger():
        logger.info("Manual presence sweep triggered")
        result = sweeper.run_once()
        return jsonify({"success": result.error is None, "message": "Presence update completed", "data": result.to_dict()})

    @app.route("/api/presence-background/start", methods=["POST"], endpoint="presence_background_start")
    @api_errors
    def background_start():
        started = sweeper.start()
        message = "Background service started" if started else "Background service is already running"
        return jsonify({"success": True, "message": message})

    @app.route("/api/presence-background/stop", methods=["POST"], endpoint="presence_background_stop")
    @api_errors
    def background_stop():
        stopped = sweeper.stop()
        message = "Background service stopped" if stopped else "Background service is not running"
        return jsonify({"success": True, "message": message})
