from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import api_errors
from ..container import Container
from ..core.exceptions import ValidationError
from .model import ScannerDevice


def device_to_dict(d: ScannerDevice) -> dict:
    return {
        "id": d.device_pk,
        "esp32_id": d.device_id,
        "location": d.location,
        "description": d.description,
        "status": d.status.value,
        "last_seen": d.last_seen.isoformat() if d.last_seen else None,
        "created_at": d.created_at.isoformat() if d.created_at else None,
    }


def register(app: Flask, container: Container) -> None:
    devices = container.device_service

    def _device_id(payload: dict) -> str:
        device_id = payload.get("esp32_id") or payload.get("device_id")
        if not device_id:
            raise ValidationError("esp32_id is required")
        return str(device_id)

    @app.route("/api/esp32/heartbeat", methods=["POST"], endpoint="esp32_heartbeat")
    @api_errors
    def heartbeat():
        payload = request.get_json(silent=True) or {}
        result = devices.heartbeat(_device_id(payload), beacon_uuid=payload.get("beacon_uuid"))
        return jsonify(
            {
                "success": True,
                "message": "Beacon heartbeat received",
                "device": {"esp32_id": result.device_id, "status": result.outcome},
            }
        )

    @app.route("/api/esp32/scan", methods=["POST"], endpoint="esp32_scan")
    @api_errors
    def scan():
        payload = request.get_json(silent=True) or {}
        scanned = payload.get("devices")
        if scanned is None:
            raise ValidationError("devices is required")
        result = devices.process_scan(_device_id(payload), device_count=len(scanned))
        return jsonify({"success": True, "processed": result.processed, "attendance_events": [], "message": result.message})

    @app.route("/api/esp32/devices", methods=["GET"], endpoint="esp32_devices")
    @api_errors
    def list_devices():
        return jsonify([device_to_dict(d) for d in devices.list_devices()])

    @app.route("/api/esp32/devices", methods=["POST"], endpoint="esp32_register")
    @api_errors
    def register_device():
        payload = request.get_json(silent=True) or {}
        device = devices.register(
            _device_id(payload),
            location=payload.get("location"),
            description=payload.get("description"),
        )
        return jsonify(device_to_dict(device)), 201

    @app.route("/api/esp32/devices/<int:device_pk>", methods=["PUT"], endpoint="esp32_update")
    @api_errors
    def update_device(device_pk: int):
        payload = request.get_json(silent=True) or {}
        device = devices.update_device(
            device_pk,
            location=payload.get("location"),
            description=payload.get("description"),
            status=payload.get("status"),
        )
        return jsonify(device_to_dict(device))

    @app.route("/api/esp32/devices/<int:device_pk>", methods=["DELETE"], endpoint="esp32_delete")
    @api_errors
    def delete_device(device_pk: int):
        devices.delete_device(device_pk)
        return jsonify({"message": "ESP32 device deleted successfully"})
