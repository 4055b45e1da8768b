from __future__ import annotations

from datetime import timedelta

import pytest

from src.presence_system.presence_system.core.enums import DeviceStatus
from src.presence_system.presence_system.core.exceptions import InvalidStatusError, NotFoundError, ValidationError
from src.presence_system.presence_system.devices.service import DeviceService


@pytest.fixture
def service(devices):
    return DeviceService(devices)


def test_heartbeat_updates_known_device(devices, service, fixed_now):
    devices.add("ESP32-LOBBY", status=DeviceStatus.INACTIVE, last_seen=fixed_now - timedelta(days=1))

    result = service.heartbeat("ESP32-LOBBY", now=fixed_now)

    assert result.outcome == "updated"
    device = devices.get_by_device_id("ESP32-LOBBY")
    assert device.last_seen == fixed_now
    assert device.status == DeviceStatus.ACTIVE
    assert len(devices.list_all()) == 1


def test_heartbeat_registers_unknown_device(devices, service, fixed_now):
    result = service.heartbeat("ESP32-NEW", beacon_uuid="1234-abcd", now=fixed_now)

    assert result.outcome == "created"
    device = devices.get_by_device_id("ESP32-NEW")
    assert device.location == "Unknown Location"
    assert device.description == "ESP32 Beacon - UUID: 1234-abcd"
    assert device.status == DeviceStatus.ACTIVE
    assert device.last_seen == fixed_now


def test_heartbeat_requires_device_id(service):
    with pytest.raises(ValidationError):
        service.heartbeat("  ")


def test_scan_touches_device(devices, service, fixed_now):
    devices.add("ESP32-LOBBY")

    result = service.process_scan("ESP32-LOBBY", device_count=4, now=fixed_now)

    assert result.device_count == 4
    assert result.processed == 0
    assert devices.get_by_device_id("ESP32-LOBBY").last_seen == fixed_now


def test_register_defaults_location(devices, service, fixed_now):
    device = service.register("ESP32-FLOOR2", now=fixed_now)

    assert device.location == "Unknown Location"
    assert device.description is None


def test_register_existing_device_updates_it(devices, service, fixed_now):
    devices.add("ESP32-FLOOR2", location="Old spot", status=DeviceStatus.MAINTENANCE)

    device = service.register("ESP32-FLOOR2", location="Floor 2", description="stairs", now=fixed_now)

    assert device.location == "Floor 2"
    assert device.status == DeviceStatus.ACTIVE
    assert len(devices.list_all()) == 1


def test_update_device(devices, service):
    pk = devices.add("ESP32-LOBBY").device_pk

    device = service.update_device(pk, status="maintenance")

    assert device.status == DeviceStatus.MAINTENANCE
    assert device.location == "Lobby"


def test_update_device_invalid_status(devices, service):
    pk = devices.add("ESP32-LOBBY").device_pk
    with pytest.raises(InvalidStatusError):
        service.update_device(pk, status="broken")


def test_update_and_delete_missing_device(service):
    with pytest.raises(NotFoundError):
        service.update_device(99, location="x")
    with pytest.raises(NotFoundError):
        service.delete_device(99)


def test_delete_device(devices, service):
    pk = devices.add("ESP32-LOBBY").device_pk

    service.delete_device(pk)

    assert service.list_devices() == []
