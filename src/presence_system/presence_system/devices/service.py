from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import parse_device_status, require_non_empty
from ..core.constants import UNKNOWN_DEVICE_LOCATION
from ..core.enums import DeviceStatus
from ..core.exceptions import NotFoundError
from .model import ScannerDevice
from .repository import DeviceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeartbeatResult:
    device_id: str
    outcome: str  # "updated" | "created"


@dataclass(frozen=True)
class ScanResult:
    device_id: str
    device_count: int
    processed: int = 0
    message: str = "Beacon heartbeat received. Presence tracking is handled by the mobile path."


class DeviceService:
    """Scanner device registry: heartbeats, scans and admin maintenance."""

    def __init__(self, devices: DeviceRepository):
        self._devices = devices

    def heartbeat(self, device_id: str, *, beacon_uuid: Optional[str] = None, now: datetime | None = None) -> HeartbeatResult:
        """Record a beacon heartbeat, registering unknown devices on the fly.

        The device clock is not trusted (ESP32s report seconds since boot),
        so `now` is always server time.
        """
        device_id = require_non_empty(device_id, "device_id")
        now = now or now_local()

        if self._devices.mark_heartbeat(device_id, seen_at=now):
            return HeartbeatResult(device_id=device_id, outcome="updated")

        description = f"ESP32 Beacon - UUID: {beacon_uuid}" if beacon_uuid else "ESP32 Beacon"
        self._devices.create(
            device_id=device_id,
            location=UNKNOWN_DEVICE_LOCATION,
            description=description,
            status=DeviceStatus.ACTIVE,
            last_seen=now,
        )
        logger.info("Auto-registered scanner device %s from heartbeat", device_id)
        return HeartbeatResult(device_id=device_id, outcome="created")

    def process_scan(self, device_id: str, *, device_count: int = 0, now: datetime | None = None) -> ScanResult:
        device_id = require_non_empty(device_id, "device_id")
        self._devices.touch_last_seen(device_id, seen_at=now or now_local())
        return ScanResult(device_id=device_id, device_count=int(device_count))

    def register(self, device_id: str, *, location: str | None = None, description: str | None = None, now: datetime | None = None) -> ScannerDevice:
        device_id = require_non_empty(device_id, "device_id")
        self._devices.upsert(
            device_id=device_id,
            location=(location or "").strip() or UNKNOWN_DEVICE_LOCATION,
            description=(description or "").strip() or None,
            seen_at=now or now_local(),
        )
        device = self._devices.get_by_device_id(device_id)
        if not device:
            raise NotFoundError(f"Scanner device {device_id} not found")
        return device

    def list_devices(self) -> Sequence[ScannerDevice]:
        return self._devices.list_all()

    def update_device(self, device_pk: int, *, location: str | None = None, description: str | None = None, status=None) -> ScannerDevice:
        current = self._devices.get_by_pk(int(device_pk))
        if not current:
            raise NotFoundError("Scanner device not found")

        new_status = parse_device_status(status) if status is not None else current.status
        self._devices.update(
            current.device_pk,
            location=(location or "").strip() or current.location,
            description=description if description is not None else current.description,
            status=new_status,
        )
        return self._devices.get_by_pk(current.device_pk) or current

    def delete_device(self, device_pk: int) -> None:
        if not self._devices.delete(int(device_pk)):
            raise NotFoundError("Scanner device not found")
