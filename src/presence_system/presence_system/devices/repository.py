from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import DeviceStatus
from .model import ScannerDevice


class DeviceRepository(Protocol):
    def get_by_device_id(self, device_id: str) -> Optional[ScannerDevice]:
        raise NotImplementedError

    def get_by_pk(self, device_pk: int) -> Optional[ScannerDevice]:
        raise NotImplementedError

    def touch_last_seen(self, device_id: str, *, seen_at: datetime) -> bool:
        raise NotImplementedError

    def mark_heartbeat(self, device_id: str, *, seen_at: datetime) -> bool:
        """Set last_seen and status=active. Returns False if the device is unknown."""

        raise NotImplementedError

    def create(
        self,
        *,
        device_id: str,
        location: str,
        description: Optional[str],
        status: DeviceStatus,
        last_seen: Optional[datetime] = None,
    ) -> int:
        raise NotImplementedError

    def upsert(self, *, device_id: str, location: str, description: Optional[str], seen_at: datetime) -> None:
        """Insert an active device or reactivate and relabel an existing one."""

        raise NotImplementedError

    def list_all(self) -> Sequence[ScannerDevice]:
        raise NotImplementedError

    def update(self, device_pk: int, *, location: str, description: Optional[str], status: DeviceStatus) -> bool:
        raise NotImplementedError

    def delete(self, device_pk: int) -> bool:
        raise NotImplementedError

    def count_active(self, *, seen_since: datetime) -> int:
        raise NotImplementedError
