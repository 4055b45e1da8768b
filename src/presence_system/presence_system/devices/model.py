from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import DeviceStatus


@dataclass(frozen=True)
class ScannerDevice:
    """Fixed ESP32 beacon (or logical scanner) that corroborates presence."""

    device_pk: int
    device_id: str
    location: str
    status: DeviceStatus
    description: Optional[str] = None
    last_seen: Optional[datetime] = None
    created_at: Optional[datetime] = None
