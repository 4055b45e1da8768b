from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Status carried by an attendance event."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


class DeviceStatus(str, Enum):
    """Lifecycle status of a scanner device."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
