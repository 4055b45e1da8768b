from __future__ import annotations

from ..core.enums import AttendanceStatus, DeviceStatus
from ..core.exceptions import InvalidStatusError, ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def parse_attendance_status(value) -> AttendanceStatus:
    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in AttendanceStatus)
        raise InvalidStatusError(f"Invalid status {value!r} (expected one of: {allowed})")


def parse_device_status(value) -> DeviceStatus:
    if isinstance(value, DeviceStatus):
        return value
    try:
        return DeviceStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in DeviceStatus)
        raise InvalidStatusError(f"Invalid device status {value!r} (expected one of: {allowed})")


def require_month(year: int, month: int) -> tuple[int, int]:
    try:
        y, m = int(year), int(month)
    except (TypeError, ValueError):
        raise ValidationError("year and month must be integers")
    if not 1 <= m <= 12:
        raise ValidationError("month must be between 1 and 12")
    if y < 1970:
        raise ValidationError("year is out of range")
    return y, m
