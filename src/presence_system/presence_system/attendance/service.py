from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local, to_storage_precision
from ..common.validators import parse_attendance_status, require_non_empty
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LOG_LIMIT, DEFAULT_SOURCE, NO_DEVICE_SENTINEL
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..devices.repository import DeviceRepository
from ..employees.repository import EmployeeRepository
from ..presence.reconciler import PresenceReconciler
from .history import recent_status_changes
from .model import AttendanceEvent, AttendanceLogRow
from .repository import AttendanceEventRepository


def normalize_device_id(device_id: Optional[str]) -> Optional[str]:
    """Map "no device" spellings (None, "", "none") to None."""
    if device_id is None:
        return None
    v = str(device_id).strip()
    if not v or v.lower() == NO_DEVICE_SENTINEL:
        return None
    return v


def parse_signal_strength(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("signal_strength must be an integer (dBm)")


class AttendanceLogService:
    """Attendance event ledger: direct logging, reads and admin corrections.

    Every write is followed by a best-effort presence reconcile for the
    affected employee. The event write itself is authoritative, so its
    storage errors propagate to the caller.
    """

    def __init__(
        self,
        events: AttendanceEventRepository,
        employees: EmployeeRepository,
        devices: DeviceRepository,
        reconciler: PresenceReconciler,
    ):
        self._events = events
        self._employees = employees
        self._devices = devices
        self._reconciler = reconciler

    def log_event(
        self,
        employee_id: int,
        status,
        source: str = DEFAULT_SOURCE,
        device_id: Optional[str] = None,
        signal_strength=None,
        *,
        timestamp: datetime | None = None,
        now: datetime | None = None,
    ) -> AttendanceEvent:
        """Append an event with a caller-supplied status (no device corroboration)."""
        parsed_status = parse_attendance_status(status)
        strength = parse_signal_strength(signal_strength)
        device_id = normalize_device_id(device_id)

        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError("Employee not found")

        if device_id is not None and not self._devices.get_by_device_id(device_id):
            raise NotFoundError(f"Scanner device {device_id} not found")

        now = now or now_local()
        event = self._events.append(
            employee_id=employee.employee_id,
            status=parsed_status,
            source=(source or "").strip() or DEFAULT_SOURCE,
            timestamp=to_storage_precision(timestamp or now),
            device_id=device_id,
            signal_strength=strength,
        )

        self._reconciler.reconcile(employee.employee_id, now=now)
        return event

    def get_logs(
        self,
        *,
        employee_id: Optional[int] = None,
        on_date: Optional[date] = None,
        limit: int = DEFAULT_LOG_LIMIT,
    ) -> Sequence[AttendanceLogRow]:
        return self._events.list_recent(employee_id=employee_id, on_date=on_date, limit=max(int(limit), 0))

    def get_employee_events(
        self,
        employee_id: int,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[AttendanceEvent]:
        if start and end and end < start:
            raise ValidationError("end must not be before start")
        return self._events.list_for_employee(int(employee_id), start=start, end=end)

    def get_history(self, employee_code: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[AttendanceEvent]:
        """Most recent status changes for an employee, newest first."""
        code = require_non_empty(employee_code, "employee_code")
        employee = self._employees.get_by_code(code)
        if not employee:
            raise NotFoundError(f"Employee {code} not found")

        events = self._events.list_for_employee(employee.employee_id)
        return recent_status_changes(events, int(limit))

    def correct_event(
        self,
        event_id: int,
        *,
        status=None,
        source: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceEvent:
        """Administrative override of an existing event."""
        current = self._events.get_by_id(int(event_id))
        if not current:
            raise NotFoundError("Attendance event not found")

        new_status: AttendanceStatus = parse_attendance_status(status) if status is not None else current.status
        new_source = (source or "").strip() or current.source
        if new_status == current.status and new_source == current.source:
            return current

        self._events.update_event(current.event_id, status=new_status, source=new_source)
        self._reconciler.reconcile(current.employee_id, now=now)
        return self._events.get_by_id(current.event_id) or current

    def delete_event(self, event_id: int, *, now: datetime | None = None) -> None:
        current = self._events.get_by_id(int(event_id))
        if not current or not self._events.delete_event(current.event_id):
            raise NotFoundError("Attendance event not found")
        self._reconciler.reconcile(current.employee_id, now=now)
