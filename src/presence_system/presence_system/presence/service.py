from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..attendance.model import AttendanceEvent
from ..attendance.repository import AttendanceEventRepository
from ..attendance.service import AttendanceLogService, normalize_device_id, parse_signal_strength
from ..common.datetime_utils import month_bounds, now_local, parse_iso_datetime
from ..common.validators import require_month, require_non_empty
from ..core.constants import DEFAULT_SOURCE, FRESHNESS_WINDOW
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..devices.repository import DeviceRepository
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .aggregator import DailyPresence, aggregate_presence
from .reconciler import should_be_present

# Scanners that have not sent a heartbeat within this period are not counted as active.
ACTIVE_SCANNER_WINDOW = timedelta(hours=1)


@dataclass(frozen=True)
class PresenceReport:
    """A presence signal from the mobile app (or any scanner-aware client)."""

    employee_code: str
    device_id: Optional[str] = None
    signal_strength: Optional[int] = None
    timestamp: Optional[datetime] = None
    source: str = DEFAULT_SOURCE

    @classmethod
    def from_payload(cls, payload: dict, *, default_source: str = DEFAULT_SOURCE) -> "PresenceReport":
        """Build from a JSON body.

        Accepts the mobile app's field names (`employee_id` carrying the
        external code, `esp32_id`, `rssi`) as well as the canonical ones.
        """
        code = payload.get("employee_code") or payload.get("employee_id")
        device_id = payload.get("device_id", payload.get("esp32_id"))
        strength = payload.get("signal_strength", payload.get("rssi"))
        raw_ts = payload.get("timestamp")

        timestamp = None
        if raw_ts:
            try:
                timestamp = parse_iso_datetime(str(raw_ts))
            except ValueError:
                raise ValidationError("timestamp must be an ISO-8601 datetime")

        return cls(
            employee_code=require_non_empty(str(code or ""), "employee_code"),
            device_id=normalize_device_id(device_id),
            signal_strength=parse_signal_strength(strength),
            timestamp=timestamp,
            source=(payload.get("source") or "").strip() or default_source,
        )


@dataclass(frozen=True)
class PresenceReportResult:
    employee_code: str
    status: AttendanceStatus
    event: AttendanceEvent
    device_id: Optional[str]
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_code,
            "esp32_id": self.device_id,
            "status": self.status.value,
            "attendance_event": {
                "id": self.event.event_id,
                "employee_id": self.event.employee_id,
                "status": self.event.status.value,
                "source": self.event.source,
                "timestamp": self.event.timestamp.isoformat(),
            },
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class PresenceStatus:
    employee_code: str
    is_present: bool
    last_seen: Optional[datetime]
    device_id: Optional[str]

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_code,
            "is_present": self.is_present,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
            "esp32_id": self.device_id,
        }


@dataclass(frozen=True)
class PresenceOverview:
    total_employees: int
    present_employees: int
    active_scanners: int

    def to_dict(self) -> dict:
        return {
            "total_employees": self.total_employees,
            "present_employees": self.present_employees,
            "active_scanners": self.active_scanners,
        }


class PresenceService:
    """Presence ingestion and presence-oriented reads."""

    def __init__(
        self,
        employees: EmployeeRepository,
        devices: DeviceRepository,
        events: AttendanceEventRepository,
        attendance: AttendanceLogService,
        *,
        window: timedelta = FRESHNESS_WINDOW,
        clock: Callable[[], datetime] = now_local,
    ):
        self._employees = employees
        self._devices = devices
        self._events = events
        self._attendance = attendance
        self._window = window
        self._clock = clock

    def _require_employee(self, employee_code: str) -> Employee:
        code = require_non_empty(employee_code, "employee_code")
        employee = self._employees.get_by_code(code)
        if not employee:
            raise NotFoundError(f"Employee {code} not found")
        return employee

    def report_presence(self, report: PresenceReport, *, now: datetime | None = None) -> PresenceReportResult:
        """Classify and record a presence report.

        Being near a known fixed scanner is the proof of presence: a report
        without a resolvable device is recorded as "absent", whatever the
        client intended.
        """
        employee = self._require_employee(report.employee_code)

        device_id = normalize_device_id(report.device_id)
        device = None
        if device_id is not None:
            device = self._devices.get_by_device_id(device_id)
            if not device:
                raise NotFoundError(f"Scanner device {device_id} not found")

        status = AttendanceStatus.PRESENT if device is not None else AttendanceStatus.ABSENT
        now = now or self._clock()
        timestamp = report.timestamp or now

        event = self._attendance.log_event(
            employee.employee_id,
            status,
            report.source,
            device.device_id if device else None,
            report.signal_strength,
            timestamp=timestamp,
            now=now,
        )

        return PresenceReportResult(
            employee_code=employee.code,
            status=status,
            event=event,
            device_id=device.device_id if device else None,
            timestamp=timestamp,
        )

    def get_presence_status(self, employee_code: str, *, now: datetime | None = None) -> PresenceStatus:
        """Live presence from the latest event, independent of the materialized fields."""
        employee = self._require_employee(employee_code)
        latest = self._events.get_latest_for_employee(employee.employee_id)
        now = now or self._clock()

        if latest is None:
            return PresenceStatus(employee_code=employee.code, is_present=False, last_seen=None, device_id=None)

        return PresenceStatus(
            employee_code=employee.code,
            is_present=should_be_present(latest.status, latest.timestamp, now, self._window),
            last_seen=latest.timestamp,
            device_id=latest.device_id,
        )

    def get_monthly_presence(self, employee_code: str, year: int, month: int, *, now: datetime | None = None) -> list[DailyPresence]:
        year, month = require_month(year, month)
        employee = self._require_employee(employee_code)

        start, end = month_bounds(year, month)
        events = self._events.list_for_employee(employee.employee_id, start=start, end=end)
        if not events:
            return []
        return aggregate_presence(events, now=now or self._clock())

    def get_overview(self, *, now: datetime | None = None) -> PresenceOverview:
        now = now or self._clock()
        total, present = self._employees.presence_counts()
        scanners = self._devices.count_active(seen_since=now - ACTIVE_SCANNER_WINDOW)
        return PresenceOverview(total_employees=total, present_employees=present, active_scanners=scanners)
