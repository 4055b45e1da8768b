from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class Employee:
    """Domain entity: Employee.

    `code` is the human-assigned external code (e.g. "EMP041"); `employee_id`
    is the internal numeric id. `is_present` and `last_seen` are derived
    fields owned by the presence reconciler and sweeper.
    """

    employee_id: int
    code: str
    name: str
    email: Optional[str]
    department_id: Optional[int]
    is_present: bool = False
    last_seen: Optional[datetime] = None


@dataclass(frozen=True)
class EmployeePresenceRow:
    """Read-model for the sweep: one employee joined with its latest event."""

    employee_id: int
    code: str
    name: str
    is_present: bool
    last_seen: Optional[datetime]
    last_status: Optional[AttendanceStatus] = None
    last_event_at: Optional[datetime] = None
    last_device_id: Optional[str] = None
