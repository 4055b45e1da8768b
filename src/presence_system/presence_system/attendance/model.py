from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceEvent:
    """Domain entity: one immutable, timestamped status record for an employee.

    Events are ordered by `timestamp`; ties are broken by `event_id`
    (insertion order).
    """

    event_id: int
    employee_id: int
    status: AttendanceStatus
    source: str
    timestamp: datetime
    device_id: Optional[str] = None
    signal_strength: Optional[int] = None

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return self.timestamp, self.event_id


@dataclass(frozen=True)
class AttendanceLogRow:
    """Read-model for log listings (event joined with employee identity)."""

    event: AttendanceEvent
    employee_code: Optional[str]
    employee_name: Optional[str]
