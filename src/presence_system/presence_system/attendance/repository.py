from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceEvent, AttendanceLogRow


class AttendanceEventRepository(Protocol):
    """Append-only ledger of attendance events."""

    def append(
        self,
        *,
        employee_id: int,
        status: AttendanceStatus,
        source: str,
        timestamp: datetime,
        device_id: Optional[str] = None,
        signal_strength: Optional[int] = None,
    ) -> AttendanceEvent:
        raise NotImplementedError

    def get_by_id(self, event_id: int) -> Optional[AttendanceEvent]:
        raise NotImplementedError

    def get_latest_for_employee(self, employee_id: int) -> Optional[AttendanceEvent]:
        raise NotImplementedError

    def list_for_employee(
        self,
        employee_id: int,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[AttendanceEvent]:
        """Events in [start, end), ascending by (timestamp, id)."""

        raise NotImplementedError

    def list_recent(
        self,
        *,
        employee_id: Optional[int] = None,
        on_date: Optional[date] = None,
        limit: int = 100,
    ) -> Sequence[AttendanceLogRow]:
        """Newest first."""

        raise NotImplementedError

    def update_event(self, event_id: int, *, status: AttendanceStatus, source: str) -> bool:
        """Admin-only override; not part of normal ingestion."""

        raise NotImplementedError

    def delete_event(self, event_id: int) -> bool:
        raise NotImplementedError
