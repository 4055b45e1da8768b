from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Employee, EmployeePresenceRow


class EmployeeRepository(Protocol):
    """Repository interface for employees.

    Note (DIP): services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[Employee]:
        raise NotImplementedError

    def update_presence(self, employee_id: int, *, is_present: bool, last_seen: Optional[datetime]) -> bool:
        raise NotImplementedError

    def update_presence_if_not_newer(
        self,
        employee_id: int,
        *,
        is_present: bool,
        last_seen: Optional[datetime],
        observed_last_seen: Optional[datetime],
    ) -> bool:
        """Write only if the stored last_seen has not moved past `observed_last_seen`.

        Returns False when a newer write got there first (or the employee is gone).
        """

        raise NotImplementedError

    def list_with_last_event(self, *, after_id: int = 0, limit: int = 500) -> Sequence[EmployeePresenceRow]:
        """Employees with id > after_id, ordered by id, each with its latest event."""

        raise NotImplementedError

    def presence_counts(self) -> tuple[int, int]:
        """Return (total employees, employees materialized as present)."""

        raise NotImplementedError
