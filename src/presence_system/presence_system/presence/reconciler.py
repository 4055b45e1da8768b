"""Presence reconciliation.

The attendance event log is authoritative; `employees.is_present` and
`employees.last_seen` are a materialized view of it. An employee is present
when their latest event is "present" and younger than the freshness window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..attendance.model import AttendanceEvent
from ..attendance.repository import AttendanceEventRepository
from ..common.datetime_utils import now_local
from ..core.constants import FRESHNESS_WINDOW
from ..core.enums import AttendanceStatus
from ..core.exceptions import StorageError
from ..employees.repository import EmployeeRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresenceDecision:
    is_present: bool
    last_seen: Optional[datetime]


@dataclass(frozen=True)
class ReconcileResult:
    employee_id: int
    decision: PresenceDecision
    changed: bool


def should_be_present(
    status: Optional[AttendanceStatus],
    timestamp: Optional[datetime],
    now: datetime,
    window: timedelta = FRESHNESS_WINDOW,
) -> bool:
    if status is None or timestamp is None:
        return False
    return status == AttendanceStatus.PRESENT and now - timestamp < window


def decide(latest: Optional[AttendanceEvent], now: datetime, window: timedelta = FRESHNESS_WINDOW) -> PresenceDecision:
    if latest is None:
        return PresenceDecision(is_present=False, last_seen=None)
    return PresenceDecision(
        is_present=should_be_present(latest.status, latest.timestamp, now, window),
        last_seen=latest.timestamp,
    )


class PresenceReconciler:
    """Re-derives one employee's materialized presence from the event log.

    Best-effort: storage failures are logged and swallowed, so a failed
    update never undoes the event write that triggered it. The write is
    skipped when the materialized values already match, which makes
    repeated calls idempotent.
    """

    def __init__(
        self,
        employees: EmployeeRepository,
        events: AttendanceEventRepository,
        *,
        window: timedelta = FRESHNESS_WINDOW,
        clock: Callable[[], datetime] = now_local,
    ):
        self._employees = employees
        self._events = events
        self._window = window
        self._clock = clock

    @property
    def window(self) -> timedelta:
        return self._window

    def reconcile(self, employee_id: int, *, now: datetime | None = None) -> Optional[ReconcileResult]:
        now = now or self._clock()
        try:
            employee = self._employees.get_by_id(employee_id)
            if employee is None:
                logger.warning("Skipping presence reconcile: employee %s no longer exists", employee_id)
                return None

            decision = decide(self._events.get_latest_for_employee(employee_id), now, self._window)
            if employee.is_present == decision.is_present and employee.last_seen == decision.last_seen:
                return ReconcileResult(employee_id=employee_id, decision=decision, changed=False)

            self._employees.update_presence(
                employee_id,
                is_present=decision.is_present,
                last_seen=decision.last_seen,
            )
        except StorageError:
            logger.exception("Failed to update presence for employee %s", employee_id)
            return None

        if employee.is_present != decision.is_present:
            logger.info(
                "Presence of %s changed: %s -> %s",
                employee.code,
                "present" if employee.is_present else "absent",
                "present" if decision.is_present else "absent",
            )
        return ReconcileResult(employee_id=employee_id, decision=decision, changed=True)
