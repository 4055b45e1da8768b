from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee, EmployeePresenceRow
from .repository import EmployeeRepository


def _row_to_employee(row: dict) -> Employee:
    return Employee(
        employee_id=int(row["id"]),
        code=row["employee_code"],
        name=row["name"],
        email=row.get("email"),
        department_id=row.get("department_id"),
        is_present=bool(row.get("is_present")),
        last_seen=row.get("last_seen"),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, employee_code, name, email, department_id, is_present, last_seen
                FROM employees
                WHERE id=%s
                """,
                (int(employee_id),),
            )
            row = fetchone(cur)
            return _row_to_employee(row) if row else None

    def get_by_code(self, code: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, employee_code, name, email, department_id, is_present, last_seen
                FROM employees
                WHERE employee_code=%s
                """,
                (code,),
            )
            row = fetchone(cur)
            return _row_to_employee(row) if row else None

    def update_presence(self, employee_id: int, *, is_present: bool, last_seen: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE employees SET is_present=%s, last_seen=%s WHERE id=%s",
                (1 if is_present else 0, last_seen, int(employee_id)),
            )
            return cur.rowcount > 0

    def update_presence_if_not_newer(
        self,
        employee_id: int,
        *,
        is_present: bool,
        last_seen: Optional[datetime],
        observed_last_seen: Optional[datetime],
    ) -> bool:
        # <=> is null-safe, so an observed NULL only matches a still-NULL row.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employees
                SET is_present=%s, last_seen=%s
                WHERE id=%s AND (last_seen <=> %s OR last_seen < %s)
                """,
                (1 if is_present else 0, last_seen, int(employee_id), observed_last_seen, observed_last_seen),
            )
            return cur.rowcount > 0

    def list_with_last_event(self, *, after_id: int = 0, limit: int = 500) -> Sequence[EmployeePresenceRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT e.id, e.employee_code, e.name, e.is_present, e.last_seen,
                       ev.status AS last_status,
                       ev.timestamp AS last_event_at,
                       ev.device_id AS last_device_id
                FROM (
                    SELECT id, employee_code, name, is_present, last_seen
                    FROM employees
                    WHERE id > %s
                    ORDER BY id
                    LIMIT %s
                ) e
                LEFT JOIN (
                    SELECT employee_id, status, timestamp, device_id,
                           ROW_NUMBER() OVER (PARTITION BY employee_id ORDER BY timestamp DESC, id DESC) AS rn
                    FROM attendance_events
                    WHERE employee_id IN (
                        SELECT id FROM (
                            SELECT id FROM employees WHERE id > %s ORDER BY id LIMIT %s
                        ) batch
                    )
                ) ev ON ev.employee_id = e.id AND ev.rn = 1
                ORDER BY e.id
                """,
                (int(after_id), int(limit), int(after_id), int(limit)),
            )
            rows = fetchall(cur)
            return [
                EmployeePresenceRow(
                    employee_id=int(r["id"]),
                    code=r["employee_code"],
                    name=r["name"],
                    is_present=bool(r.get("is_present")),
                    last_seen=r.get("last_seen"),
                    last_status=AttendanceStatus(r["last_status"]) if r.get("last_status") else None,
                    last_event_at=r.get("last_event_at"),
                    last_device_id=r.get("last_device_id"),
                )
                for r in rows
            ]

    def presence_counts(self) -> tuple[int, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(CASE WHEN is_present = 1 THEN 1 ELSE 0 END), 0) AS present
                FROM employees
                """
            )
            row = fetchone(cur) or {}
            return int(row.get("total") or 0), int(row.get("present") or 0)
