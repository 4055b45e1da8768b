from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import to_storage_precision
from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceEvent, AttendanceLogRow
from .repository import AttendanceEventRepository

_COLUMNS = "id, employee_id, status, source, device_id, signal_strength, timestamp"


def _row_to_event(r: dict) -> AttendanceEvent:
    strength = r.get("signal_strength")
    return AttendanceEvent(
        event_id=int(r["id"]),
        employee_id=int(r["employee_id"]),
        status=AttendanceStatus(r["status"]),
        source=r.get("source") or "unknown",
        timestamp=r["timestamp"],
        device_id=r.get("device_id"),
        signal_strength=int(strength) if strength is not None else None,
    )


class MySQLAttendanceRepository(AttendanceEventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        timestamp = to_storage_precision(timestamp)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_events(employee_id, status, source, device_id, signal_strength, timestamp)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(employee_id), status.value, source, device_id, signal_strength, timestamp),
            )
            event_id = int(cur.lastrowid)

        return AttendanceEvent(
            event_id=event_id,
            employee_id=int(employee_id),
            status=status,
            source=source,
            timestamp=timestamp,
            device_id=device_id,
            signal_strength=signal_strength,
        )

    def get_by_id(self, event_id: int) -> Optional[AttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_events WHERE id=%s", (int(event_id),))
            r = fetchone(cur)
            return _row_to_event(r) if r else None

    def get_latest_for_employee(self, employee_id: int) -> Optional[AttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_events
                WHERE employee_id=%s
                ORDER BY timestamp DESC, id DESC
                LIMIT 1
                """,
                (int(employee_id),),
            )
            r = fetchone(cur)
            return _row_to_event(r) if r else None

    def list_for_employee(
        self,
        employee_id: int,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[AttendanceEvent]:
        clauses = ["employee_id=%s"]
        params: list[object] = [int(employee_id)]

        if start is not None:
            clauses.append("timestamp >= %s")
            params.append(start)
        if end is not None:
            clauses.append("timestamp < %s")
            params.append(end)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_events
                WHERE {where}
                ORDER BY timestamp ASC, id ASC
                """,
                tuple(params),
            )
            return [_row_to_event(r) for r in fetchall(cur)]

    def list_recent(
        self,
        *,
        employee_id: Optional[int] = None,
        on_date: Optional[date] = None,
        limit: int = 100,
    ) -> Sequence[AttendanceLogRow]:
        clauses: list[str] = []
        params: list[object] = []

        if employee_id is not None:
            clauses.append("ae.employee_id=%s")
            params.append(int(employee_id))
        if on_date is not None:
            clauses.append("DATE(ae.timestamp)=%s")
            params.append(on_date)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT ae.id, ae.employee_id, ae.status, ae.source, ae.device_id, ae.signal_strength, ae.timestamp,
                       e.employee_code, e.name AS employee_name
                FROM attendance_events ae
                LEFT JOIN employees e ON e.id = ae.employee_id
                {where}
                ORDER BY ae.timestamp DESC, ae.id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [
                AttendanceLogRow(
                    event=_row_to_event(r),
                    employee_code=r.get("employee_code"),
                    employee_name=r.get("employee_name"),
                )
                for r in fetchall(cur)
            ]

    def update_event(self, event_id: int, *, status: AttendanceStatus, source: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_events SET status=%s, source=%s WHERE id=%s",
                (status.value, source, int(event_id)),
            )
            return cur.rowcount > 0

    def delete_event(self, event_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_events WHERE id=%s", (int(event_id),))
            return cur.rowcount > 0
