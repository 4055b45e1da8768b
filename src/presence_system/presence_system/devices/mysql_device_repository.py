from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import DeviceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import ScannerDevice
from .repository import DeviceRepository

_COLUMNS = "id, device_id, location, description, status, last_seen, created_at"


def _row_to_device(row: dict) -> ScannerDevice:
    return ScannerDevice(
        device_pk=int(row["id"]),
        device_id=row["device_id"],
        location=row["location"],
        status=DeviceStatus(row["status"]),
        description=row.get("description"),
        last_seen=row.get("last_seen"),
        created_at=row.get("created_at"),
    )


class MySQLDeviceRepository(DeviceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_device_id(self, device_id: str) -> Optional[ScannerDevice]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM scanner_devices WHERE device_id=%s", (device_id,))
            row = fetchone(cur)
            return _row_to_device(row) if row else None

    def get_by_pk(self, device_pk: int) -> Optional[ScannerDevice]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM scanner_devices WHERE id=%s", (int(device_pk),))
            row = fetchone(cur)
            return _row_to_device(row) if row else None

    def touch_last_seen(self, device_id: str, *, seen_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE scanner_devices SET last_seen=%s WHERE device_id=%s", (seen_at, device_id))
            return cur.rowcount > 0

    def mark_heartbeat(self, device_id: str, *, seen_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE scanner_devices SET last_seen=%s, status=%s WHERE device_id=%s",
                (seen_at, DeviceStatus.ACTIVE.value, device_id),
            )
            # MySQL reports 0 affected rows when values are unchanged; re-check existence.
            if cur.rowcount > 0:
                return True
            cur.execute("SELECT id FROM scanner_devices WHERE device_id=%s", (device_id,))
            return fetchone(cur) is not None

    def create(
        self,
        *,
        device_id: str,
        location: str,
        description: Optional[str],
        status: DeviceStatus,
        last_seen: Optional[datetime] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO scanner_devices(device_id, location, description, status, last_seen)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (device_id, location, description, status.value, last_seen),
            )
            return int(cur.lastrowid)

    def upsert(self, *, device_id: str, location: str, description: Optional[str], seen_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO scanner_devices(device_id, location, description, status, last_seen)
                VALUES(%s,%s,%s,'active',%s)
                ON DUPLICATE KEY UPDATE
                    location=VALUES(location),
                    description=VALUES(description),
                    status='active',
                    last_seen=VALUES(last_seen)
                """,
                (device_id, location, description, seen_at),
            )

    def list_all(self) -> Sequence[ScannerDevice]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM scanner_devices ORDER BY created_at DESC, id DESC")
            return [_row_to_device(r) for r in fetchall(cur)]

    def update(self, device_pk: int, *, location: str, description: Optional[str], status: DeviceStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE scanner_devices SET location=%s, description=%s, status=%s WHERE id=%s",
                (location, description, status.value, int(device_pk)),
            )
            return cur.rowcount > 0

    def delete(self, device_pk: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM scanner_devices WHERE id=%s", (int(device_pk),))
            return cur.rowcount > 0

    def count_active(self, *, seen_since: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM scanner_devices WHERE status='active' AND last_seen >= %s",
                (seen_since,),
            )
            row = fetchone(cur) or {}
            return int(row.get("n") or 0)
