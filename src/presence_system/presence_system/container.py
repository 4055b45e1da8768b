from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceLogService
from .core.constants import DEFAULT_SWEEP_BATCH_SIZE, DEFAULT_SWEEP_INTERVAL_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .devices.mysql_device_repository import MySQLDeviceRepository
from .devices.service import DeviceService
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .presence.reconciler import PresenceReconciler
from .presence.service import PresenceService
from .presence.sweeper import PresenceSweeper, TransitionListener


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    employees_repo: MySQLEmployeeRepository
    devices_repo: MySQLDeviceRepository
    attendance_repo: MySQLAttendanceRepository

    reconciler: PresenceReconciler
    attendance_service: AttendanceLogService
    presence_service: PresenceService
    device_service: DeviceService

    # Owned handle: whoever holds the container starts and stops it.
    presence_sweeper: PresenceSweeper


def build_container(
    *,
    db_config: dict,
    sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    sweep_batch_size: int = DEFAULT_SWEEP_BATCH_SIZE,
    transition_listeners: Iterable[TransitionListener] = (),
) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    employees_repo = MySQLEmployeeRepository(conn)
    devices_repo = MySQLDeviceRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)

    reconciler = PresenceReconciler(employees_repo, attendance_repo)
    attendance_service = AttendanceLogService(attendance_repo, employees_repo, devices_repo, reconciler)
    presence_service = PresenceService(employees_repo, devices_repo, attendance_repo, attendance_service)
    device_service = DeviceService(devices_repo)
    presence_sweeper = PresenceSweeper(
        employees_repo,
        interval_seconds=sweep_interval_seconds,
        batch_size=sweep_batch_size,
        listeners=transition_listeners,
    )

    return Container(
        conn=conn,
        employees_repo=employees_repo,
        devices_repo=devices_repo,
        attendance_repo=attendance_repo,
        reconciler=reconciler,
        attendance_service=attendance_service,
        presence_service=presence_service,
        device_service=device_service,
        presence_sweeper=presence_sweeper,
    )
