from __future__ import annotations

import dataclasses
from datetime import date, datetime
from typing import Optional

import pytest

from src.presence_system.presence_system.attendance.model import AttendanceEvent, AttendanceLogRow
from src.presence_system.presence_system.attendance.service import AttendanceLogService
from src.presence_system.presence_system.core.enums import DeviceStatus
from src.presence_system.presence_system.core.exceptions import StorageError
from src.presence_system.presence_system.devices.model import ScannerDevice
from src.presence_system.presence_system.employees.model import Employee, EmployeePresenceRow
from src.presence_system.presence_system.presence.reconciler import PresenceReconciler
from src.presence_system.presence_system.presence.service import PresenceService


class InMemoryEvents:
    def __init__(self):
        self._events: dict[int, AttendanceEvent] = {}
        self._id = 0
        self.fail_append = False

    def append(self, *, employee_id, status, source, timestamp, device_id=None, signal_strength=None) -> AttendanceEvent:
        if self.fail_append:
            raise StorageError("insert failed")
        self._id += 1
        ev = AttendanceEvent(
            event_id=self._id,
            employee_id=employee_id,
            status=status,
            source=source,
            timestamp=timestamp,
            device_id=device_id,
            signal_strength=signal_strength,
        )
        self._events[ev.event_id] = ev
        return ev

    def get_by_id(self, event_id: int) -> Optional[AttendanceEvent]:
        return self._events.get(event_id)

    def get_latest_for_employee(self, employee_id: int) -> Optional[AttendanceEvent]:
        items = [e for e in self._events.values() if e.employee_id == employee_id]
        return max(items, key=lambda e: e.sort_key) if items else None

    def list_for_employee(self, employee_id: int, *, start=None, end=None):
        items = [
            e
            for e in self._events.values()
            if e.employee_id == employee_id
            and (start is None or e.timestamp >= start)
            and (end is None or e.timestamp < end)
        ]
        return sorted(items, key=lambda e: e.sort_key)

    def list_recent(self, *, employee_id=None, on_date: date | None = None, limit: int = 100):
        items = [
            e
            for e in self._events.values()
            if (employee_id is None or e.employee_id == employee_id)
            and (on_date is None or e.timestamp.date() == on_date)
        ]
        items.sort(key=lambda e: e.sort_key, reverse=True)
        return [AttendanceLogRow(event=e, employee_code=None, employee_name=None) for e in items[:limit]]

    def update_event(self, event_id: int, *, status, source) -> bool:
        ev = self._events.get(event_id)
        if not ev:
            return False
        self._events[event_id] = dataclasses.replace(ev, status=status, source=source)
        return True

    def delete_event(self, event_id: int) -> bool:
        return self._events.pop(event_id, None) is not None


class InMemoryEmployees:
    def __init__(self, events: InMemoryEvents):
        self._events = events
        self._by_id: dict[int, Employee] = {}
        self.update_calls: list[tuple[int, bool, Optional[datetime]]] = []
        self.fail_update_ids: set[int] = set()
        self.fail_listing = False

    def add(self, employee_id: int, code: str, name: str | None = None, *, is_present=False, last_seen=None) -> Employee:
        emp = Employee(
            employee_id=employee_id,
            code=code,
            name=name or code,
            email=f"{code.lower()}@example.com",
            department_id=None,
            is_present=is_present,
            last_seen=last_seen,
        )
        self._by_id[employee_id] = emp
        return emp

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self._by_id.get(employee_id)

    def get_by_code(self, code: str) -> Optional[Employee]:
        return next((e for e in self._by_id.values() if e.code == code), None)

    def update_presence(self, employee_id: int, *, is_present: bool, last_seen) -> bool:
        if employee_id in self.fail_update_ids:
            raise StorageError("update failed")
        emp = self._by_id.get(employee_id)
        if not emp:
            return False
        self.update_calls.append((employee_id, is_present, last_seen))
        self._by_id[employee_id] = dataclasses.replace(emp, is_present=is_present, last_seen=last_seen)
        return True

    def update_presence_if_not_newer(self, employee_id: int, *, is_present: bool, last_seen, observed_last_seen) -> bool:
        emp = self._by_id.get(employee_id)
        if emp is None:
            return False
        stored = emp.last_seen
        if stored != observed_last_seen and (stored is None or observed_last_seen is None or stored > observed_last_seen):
            return False
        return self.update_presence(employee_id, is_present=is_present, last_seen=last_seen)

    def list_with_last_event(self, *, after_id: int = 0, limit: int = 500):
        if self.fail_listing:
            raise StorageError("connection lost")
        rows = []
        for emp_id in sorted(i for i in self._by_id if i > after_id)[:limit]:
            emp = self._by_id[emp_id]
            latest = self._events.get_latest_for_employee(emp_id)
            rows.append(
                EmployeePresenceRow(
                    employee_id=emp.employee_id,
                    code=emp.code,
                    name=emp.name,
                    is_present=emp.is_present,
                    last_seen=emp.last_seen,
                    last_status=latest.status if latest else None,
                    last_event_at=latest.timestamp if latest else None,
                    last_device_id=latest.device_id if latest else None,
                )
            )
        return rows

    def presence_counts(self) -> tuple[int, int]:
        emps = list(self._by_id.values())
        return len(emps), sum(1 for e in emps if e.is_present)


class InMemoryDevices:
    def __init__(self):
        self._by_pk: dict[int, ScannerDevice] = {}
        self._id = 0

    def add(self, device_id: str, location: str = "Lobby", *, status=DeviceStatus.ACTIVE, last_seen=None) -> ScannerDevice:
        pk = self.create(device_id=device_id, location=location, description=None, status=status, last_seen=last_seen)
        return self._by_pk[pk]

    def get_by_device_id(self, device_id: str) -> Optional[ScannerDevice]:
        return next((d for d in self._by_pk.values() if d.device_id == device_id), None)

    def get_by_pk(self, device_pk: int) -> Optional[ScannerDevice]:
        return self._by_pk.get(device_pk)

    def touch_last_seen(self, device_id: str, *, seen_at) -> bool:
        d = self.get_by_device_id(device_id)
        if not d:
            return False
        self._by_pk[d.device_pk] = dataclasses.replace(d, last_seen=seen_at)
        return True

    def mark_heartbeat(self, device_id: str, *, seen_at) -> bool:
        d = self.get_by_device_id(device_id)
        if not d:
            return False
        self._by_pk[d.device_pk] = dataclasses.replace(d, last_seen=seen_at, status=DeviceStatus.ACTIVE)
        return True

    def create(self, *, device_id, location, description, status, last_seen=None) -> int:
        self._id += 1
        self._by_pk[self._id] = ScannerDevice(
            device_pk=self._id,
            device_id=device_id,
            location=location,
            status=status,
            description=description,
            last_seen=last_seen,
            created_at=last_seen,
        )
        return self._id

    def upsert(self, *, device_id, location, description, seen_at) -> None:
        d = self.get_by_device_id(device_id)
        if not d:
            self.create(device_id=device_id, location=location, description=description, status=DeviceStatus.ACTIVE, last_seen=seen_at)
            return
        self._by_pk[d.device_pk] = dataclasses.replace(
            d, location=location, description=description, status=DeviceStatus.ACTIVE, last_seen=seen_at
        )

    def list_all(self):
        return list(self._by_pk.values())

    def update(self, device_pk: int, *, location, description, status) -> bool:
        d = self._by_pk.get(device_pk)
        if not d:
            return False
        self._by_pk[device_pk] = dataclasses.replace(d, location=location, description=description, status=status)
        return True

    def delete(self, device_pk: int) -> bool:
        return self._by_pk.pop(device_pk, None) is not None

    def count_active(self, *, seen_since) -> int:
        return sum(
            1
            for d in self._by_pk.values()
            if d.status == DeviceStatus.ACTIVE and d.last_seen is not None and d.last_seen >= seen_since
        )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def events() -> InMemoryEvents:
    return InMemoryEvents()


@pytest.fixture
def employees(events) -> InMemoryEmployees:
    return InMemoryEmployees(events)


@pytest.fixture
def devices() -> InMemoryDevices:
    return InMemoryDevices()


@pytest.fixture
def reconciler(employees, events, fixed_now) -> PresenceReconciler:
    return PresenceReconciler(employees, events, clock=lambda: fixed_now)


@pytest.fixture
def attendance_service(events, employees, devices, reconciler) -> AttendanceLogService:
    return AttendanceLogService(events, employees, devices, reconciler)


@pytest.fixture
def presence_service(employees, devices, events, attendance_service, fixed_now) -> PresenceService:
    return PresenceService(employees, devices, events, attendance_service, clock=lambda: fixed_now)
