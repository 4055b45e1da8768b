from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.presence_system.presence_system.core.enums import AttendanceStatus
from src.presence_system.presence_system.core.exceptions import (
    InvalidStatusError,
    NotFoundError,
    StorageError,
    ValidationError,
)


def test_log_event_appends_and_reconciles(employees, events, attendance_service, fixed_now):
    employees.add(1, "EMP001")

    ev = attendance_service.log_event(1, "present", "manual", now=fixed_now)

    assert ev.status == AttendanceStatus.PRESENT
    assert ev.source == "manual"
    assert ev.timestamp == fixed_now
    assert events.get_by_id(ev.event_id) == ev
    assert employees.get_by_id(1).is_present is True
    assert employees.get_by_id(1).last_seen == fixed_now


def test_log_event_defaults_source(employees, attendance_service, fixed_now):
    employees.add(1, "EMP001")

    ev = attendance_service.log_event(1, "absent", "  ", now=fixed_now)

    assert ev.source == "unknown"


def test_log_event_rejects_invalid_status_before_write(employees, events, attendance_service, fixed_now):
    employees.add(1, "EMP001")

    with pytest.raises(InvalidStatusError):
        attendance_service.log_event(1, "on_leave", now=fixed_now)
    assert events.list_recent() == []


def test_invalid_status_is_a_validation_error(employees, attendance_service):
    employees.add(1, "EMP001")
    with pytest.raises(ValidationError):
        attendance_service.log_event(1, "")


def test_log_event_unknown_employee(events, attendance_service, fixed_now):
    with pytest.raises(NotFoundError):
        attendance_service.log_event(99, "present", now=fixed_now)
    assert events.list_recent() == []


def test_log_event_unknown_device(employees, events, attendance_service, fixed_now):
    employees.add(1, "EMP001")
    with pytest.raises(NotFoundError):
        attendance_service.log_event(1, "present", device_id="ESP32-GHOST", now=fixed_now)
    assert events.list_recent() == []


def test_log_event_with_known_device_and_signal(employees, devices, attendance_service, fixed_now):
    employees.add(1, "EMP001")
    devices.add("ESP32-LOBBY")

    ev = attendance_service.log_event(1, "present", "esp32", "ESP32-LOBBY", "-48", now=fixed_now)

    assert ev.device_id == "ESP32-LOBBY"
    assert ev.signal_strength == -48


def test_log_event_rejects_non_numeric_signal(employees, attendance_service):
    employees.add(1, "EMP001")
    with pytest.raises(ValidationError):
        attendance_service.log_event(1, "present", signal_strength="strong")


def test_log_event_storage_failure_propagates(employees, events, attendance_service, fixed_now):
    employees.add(1, "EMP001")
    events.fail_append = True

    with pytest.raises(StorageError):
        attendance_service.log_event(1, "present", now=fixed_now)
    assert employees.update_calls == []


def test_late_status_does_not_mark_present(employees, attendance_service, fixed_now):
    employees.add(1, "EMP001")

    attendance_service.log_event(1, AttendanceStatus.LATE, now=fixed_now)

    assert employees.get_by_id(1).is_present is False
    assert employees.get_by_id(1).last_seen == fixed_now


def test_get_logs_newest_first_with_filters(employees, events, attendance_service, fixed_now):
    employees.add(1, "EMP001")
    employees.add(2, "EMP002")
    yesterday = fixed_now - timedelta(days=1)
    events.append(employee_id=1, status=AttendanceStatus.PRESENT, source="t", timestamp=yesterday)
    events.append(employee_id=1, status=AttendanceStatus.ABSENT, source="t", timestamp=fixed_now)
    events.append(employee_id=2, status=AttendanceStatus.PRESENT, source="t", timestamp=fixed_now)

    all_rows = attendance_service.get_logs()
    emp_rows = attendance_service.get_logs(employee_id=1)
    day_rows = attendance_service.get_logs(on_date=date(2026, 3, 1))

    assert [r.event.event_id for r in all_rows] == [3, 2, 1]
    assert [r.event.event_id for r in emp_rows] == [2, 1]
    assert [r.event.event_id for r in day_rows] == [1]
    assert attendance_service.get_logs(limit=1)[0].event.event_id == 3


def test_get_employee_events_rejects_inverted_range(attendance_service, fixed_now):
    with pytest.raises(ValidationError):
        attendance_service.get_employee_events(1, start=fixed_now, end=fixed_now - timedelta(hours=1))


def test_get_history_returns_recent_changes(employees, events, attendance_service):
    employees.add(1, "EMP001")
    base = datetime(2026, 3, 2, 8, 0)
    for i, status in enumerate(["present", "present", "absent", "present", "present"]):
        events.append(employee_id=1, status=AttendanceStatus(status), source="t", timestamp=base + timedelta(minutes=i))

    history = attendance_service.get_history("EMP001", limit=10)

    assert [e.event_id for e in history] == [4, 3, 1]


def test_get_history_limit(employees, events, attendance_service):
    employees.add(1, "EMP001")
    base = datetime(2026, 3, 2, 8, 0)
    for i, status in enumerate(["present", "absent", "present"]):
        events.append(employee_id=1, status=AttendanceStatus(status), source="t", timestamp=base + timedelta(minutes=i))

    assert [e.event_id for e in attendance_service.get_history("EMP001", limit=1)] == [3]


def test_get_history_unknown_employee(attendance_service):
    with pytest.raises(NotFoundError):
        attendance_service.get_history("EMP999")


def test_correct_event_updates_and_reconciles(employees, events, attendance_service, fixed_now):
    employees.add(1, "EMP001")
    ev = attendance_service.log_event(1, "present", now=fixed_now)
    assert employees.get_by_id(1).is_present is True

    corrected = attendance_service.correct_event(ev.event_id, status="absent", source="admin", now=fixed_now)

    assert corrected.status == AttendanceStatus.ABSENT
    assert corrected.source == "admin"
    assert employees.get_by_id(1).is_present is False


def test_correct_event_without_changes_is_noop(employees, attendance_service, fixed_now):
    employees.add(1, "EMP001")
    ev = attendance_service.log_event(1, "present", "manual", now=fixed_now)
    calls_before = len(employees.update_calls)

    assert attendance_service.correct_event(ev.event_id, status="present", now=fixed_now) == ev
    assert len(employees.update_calls) == calls_before


def test_correct_event_invalid_status(employees, attendance_service, fixed_now):
    employees.add(1, "EMP001")
    ev = attendance_service.log_event(1, "present", now=fixed_now)

    with pytest.raises(InvalidStatusError):
        attendance_service.correct_event(ev.event_id, status="gone")


def test_correct_missing_event(attendance_service):
    with pytest.raises(NotFoundError):
        attendance_service.correct_event(42, status="absent")


def test_delete_event_reconciles_to_previous(employees, events, attendance_service, fixed_now):
    employees.add(1, "EMP001")
    first = attendance_service.log_event(1, "present", now=fixed_now - timedelta(minutes=2))
    last = attendance_service.log_event(1, "absent", now=fixed_now)
    assert employees.get_by_id(1).is_present is False

    attendance_service.delete_event(last.event_id, now=fixed_now)

    assert events.get_by_id(last.event_id) is None
    assert employees.get_by_id(1).is_present is True
    assert employees.get_by_id(1).last_seen == first.timestamp


def test_delete_missing_event(attendance_service):
    with pytest.raises(NotFoundError):
        attendance_service.delete_event(42)


def test_log_event_stores_millisecond_timestamps(employees, events, attendance_service, reconciler):
    employees.add(1, "EMP001")
    now = datetime(2026, 3, 2, 9, 0, 0, 123456)

    ev = attendance_service.log_event(1, "present", now=now)

    assert ev.timestamp == datetime(2026, 3, 2, 9, 0, 0, 123000)
    assert events.get_latest_for_employee(1).timestamp == ev.timestamp
    assert employees.get_by_id(1).last_seen == ev.timestamp
    assert reconciler.reconcile(1, now=now).changed is False
    assert len(employees.update_calls) == 1
