from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from src.qr_attendance.qr_attendance.attendance.service import AttendanceService
from src.qr_attendance.qr_attendance.auth.tokens import Principal
from src.qr_attendance.qr_attendance.core.enums import AttendanceStatus, Role
from src.qr_attendance.qr_attendance.core.exceptions import (
    AlreadyRecordedError,
    NotFoundError,
    TooEarlyError,
    TooLateError,
    ValidationError,
)

from tests.fakes import InMemoryAttendance, InMemoryEvents, InMemoryStore, InMemoryUsers, MutableClock, utc


class ExistenceBlindAttendance(InMemoryAttendance):
    """Existence check always misses, as when two check-ins race past it."""

    def exists(self, *, event_id, student_id):
        return False


@pytest.fixture
def clock():
    return MutableClock(utc(2025, 11, 27, 10, 30))


@pytest.fixture
def store(clock):
    return InMemoryStore(clock)


@pytest.fixture
def event(store):
    lecturer = store.add_lecturer()
    return store.add_event(start=utc(2025, 11, 27, 10, 0), end=utc(2025, 11, 27, 11, 0), lecturer_id=lecturer.id)


@pytest.fixture
def service(store, clock):
    return AttendanceService(InMemoryEvents(store), InMemoryAttendance(store), InMemoryUsers(store), clock=clock)


def test_check_in_marks_present_at_server_time(store, event, service):
    student = store.add_student()

    result = service.check_in(student_id=student.id, qr_token=event.qr_code_token)

    assert result.status == AttendanceStatus.PRESENT
    assert result.marked_time == utc(2025, 11, 27, 10, 30)
    assert result.event_id == event.id
    assert result.student_name == "Ada Obi"
    assert result.course_code == "CSC301"
    assert len(store.rows) == 1


@pytest.mark.parametrize(
    "now",
    [utc(2025, 11, 27, 10, 0, 0), utc(2025, 11, 27, 11, 0, 0)],
    ids=["at-start", "at-end"],
)
def test_window_bounds_are_inclusive(store, event, service, now):
    student = store.add_student()
    result = service.check_in(student_id=student.id, qr_token=event.qr_code_token, now=now)
    assert result.marked_time == now
    assert event.is_open_at(result.marked_time)


def test_one_second_before_start_is_too_early(store, event, service):
    student = store.add_student()
    with pytest.raises(TooEarlyError) as exc:
        service.check_in(student_id=student.id, qr_token=event.qr_code_token, now=utc(2025, 11, 27, 9, 59, 59))
    assert exc.value.details == {"start_time": "2025-11-27T10:00:00Z"}
    assert not store.rows


def test_one_second_after_end_is_too_late(store, event, service):
    student = store.add_student()
    with pytest.raises(TooLateError) as exc:
        service.check_in(student_id=student.id, qr_token=event.qr_code_token, now=utc(2025, 11, 27, 11, 0, 1))
    assert exc.value.details == {"end_time": "2025-11-27T11:00:00Z"}
    assert not store.rows


def test_second_check_in_is_already_recorded(store, event, service, clock):
    student = store.add_student()
    service.check_in(student_id=student.id, qr_token=event.qr_code_token)
    clock.advance(minutes=1)

    with pytest.raises(AlreadyRecordedError):
        service.check_in(student_id=student.id, qr_token=event.qr_code_token)
    assert len(store.rows) == 1


def test_unique_constraint_is_translated_when_existence_check_misses(store, event, clock):
    service = AttendanceService(InMemoryEvents(store), ExistenceBlindAttendance(store), InMemoryUsers(store), clock=clock)
    student = store.add_student()
    service.check_in(student_id=student.id, qr_token=event.qr_code_token)

    with pytest.raises(AlreadyRecordedError):
        service.check_in(student_id=student.id, qr_token=event.qr_code_token)
    assert len(store.rows) == 1


@pytest.mark.parametrize("attendance_cls", [InMemoryAttendance, ExistenceBlindAttendance])
def test_concurrent_check_ins_record_exactly_once(store, event, clock, attendance_cls):
    service = AttendanceService(InMemoryEvents(store), attendance_cls(store), InMemoryUsers(store), clock=clock)
    student = store.add_student()
    workers = 8
    barrier = threading.Barrier(workers)
    results, errors = [], []
    guard = threading.Lock()

    def scan():
        barrier.wait()
        try:
            outcome = service.check_in(student_id=student.id, qr_token=event.qr_code_token)
        except AlreadyRecordedError as exc:
            with guard:
                errors.append(exc)
        else:
            with guard:
                results.append(outcome)

    threads = [threading.Thread(target=scan) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert len(results) == 1
    assert len(errors) == workers - 1
    assert len(store.rows) == 1


@pytest.mark.parametrize("token", ["", "   ", None, 42])
def test_missing_token_is_invalid_input(store, service, token):
    student = store.add_student()
    with pytest.raises(ValidationError):
        service.check_in(student_id=student.id, qr_token=token)


def test_unknown_token_is_not_found(store, event, service):
    student = store.add_student()
    with pytest.raises(NotFoundError):
        service.check_in(student_id=student.id, qr_token="f" * 32)


def test_token_lookup_happens_before_window_check(store, service):
    # An unknown token is not-found even when no event is open.
    student = store.add_student()
    with pytest.raises(NotFoundError):
        service.check_in(student_id=student.id, qr_token="nope", now=utc(2030, 1, 1))


def test_unknown_student_is_not_found(event, service):
    with pytest.raises(NotFoundError):
        service.check_in(student_id=999, qr_token=event.qr_code_token)


def test_token_is_trimmed(store, event, service):
    student = store.add_student()
    result = service.check_in(student_id=student.id, qr_token=f"  {event.qr_code_token}\n")
    assert result.event_id == event.id


def test_history_newest_first_and_roster_oldest_first(store, service, clock):
    lecturer = store.add_lecturer()
    first = store.add_event(start=utc(2025, 11, 26, 10, 0), lecturer_id=lecturer.id)
    second = store.add_event(start=utc(2025, 11, 27, 10, 0), lecturer_id=lecturer.id)
    ada = store.add_student()
    bola = store.add_student("Bola", "Ade")
    store.add_row(event=first, student=ada, marked=utc(2025, 11, 26, 10, 5))
    store.add_row(event=second, student=bola, marked=utc(2025, 11, 27, 10, 20))
    store.add_row(event=second, student=ada, marked=utc(2025, 11, 27, 10, 10))

    history = service.get_student_history(ada.id)
    assert [h.event_id for h in history.attendance_records] == [second.id, first.id]
    assert history.total_events == 2
    assert history.total_present == 2

    roster = service.get_roster(Principal(lecturer.id, lecturer.email, Role.LECTURER), second.id)
    assert [r.student_id for r in roster.attendance_records] == [ada.id, bola.id]
    assert roster.total_present == 2
    assert roster.created_by == "Grace Hopper"


def test_lecturer_events_report_status_and_reach(store, service, clock):
    lecturer = store.add_lecturer()
    past = store.add_event(start=clock.now - timedelta(days=1), lecturer_id=lecturer.id)
    live = store.add_event(start=clock.now - timedelta(minutes=10), lecturer_id=lecturer.id)
    ada = store.add_student()
    store.add_row(event=past, student=ada)
    store.add_row(event=live, student=ada)

    listing = service.list_lecturer_events(lecturer.id)

    statuses = {e.event_id: e.status for e in listing.events}
    assert statuses == {past.id: "expired", live.id: "active"}
    assert listing.total_events == 2
    assert listing.total_students_reached == 1
