from datetime import date, time
from unittest.mock import Mock, patch

import pytest

from drivingschool.core.enums import ConflictType
from drivingschool.core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from drivingschool.models import Booking, BookingStatus
from drivingschool.schemas.scheduling import ScheduleConflict
from drivingschool.services.booking_service import BookingService
from drivingschool.services.conflict_checker import ConflictChecker

pytestmark = pytest.mark.unit

MONDAY = date(2024, 6, 10)


@pytest.fixture
def people(make_user, make_course):
    instructor = make_user(first_name="Ivy", last_name="Instructor")
    student = make_user(role="student", first_name="Sam", last_name="Learner")
    course = make_course(duration_minutes=60)
    return instructor, student, course


class TestCommitBooking:
    def test_free_window_is_booked(self, unit_db, people):
        instructor, student, course = people
        service = BookingService(unit_db)

        booking = service.commit_booking(student.id, instructor.id, course.id, MONDAY, time(9, 0))

        assert booking.status == BookingStatus.CONFIRMED.value
        assert unit_db.query(Booking).filter_by(id=booking.id).count() == 1

    def test_second_booking_for_same_window_conflicts(self, unit_db, people):
        instructor, student, course = people
        service = BookingService(unit_db)
        first = service.commit_booking(student.id, instructor.id, course.id, MONDAY, time(9, 0))

        with pytest.raises(BookingConflictException) as exc_info:
            service.commit_booking(student.id, instructor.id, course.id, MONDAY, time(9, 30))

        conflicts = exc_info.value.details["conflicts"]
        assert conflicts[0]["type"] == "booking"
        assert conflicts[0]["conflicting_id"] == first.id

    def test_failed_conflict_check_blocks_the_commit(self, unit_db, people):
        instructor, student, course = people
        checker = Mock(spec=ConflictChecker)
        checker.check_conflicts.return_value = [
            ScheduleConflict(type=ConflictType.OVERLAPPING, message="Error checking for conflicts")
        ]
        service = BookingService(unit_db, conflict_checker=checker)

        with pytest.raises(BookingConflictException):
            service.commit_booking(student.id, instructor.id, course.id, MONDAY, time(9, 0))
        assert unit_db.query(Booking).count() == 0

    def test_cancelled_window_is_bookable_again(self, unit_db, people):
        instructor, student, course = people
        service = BookingService(unit_db)
        first = service.commit_booking(student.id, instructor.id, course.id, MONDAY, time(9, 0))

        service.cancel_booking(first.id)
        second = service.commit_booking(student.id, instructor.id, course.id, MONDAY, time(9, 0))

        assert second.id != first.id

    def test_busy_lock_is_reported_as_conflict(self, unit_db, people):
        instructor, student, course = people
        service = BookingService(unit_db)

        with patch(
            "drivingschool.services.booking_service.booking_lock_sync"
        ) as lock:
            lock.return_value.__enter__.return_value = False
            with pytest.raises(ConflictException, match="in progress"):
                service.commit_booking(student.id, instructor.id, course.id, MONDAY, time(9, 0))

    def test_commit_from_another_worker_waits_for_the_shared_lock(self, unit_db, people):
        instructor, student, course = people
        worker_a = BookingService(unit_db)
        worker_b = BookingService(unit_db)
        blocked = []
        recheck = worker_a.conflict_checker.check_conflicts

        def race_while_holding_lock(*args):
            with pytest.raises(ConflictException) as exc_info:
                worker_b.commit_booking(student.id, instructor.id, course.id, MONDAY, time(9, 0))
            blocked.append(exc_info.value.code)
            return recheck(*args)

        with patch.object(
            worker_a.conflict_checker, "check_conflicts", side_effect=race_while_holding_lock
        ):
            booking = worker_a.commit_booking(student.id, instructor.id, course.id, MONDAY, time(9, 0))

        assert blocked == ["BOOKING_LOCKED"]
        assert unit_db.query(Booking).filter_by(instructor_id=instructor.id).all() == [booking]

    def test_recheck_runs_after_instructor_row_lock_in_one_transaction(self, unit_db, people):
        instructor, student, course = people
        service = BookingService(unit_db)
        order = []

        with patch.object(
            service.scheduling_repository,
            "lock_instructor",
            side_effect=lambda instructor_id: order.append(("lock", instructor_id)),
        ), patch.object(
            service.conflict_checker,
            "check_conflicts",
            side_effect=lambda instructor_id, *rest: order.append(("check", instructor_id)) or [],
        ), patch.object(service, "transaction", wraps=service.transaction) as transaction:
            service.commit_booking(student.id, instructor.id, course.id, MONDAY, time(9, 0))

        assert order == [("lock", instructor.id), ("check", instructor.id)]
        assert transaction.call_count == 1

    def test_lesson_past_midnight_is_rejected(self, unit_db, people):
        instructor, student, course = people
        service = BookingService(unit_db)

        with pytest.raises(ValidationException):
            service.commit_booking(student.id, instructor.id, course.id, MONDAY, time(23, 30))

    def test_unknown_course_and_student(self, unit_db, people):
        instructor, student, course = people
        service = BookingService(unit_db)

        with pytest.raises(NotFoundException):
            service.commit_booking(student.id, instructor.id, "missing", MONDAY, time(9, 0))
        with pytest.raises(NotFoundException):
            service.commit_booking("missing", instructor.id, course.id, MONDAY, time(9, 0))


class TestCancelAndReschedule:
    def test_cancel_sets_status_and_timestamp(self, unit_db, people, make_booking):
        instructor, student, course = people
        booking = make_booking(student, instructor, course, MONDAY, time(9, 0))

        cancelled = BookingService(unit_db).cancel_booking(booking.id)

        assert cancelled.status == BookingStatus.CANCELLED.value
        assert cancelled.cancelled_at is not None

    def test_completed_booking_cannot_be_cancelled(self, unit_db, people, make_booking):
        instructor, student, course = people
        booking = make_booking(
            student, instructor, course, MONDAY, time(9, 0), status=BookingStatus.COMPLETED.value
        )

        with pytest.raises(BusinessRuleException):
            BookingService(unit_db).cancel_booking(booking.id)

    def test_cancel_unknown_booking(self, unit_db):
        with pytest.raises(NotFoundException):
            BookingService(unit_db).cancel_booking("missing")

    def test_reschedule_may_overlap_its_own_old_window(self, unit_db, people, make_booking):
        instructor, student, course = people
        booking = make_booking(student, instructor, course, MONDAY, time(9, 0))

        moved = BookingService(unit_db).reschedule_booking(booking.id, MONDAY, time(9, 30))

        assert moved.lesson_time == time(9, 30)

    def test_reschedule_into_other_booking_conflicts(self, unit_db, people, make_booking):
        instructor, student, course = people
        booking = make_booking(student, instructor, course, MONDAY, time(9, 0))
        make_booking(student, instructor, course, MONDAY, time(11, 0))

        with pytest.raises(BookingConflictException):
            BookingService(unit_db).reschedule_booking(booking.id, MONDAY, time(10, 30))

    def test_cancelled_booking_cannot_be_rescheduled(self, unit_db, people, make_booking):
        instructor, student, course = people
        booking = make_booking(
            student, instructor, course, MONDAY, time(9, 0), status=BookingStatus.CANCELLED.value
        )

        with pytest.raises(BusinessRuleException):
            BookingService(unit_db).reschedule_booking(booking.id, MONDAY, time(10, 0))
