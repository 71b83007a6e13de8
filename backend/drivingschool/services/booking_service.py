# backend/drivingschool/services/booking_service.py
"""
Booking Service for the driving school platform.

The commit path for lessons. Suggestions from the auto-scheduler are only
conflict-free when generated, so every commit takes the lock for the
instructor and date, then locks the instructor row, re-runs the conflict
check and inserts in one transaction only when the window is still free:
- Creating bookings
- Cancelling bookings
- Rescheduling bookings to a new date/time
"""

from datetime import date, datetime, time, timezone
import logging
from typing import Any, Dict, List, NoReturn, Optional

from sqlalchemy.orm import Session

from ..core.booking_lock import booking_lock_sync
from ..core.enums import RoleName
from ..core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    ServiceException,
    ValidationException,
)
from ..models.booking import Booking, BookingStatus
from ..models.course import Course
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.scheduling_repository import SchedulingRepository
from ..schemas.scheduling import ScheduleConflict
from ..utils.time_utils import MINUTES_PER_DAY, format_time, minutes_to_time, time_to_minutes
from .base import BaseService
from .conflict_checker import ConflictChecker

logger = logging.getLogger(__name__)


class BookingService(BaseService):
    """Service for committing, cancelling and rescheduling lessons."""

    def __init__(
        self,
        db: Session,
        repository: Optional[BookingRepository] = None,
        scheduling_repository: Optional[SchedulingRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.scheduling_repository = (
            scheduling_repository or RepositoryFactory.create_scheduling_repository(db)
        )
        self.conflict_checker = conflict_checker or ConflictChecker(db)

    # Validation helpers

    def _get_active_course(self, course_id: str) -> Course:
        course = self.scheduling_repository.get_course(course_id)
        if course is None:
            raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
        if not course.is_active:
            raise ValidationException("Course is not active", code="COURSE_INACTIVE")
        return course

    def _validate_participants(self, student_id: str, instructor_id: str) -> None:
        instructor = self.scheduling_repository.get_user(instructor_id)
        if instructor is None:
            raise NotFoundException("Instructor not found", code="INSTRUCTOR_NOT_FOUND")
        if instructor.role != RoleName.INSTRUCTOR.value or not instructor.is_active:
            raise ValidationException("User is not an active instructor", code="NOT_AN_INSTRUCTOR")

        student = self.scheduling_repository.get_user(student_id)
        if student is None or not student.is_active:
            raise NotFoundException("Student not found", code="STUDENT_NOT_FOUND")

    @staticmethod
    def _lesson_end(lesson_time: time, duration_minutes: int) -> time:
        end_minute = time_to_minutes(lesson_time) + duration_minutes
        if end_minute >= MINUTES_PER_DAY:
            raise ValidationException(
                "Lesson must end before midnight",
                code="INVALID_TIME_RANGE",
                details={"lesson_time": format_time(lesson_time), "duration_minutes": duration_minutes},
            )
        return minutes_to_time(end_minute)

    @staticmethod
    def _conflict_details(conflicts: List[ScheduleConflict]) -> Dict[str, Any]:
        return {"conflicts": [conflict.model_dump(mode="json") for conflict in conflicts]}

    def _find_conflicts(
        self,
        instructor_id: str,
        lesson_date: date,
        lesson_time: time,
        end_time: time,
        exclude_booking_id: Optional[str] = None,
    ) -> List[ScheduleConflict]:
        """Re-check the window after locking the instructor row in the open transaction."""
        self.scheduling_repository.lock_instructor(instructor_id)
        return self.conflict_checker.check_conflicts(
            instructor_id, lesson_date, lesson_time, end_time, exclude_booking_id
        )

    def _reject(
        self,
        instructor_id: str,
        lesson_date: date,
        lesson_time: time,
        conflicts: List[ScheduleConflict],
    ) -> NoReturn:
        self.logger.info(
            f"Rejected booking for {instructor_id} on {lesson_date} at {lesson_time}: "
            f"{len(conflicts)} conflicts"
        )
        raise BookingConflictException(details=self._conflict_details(conflicts))

    # Operations

    @BaseService.measure_operation("commit_booking")
    def commit_booking(
        self,
        student_id: str,
        instructor_id: str,
        course_id: str,
        lesson_date: date,
        lesson_time: time,
        status: BookingStatus = BookingStatus.CONFIRMED,
    ) -> Booking:
        """
        Book a lesson if its window is still free.

        Args:
            student_id: The student taking the lesson
            instructor_id: The instructor giving the lesson
            course_id: The course, which fixes the lesson length
            lesson_date: Lesson date
            lesson_time: Lesson start time
            status: Initial status

        Returns:
            The created booking

        Raises:
            NotFoundException: If the course, instructor or student is missing
            ValidationException: If the lesson would run past midnight
            BookingConflictException: If the window is no longer free
            ConflictException: If the lock for the instructor and date is busy
        """
        course = self._get_active_course(course_id)
        self._validate_participants(student_id, instructor_id)
        end_time = self._lesson_end(lesson_time, course.duration_minutes)

        with booking_lock_sync(instructor_id, lesson_date) as acquired:
            if not acquired:
                raise ConflictException(
                    "Another booking for this instructor and date is in progress",
                    code="BOOKING_LOCKED",
                )

            with self.transaction():
                conflicts = self._find_conflicts(instructor_id, lesson_date, lesson_time, end_time)
                booking = None
                if not conflicts:
                    booking = self.repository.create(
                        student_id=student_id,
                        instructor_id=instructor_id,
                        course_id=course_id,
                        lesson_date=lesson_date,
                        lesson_time=lesson_time,
                        status=status.value,
                    )

        if conflicts:
            self._reject(instructor_id, lesson_date, lesson_time, conflicts)

        self.log_operation(
            "commit_booking",
            booking_id=booking.id,
            instructor_id=instructor_id,
            lesson_date=lesson_date.isoformat(),
        )
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str) -> Booking:
        """
        Cancel a booking. Its window is free for the next conflict check.

        Raises:
            NotFoundException: If the booking does not exist
            BusinessRuleException: If the lesson has already been completed
        """
        booking = self.repository.get_with_details(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")

        if booking.status == BookingStatus.CANCELLED.value:
            return booking
        if booking.status == BookingStatus.COMPLETED.value:
            raise BusinessRuleException(
                "Completed bookings cannot be cancelled", code="BOOKING_COMPLETED"
            )

        with self.transaction():
            updated = self.repository.update(
                booking_id,
                status=BookingStatus.CANCELLED.value,
                cancelled_at=datetime.now(timezone.utc),
            )

        if updated is None:
            raise ServiceException("Failed to cancel booking")
        self.log_operation("cancel_booking", booking_id=booking_id)
        return updated

    @BaseService.measure_operation("reschedule_booking")
    def reschedule_booking(self, booking_id: str, new_date: date, new_time: time) -> Booking:
        """
        Move a booking to a new date and start time.

        The booking itself is ignored by the conflict check, so it may move
        into a window that overlaps its old one.

        Raises:
            NotFoundException: If the booking does not exist
            BusinessRuleException: If the booking is cancelled or completed
            BookingConflictException: If the new window is not free
        """
        booking = self.repository.get_with_details(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if not booking.is_blocking():
            raise BusinessRuleException(
                f"Cannot reschedule a {booking.status} booking", code="BOOKING_NOT_ACTIVE"
            )

        end_time = self._lesson_end(new_time, booking.duration_minutes)
        instructor_id = booking.instructor_id

        with booking_lock_sync(instructor_id, new_date) as acquired:
            if not acquired:
                raise ConflictException(
                    "Another booking for this instructor and date is in progress",
                    code="BOOKING_LOCKED",
                )

            with self.transaction():
                conflicts = self._find_conflicts(
                    instructor_id, new_date, new_time, end_time, exclude_booking_id=booking_id
                )
                updated = None
                if not conflicts:
                    updated = self.repository.update(
                        booking_id,
                        lesson_date=new_date,
                        lesson_time=new_time,
                    )

        if conflicts:
            self._reject(instructor_id, new_date, new_time, conflicts)
        if updated is None:
            raise ServiceException("Failed to reschedule booking")
        self.log_operation(
            "reschedule_booking",
            booking_id=booking_id,
            lesson_date=new_date.isoformat(),
        )
        return updated
