# backend/drivingschool/services/availability_service.py
"""
Availability Service for the driving school platform.

Durable record of when instructors are (un)available:
- Creating one-off and recurring availability windows
- Expanding recurring templates into concrete per-date rows
- Reading availability for a date range
- Upserting a single window's availability flag
- Building the instructor calendar view (bookings + availability)

Read paths are fail-soft (an error is logged and an empty result returned);
write paths raise, because a lost availability write is worse than a
visible failure.
"""

from datetime import date, time, timedelta
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import RecurrencePattern
from ..core.exceptions import InvalidTimeRangeException, ServiceException, ValidationException
from ..models.availability import InstructorAvailability
from ..repositories.availability_repository import AvailabilityRepository
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..schemas._strict_base import hhmm
from ..schemas.availability import (
    AvailabilitySlotCreate,
    InstructorScheduleResponse,
    ScheduleAvailabilityEntry,
    ScheduleBookingEntry,
)
from ..utils.time_utils import format_time
from .base import BaseService

logger = logging.getLogger(__name__)


def _add_months(d: date, months: int) -> date:
    """Calendar-month step, clamped to the last day of shorter months."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = d.day
    while True:
        try:
            return date(year, month, day)
        except ValueError:
            day -= 1


def expand_recurrence(
    start: date,
    pattern: RecurrencePattern,
    end: date,
    *,
    monthly_mode: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[date]:
    """
    Dates of the instances generated from a recurring template.

    The template's own date is not included. Instances are produced by
    advancing from the template date (daily +1 day, weekly +7 days, monthly
    +30 days or one calendar month) while the date stays on or before the
    recurrence end date.

    Args:
        start: Date of the template slot
        pattern: Recurrence pattern
        end: Recurrence end date, inclusive
        monthly_mode: "fixed_30_days" or "calendar_month" (defaults to settings)
        limit: Stop after this many instances; unbounded when None

    Returns:
        Instance dates in ascending order
    """
    if pattern == RecurrencePattern.NONE:
        return []

    mode = monthly_mode or settings.monthly_recurrence_mode
    dates: List[date] = []
    step = 0
    while limit is None or len(dates) < limit:
        step += 1
        if pattern == RecurrencePattern.DAILY:
            current = start + timedelta(days=step)
        elif pattern == RecurrencePattern.WEEKLY:
            current = start + timedelta(days=7 * step)
        elif mode == "calendar_month":
            current = _add_months(start, step)
        else:
            current = start + timedelta(days=30 * step)

        if current > end:
            break
        dates.append(current)

    return dates


class AvailabilityService(BaseService):
    """Service for instructor availability windows."""

    def __init__(
        self,
        db: Session,
        repository: Optional[AvailabilityRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_availability_repository(db)
        self.booking_repository = booking_repository or RepositoryFactory.create_booking_repository(db)

    # Validation

    @staticmethod
    def validate_window(start_time: time, end_time: time, *, index: Optional[int] = None) -> None:
        if start_time >= end_time:
            raise InvalidTimeRangeException(format_time(start_time), format_time(end_time), index=index)

    def _validate_slots(self, slots: Sequence[AvailabilitySlotCreate]) -> None:
        """Reject the whole batch before any write if one slot is malformed."""
        for index, slot in enumerate(slots):
            self.validate_window(slot.start_time, slot.end_time, index=index)
            if not slot.is_recurring:
                continue
            if slot.recurrence_pattern == RecurrencePattern.NONE:
                raise ValidationException(
                    "Recurring slots need a recurrence pattern",
                    code="INVALID_RECURRENCE",
                    details={"index": index},
                )
            if slot.recurrence_end_date and slot.recurrence_end_date < slot.date:
                raise ValidationException(
                    "Recurrence end date cannot be before the slot date",
                    code="INVALID_RECURRENCE",
                    details={
                        "index": index,
                        "date": slot.date.isoformat(),
                        "recurrence_end_date": slot.recurrence_end_date.isoformat(),
                    },
                )
            if slot.recurrence_end_date:
                cap = settings.max_recurrence_instances
                instances = expand_recurrence(
                    slot.date, slot.recurrence_pattern, slot.recurrence_end_date, limit=cap + 1
                )
                if len(instances) > cap:
                    raise ValidationException(
                        f"Recurrence would create more than {cap} instances",
                        code="RECURRENCE_TOO_LONG",
                        details={
                            "index": index,
                            "max_instances": cap,
                            "recurrence_end_date": slot.recurrence_end_date.isoformat(),
                        },
                    )

    # Writes

    @BaseService.measure_operation("create_slots")
    def create_slots(self, slots: Sequence[AvailabilitySlotCreate]) -> List[InstructorAvailability]:
        """
        Create availability windows, expanding recurring ones.

        Every slot is validated before anything is written. All rows of one
        call, templates and generated instances alike, are written in one
        transaction.

        Args:
            slots: Windows to create

        Returns:
            Created rows: the requested slots followed by generated instances

        Raises:
            ValidationException: If any slot is malformed (nothing is written)
            ServiceException: If the write fails
        """
        if not slots:
            return []

        self._validate_slots(slots)

        rows: List[Dict[str, Any]] = [self._row_from_slot(slot) for slot in slots]
        for slot in slots:
            if slot.is_recurring and slot.recurrence_end_date:
                instance_dates = expand_recurrence(
                    slot.date, slot.recurrence_pattern, slot.recurrence_end_date
                )
                rows.extend(
                    self._row_from_slot(slot, on_date=instance_date, as_instance=True)
                    for instance_date in instance_dates
                )

        with self.transaction():
            created = self.repository.create_many(rows)

        self.log_operation(
            "create_slots",
            requested=len(slots),
            created_count=len(created),
        )
        return created

    @staticmethod
    def _row_from_slot(
        slot: AvailabilitySlotCreate, *, on_date: Optional[date] = None, as_instance: bool = False
    ) -> Dict[str, Any]:
        return {
            "instructor_id": slot.instructor_id,
            "date": on_date or slot.date,
            "start_time": slot.start_time,
            "end_time": slot.end_time,
            "is_available": slot.is_available,
            "is_recurring": slot.is_recurring and not as_instance,
            "recurrence_pattern": slot.recurrence_pattern.value,
            "recurrence_end_date": slot.recurrence_end_date,
        }

    @BaseService.measure_operation("update_availability")
    def update_availability(
        self,
        instructor_id: str,
        target_date: date,
        start_time: time,
        end_time: time,
        is_available: bool,
    ) -> InstructorAvailability:
        """
        Upsert the availability flag of one exact window.

        Raises:
            ValidationException: If start_time >= end_time
            ServiceException: If the write fails
        """
        self.validate_window(start_time, end_time)

        with self.transaction():
            existing = self.repository.find_exact_window(instructor_id, target_date, start_time, end_time)
            if existing:
                row = self.repository.update(existing.id, is_available=is_available)
            else:
                row = self.repository.create(
                    instructor_id=instructor_id,
                    date=target_date,
                    start_time=start_time,
                    end_time=end_time,
                    is_available=is_available,
                    is_recurring=False,
                    recurrence_pattern=RecurrencePattern.NONE.value,
                )

        if row is None:
            raise ServiceException("Failed to update instructor availability")
        return row

    # Reads

    @BaseService.measure_operation("get_availability")
    def get_availability(
        self, instructor_id: str, start_date: date, end_date: date
    ) -> List[InstructorAvailability]:
        """
        All availability rows for an instructor in [start_date, end_date].

        An empty list means "no information", not "fully available": on a
        read failure the error is logged and an empty list returned.
        """
        try:
            return self.repository.get_for_range(instructor_id, start_date, end_date)
        except Exception as e:
            self.logger.error(
                f"Error getting availability for {instructor_id} "
                f"between {start_date} and {end_date}: {str(e)}"
            )
            return []

    @BaseService.measure_operation("get_instructor_schedule")
    def get_instructor_schedule(
        self, instructor_id: str, start_date: date, end_date: date
    ) -> InstructorScheduleResponse:
        """Bookings and availability windows for an instructor's calendar."""
        try:
            bookings = self.booking_repository.get_instructor_bookings(instructor_id, start_date, end_date)
        except Exception as e:
            self.logger.error(f"Error getting schedule bookings for {instructor_id}: {str(e)}")
            bookings = []

        booking_entries = [
            ScheduleBookingEntry(
                id=booking.id,
                title=f"{booking.course.name} - {booking.student.full_name}",
                course_id=booking.course_id,
                course_name=booking.course.name,
                student_id=booking.student_id,
                student_name=booking.student.full_name,
                lesson_date=booking.lesson_date,
                start_time=hhmm(booking.lesson_time),
                end_time=hhmm(booking.end_time),
                status=booking.status,
            )
            for booking in bookings
        ]

        availability_entries = [
            ScheduleAvailabilityEntry(
                id=row.id,
                instructor_id=row.instructor_id,
                date=row.date,
                start_time=row.start_time,
                end_time=row.end_time,
                is_available=row.is_available,
                is_recurring=row.is_recurring,
                recurrence_pattern=row.recurrence_pattern,
                recurrence_end_date=row.recurrence_end_date,
                title="Available" if row.is_available else "Unavailable",
            )
            for row in self.get_availability(instructor_id, start_date, end_date)
        ]

        return InstructorScheduleResponse(bookings=booking_entries, availability=availability_entries)
