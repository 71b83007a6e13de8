# backend/drivingschool/services/conflict_checker.py
"""
Conflict Checker Service for the driving school platform.

Decides whether a proposed lesson window is safe to book for an instructor:
- Overlap with bookings that still occupy time (not cancelled or completed)
- Overlap with windows the instructor marked unavailable

Windows are half-open, so back-to-back lessons do not conflict. A check
that cannot be completed is reported as a conflict rather than as "free".
"""

from dataclasses import dataclass, field
from datetime import date, time
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.enums import ConflictType
from ..models.availability import InstructorAvailability
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from ..repositories.factory import RepositoryFactory
from ..schemas.scheduling import ScheduleConflict, TimeWindow
from ..utils.time_utils import format_minutes, time_to_minutes, windows_overlap
from .base import BaseService

logger = logging.getLogger(__name__)

CHECK_FAILED_MESSAGE = "Error checking for conflicts"
UNAVAILABLE_MESSAGE = "Instructor is not available during this time"


def check_failed_conflicts() -> List[ScheduleConflict]:
    """The single conflict reported when a check could not be completed."""
    return [ScheduleConflict(type=ConflictType.OVERLAPPING, message=CHECK_FAILED_MESSAGE)]


@dataclass
class DayConflictIndex:
    """
    Blocking windows of one instructor on one date, in minutes since midnight.

    Booking ends may exceed a day's minutes when a lesson runs past midnight.
    """

    instructor_id: str
    date: date
    bookings: List[Tuple[int, int, Booking]] = field(default_factory=list)
    unavailable: List[Tuple[int, int, InstructorAvailability]] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        instructor_id: str,
        on_date: date,
        bookings: List[Booking],
        unavailable: List[InstructorAvailability],
    ) -> "DayConflictIndex":
        booking_windows = []
        for booking in bookings:
            start = time_to_minutes(booking.lesson_time)
            booking_windows.append((start, start + booking.duration_minutes, booking))

        unavailable_windows = [
            (time_to_minutes(row.start_time), time_to_minutes(row.end_time), row) for row in unavailable
        ]
        return cls(instructor_id, on_date, booking_windows, unavailable_windows)

    def conflicts_for(self, start_minute: int, end_minute: int) -> List[ScheduleConflict]:
        """Booking conflicts first, then unavailable windows."""
        conflicts: List[ScheduleConflict] = []

        for booking_start, booking_end, booking in self.bookings:
            if windows_overlap(start_minute, end_minute, booking_start, booking_end):
                conflicts.append(
                    ScheduleConflict(
                        type=ConflictType.BOOKING,
                        message=f"Conflicts with existing booking: {booking.course.name}",
                        conflicting_id=booking.id,
                        conflicting_time=TimeWindow(
                            start=format_minutes(booking_start), end=format_minutes(booking_end)
                        ),
                    )
                )

        for window_start, window_end, row in self.unavailable:
            if windows_overlap(start_minute, end_minute, window_start, window_end):
                conflicts.append(
                    ScheduleConflict(
                        type=ConflictType.UNAVAILABLE,
                        message=UNAVAILABLE_MESSAGE,
                        conflicting_id=row.id,
                        conflicting_time=TimeWindow(
                            start=format_minutes(window_start), end=format_minutes(window_end)
                        ),
                    )
                )

        return conflicts

    def is_free(self, start_minute: int, end_minute: int) -> bool:
        return not self.conflicts_for(start_minute, end_minute)


class ConflictChecker(BaseService):
    """
    Service for checking lesson windows against bookings and unavailability.

    Reads current rows on every call; nothing is cached across calls.
    """

    def __init__(self, db: Session, repository: Optional[ConflictCheckerRepository] = None):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional ConflictCheckerRepository instance
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)

    def load_day(
        self, instructor_id: str, check_date: date, exclude_booking_id: Optional[str] = None
    ) -> DayConflictIndex:
        """
        Read an instructor's blocking windows for one date.

        Raises:
            RepositoryException: If either read fails
        """
        bookings = self.repository.get_bookings_for_conflict_check(
            instructor_id, check_date, exclude_booking_id
        )
        unavailable = self.repository.get_unavailable_windows(instructor_id, check_date)
        return DayConflictIndex.build(instructor_id, check_date, bookings, unavailable)

    @BaseService.measure_operation("check_conflicts")
    def check_conflicts(
        self,
        instructor_id: str,
        check_date: date,
        start_time: time,
        end_time: time,
        exclude_booking_id: Optional[str] = None,
    ) -> List[ScheduleConflict]:
        """
        Check a proposed window against bookings and unavailability.

        Args:
            instructor_id: The instructor to check
            check_date: The date to check
            start_time: Start of the proposed window
            end_time: End of the proposed window
            exclude_booking_id: Booking to ignore (used when rescheduling it)

        Returns:
            Conflicts found; empty means the window is free. If the check
            itself fails, a single overlapping conflict is returned.
        """
        try:
            day = self.load_day(instructor_id, check_date, exclude_booking_id)
            conflicts = day.conflicts_for(time_to_minutes(start_time), time_to_minutes(end_time))
        except Exception as e:
            self.logger.error(
                f"Error checking conflicts for {instructor_id} on {check_date} "
                f"{start_time}-{end_time}: {str(e)}"
            )
            prometheus_metrics.record_conflict_check_failure()
            return check_failed_conflicts()

        if conflicts:
            self.logger.info(
                f"Found {len(conflicts)} conflicts for {instructor_id} "
                f"on {check_date} between {start_time}-{end_time}"
            )
        return conflicts

    def check_schedule_conflicts(
        self,
        instructor_id: str,
        check_date: date,
        start_time: time,
        end_time: time,
        exclude_booking_id: Optional[str] = None,
    ) -> List[ScheduleConflict]:
        """Alias of check_conflicts used by the HTTP layer."""
        return self.check_conflicts(instructor_id, check_date, start_time, end_time, exclude_booking_id)
