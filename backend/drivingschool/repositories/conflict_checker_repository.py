# backend/drivingschool/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for the scheduling backend.

Supplies the two data sets a conflict decision needs for one instructor
and one date: the bookings that still occupy time (with their course
loaded so the lesson length is known) and the windows explicitly marked
unavailable. Nothing here is cached; every call reads current rows.
"""

from datetime import date
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.availability import InstructorAvailability
from ..models.booking import NON_BLOCKING_STATUSES, Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConflictCheckerRepository(BaseRepository[Booking]):
    """Repository for conflict checking data access."""

    def __init__(self, db: Session):
        """Initialize with Booking model as primary."""
        super().__init__(db, Booking)

    # Booking Conflict Queries

    def get_bookings_for_conflict_check(
        self, instructor_id: str, check_date: date, exclude_booking_id: Optional[str] = None
    ) -> List[Booking]:
        """
        Get bookings that still block time for an instructor on a date.

        Cancelled and completed bookings are left out.

        Args:
            instructor_id: The instructor to check
            check_date: The date to check for conflicts
            exclude_booking_id: Optional booking ID to exclude from results

        Returns:
            Bookings with their course loaded, ordered by start time
        """
        try:
            query = (
                self.db.query(Booking)
                .options(joinedload(Booking.course))
                .filter(
                    Booking.instructor_id == instructor_id,
                    Booking.lesson_date == check_date,
                    Booking.status.notin_(NON_BLOCKING_STATUSES),
                )
            )

            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)

            return cast(List[Booking], query.order_by(Booking.lesson_time).all())

        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict bookings: {str(e)}")

    # Unavailability Queries

    def get_unavailable_windows(
        self, instructor_id: str, check_date: date
    ) -> List[InstructorAvailability]:
        """
        Get windows the instructor explicitly marked as unavailable on a date.

        Args:
            instructor_id: The instructor ID
            check_date: The date to check

        Returns:
            Unavailable rows ordered by start time
        """
        try:
            return cast(
                List[InstructorAvailability],
                self.db.query(InstructorAvailability)
                .filter(
                    InstructorAvailability.instructor_id == instructor_id,
                    InstructorAvailability.date == check_date,
                    InstructorAvailability.is_available.is_(False),
                )
                .order_by(InstructorAvailability.start_time)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting unavailable windows: {str(e)}")
            raise RepositoryException(f"Failed to get unavailable windows: {str(e)}")
