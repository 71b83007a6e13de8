# backend/drivingschool/repositories/booking_repository.py
"""
BookingRepository - booking rows for the commit path and calendar views.
"""

from datetime import date
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_with_details(self, booking_id: str) -> Optional[Booking]:
        """Booking with course and student loaded."""
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking)
                .options(joinedload(Booking.course), joinedload(Booking.student))
                .filter(Booking.id == booking_id)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to get booking: {str(e)}")

    def get_instructor_bookings(
        self, instructor_id: str, start_date: date, end_date: date
    ) -> List[Booking]:
        """
        Get every booking of an instructor in a date range, any status.

        Args:
            instructor_id: The instructor ID
            start_date: First date, inclusive
            end_date: Last date, inclusive

        Returns:
            Bookings with course and student loaded, ordered by date and time
        """
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .options(joinedload(Booking.course), joinedload(Booking.student))
                .filter(
                    Booking.instructor_id == instructor_id,
                    Booking.lesson_date >= start_date,
                    Booking.lesson_date <= end_date,
                )
                .order_by(Booking.lesson_date, Booking.lesson_time)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting instructor bookings: {str(e)}")
            raise RepositoryException(f"Failed to get bookings: {str(e)}")
