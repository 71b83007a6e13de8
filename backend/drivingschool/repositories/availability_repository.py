# backend/drivingschool/repositories/availability_repository.py
"""
AvailabilityRepository - instructor availability windows.

Reads and writes rows of the instructor_availability table: date-range
listings, exact-window lookups for upserts, and batch inserts used by
recurrence expansion.
"""

from datetime import date, time
import logging
from typing import Any, Dict, List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import InstructorAvailability
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[InstructorAvailability]):
    """Repository for instructor availability rows."""

    def __init__(self, db: Session):
        super().__init__(db, InstructorAvailability)

    def get_for_range(
        self, instructor_id: str, start_date: date, end_date: date
    ) -> List[InstructorAvailability]:
        """
        Get every availability row (available and unavailable) in a date range.

        Args:
            instructor_id: The instructor ID
            start_date: First date, inclusive
            end_date: Last date, inclusive

        Returns:
            Rows ordered by date then start time
        """
        try:
            return cast(
                List[InstructorAvailability],
                self.db.query(InstructorAvailability)
                .filter(
                    InstructorAvailability.instructor_id == instructor_id,
                    InstructorAvailability.date >= start_date,
                    InstructorAvailability.date <= end_date,
                )
                .order_by(
                    InstructorAvailability.date,
                    InstructorAvailability.start_time,
                    InstructorAvailability.end_time,
                )
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting availability range: {str(e)}")
            raise RepositoryException(f"Failed to get availability: {str(e)}")

    def find_exact_window(
        self, instructor_id: str, target_date: date, start_time: time, end_time: time
    ) -> Optional[InstructorAvailability]:
        """Find the row keyed on (instructor, date, start, end) exactly."""
        try:
            return cast(
                Optional[InstructorAvailability],
                self.db.query(InstructorAvailability)
                .filter(
                    InstructorAvailability.instructor_id == instructor_id,
                    InstructorAvailability.date == target_date,
                    InstructorAvailability.start_time == start_time,
                    InstructorAvailability.end_time == end_time,
                )
                .order_by(InstructorAvailability.created_at)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding availability window: {str(e)}")
            raise RepositoryException(f"Failed to find availability window: {str(e)}")

    def create_many(self, rows: List[Dict[str, Any]]) -> List[InstructorAvailability]:
        """Insert a batch of rows with one flush."""
        if not rows:
            return []
        return self.bulk_create(rows)
