# backend/drivingschool/repositories/scheduling_repository.py
"""
SchedulingRepository - directory and workload reads for auto-scheduling.

Resolves the instructor set and the course for a scheduling request and
counts each instructor's active bookings in the requested date range.
"""

from datetime import date
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from ..models.course import Course
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SchedulingRepository(BaseRepository[User]):
    """Repository for instructor directory, course lookup and workload counts."""

    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_active_instructors(self, instructor_id: Optional[str] = None) -> List[User]:
        """
        Get active users with the instructor role.

        Args:
            instructor_id: Restrict to this instructor when given

        Returns:
            Instructors ordered by last name, first name, id
        """
        try:
            query = self.db.query(User).filter(
                User.role == RoleName.INSTRUCTOR.value,
                User.is_active.is_(True),
            )
            if instructor_id:
                query = query.filter(User.id == instructor_id)
            return cast(
                List[User], query.order_by(User.last_name, User.first_name, User.id).all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting active instructors: {str(e)}")
            raise RepositoryException(f"Failed to get instructors: {str(e)}")

    def get_user(self, user_id: str) -> Optional[User]:
        return self.get_by_id(user_id)

    def lock_instructor(self, instructor_id: str) -> Optional[User]:
        """
        Lock the instructor row until the current transaction ends.

        Booking commits for one instructor queue behind this lock on databases
        with SELECT ... FOR UPDATE; SQLite ignores the clause.
        """
        try:
            return cast(
                Optional[User],
                self.db.query(User).filter(User.id == instructor_id).with_for_update().first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking instructor {instructor_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock instructor: {str(e)}")

    def get_course(self, course_id: str) -> Optional[Course]:
        try:
            return cast(
                Optional[Course], self.db.query(Course).filter(Course.id == course_id).first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting course {course_id}: {str(e)}")
            raise RepositoryException(f"Failed to get course: {str(e)}")

    def count_active_bookings(self, instructor_id: str, start_date: date, end_date: date) -> int:
        """
        Count non-cancelled bookings for an instructor within a date range.

        Args:
            instructor_id: The instructor ID
            start_date: First date, inclusive
            end_date: Last date, inclusive

        Returns:
            Number of bookings
        """
        try:
            return int(
                self.db.query(Booking)
                .filter(
                    Booking.instructor_id == instructor_id,
                    Booking.lesson_date >= start_date,
                    Booking.lesson_date <= end_date,
                    Booking.status != BookingStatus.CANCELLED.value,
                )
                .count()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting instructor workload: {str(e)}")
            raise RepositoryException(f"Failed to count workload: {str(e)}")
