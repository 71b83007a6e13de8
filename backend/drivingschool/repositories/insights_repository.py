# backend/drivingschool/repositories/insights_repository.py
"""
InsightsRepository - read-only aggregates behind the scheduling insights.

Course popularity is aggregated in SQL. Hour-of-day, day-of-week and
duration arithmetic are dialect specific, so those queries return the
narrow rows and the service groups them in Python.
"""

from datetime import date, time
import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..core.exceptions import RepositoryException
from ..models.availability import InstructorAvailability
from ..models.booking import Booking, BookingStatus
from ..models.course import Course
from ..models.user import User

logger = logging.getLogger(__name__)


class InsightsRepository:
    """Repository for scheduling analytics queries."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(__name__)

    def get_booking_slots_since(
        self, since: date, instructor_id: Optional[str] = None
    ) -> List[Tuple[date, time]]:
        """(lesson_date, lesson_time) for every booking on or after a date."""
        try:
            query = self.db.query(Booking.lesson_date, Booking.lesson_time).filter(
                Booking.lesson_date >= since
            )
            if instructor_id:
                query = query.filter(Booking.instructor_id == instructor_id)
            return [(row[0], row[1]) for row in query.all()]
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking slots: {str(e)}")
            raise RepositoryException(f"Failed to get booking slots: {str(e)}")

    def get_active_instructors(self) -> List[User]:
        try:
            return (
                self.db.query(User)
                .filter(User.role == RoleName.INSTRUCTOR.value, User.is_active.is_(True))
                .order_by(User.last_name, User.first_name, User.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting instructors for utilization: {str(e)}")
            raise RepositoryException(f"Failed to get instructors: {str(e)}")

    def get_available_windows_since(self, since: date) -> List[Tuple[str, time, time]]:
        """(instructor_id, start_time, end_time) for available rows on or after a date."""
        try:
            rows = (
                self.db.query(
                    InstructorAvailability.instructor_id,
                    InstructorAvailability.start_time,
                    InstructorAvailability.end_time,
                )
                .filter(
                    InstructorAvailability.is_available.is_(True),
                    InstructorAvailability.date >= since,
                )
                .all()
            )
            return [(row[0], row[1], row[2]) for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting available windows: {str(e)}")
            raise RepositoryException(f"Failed to get available windows: {str(e)}")

    def get_booked_minutes_since(self, since: date) -> List[Tuple[str, int]]:
        """(instructor_id, total booked minutes) over non-cancelled bookings."""
        try:
            rows = (
                self.db.query(Booking.instructor_id, func.sum(Course.duration_minutes))
                .join(Course, Booking.course_id == Course.id)
                .filter(
                    Booking.lesson_date >= since,
                    Booking.status != BookingStatus.CANCELLED.value,
                )
                .group_by(Booking.instructor_id)
                .all()
            )
            return [(row[0], int(row[1] or 0)) for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booked minutes: {str(e)}")
            raise RepositoryException(f"Failed to get booked minutes: {str(e)}")

    def get_popular_courses(
        self, since: date, limit: int, instructor_id: Optional[str] = None
    ) -> List[Tuple[str, str, int, float]]:
        """
        Booking count and average rating per active course.

        Returns:
            (course_id, course_name, booking_count, avg_rating) ordered by count desc
        """
        try:
            join_condition = and_(Booking.course_id == Course.id, Booking.lesson_date >= since)
            if instructor_id:
                join_condition = and_(join_condition, Booking.instructor_id == instructor_id)

            booking_count = func.count(Booking.id)
            rows = (
                self.db.query(
                    Course.id,
                    Course.name,
                    booking_count,
                    func.coalesce(func.avg(Booking.rating), 0),
                )
                .outerjoin(Booking, join_condition)
                .filter(Course.is_active.is_(True))
                .group_by(Course.id, Course.name)
                .order_by(booking_count.desc(), Course.name)
                .limit(limit)
                .all()
            )
            return [(row[0], row[1], int(row[2]), float(row[3] or 0)) for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting popular courses: {str(e)}")
            raise RepositoryException(f"Failed to get popular courses: {str(e)}")
