# backend/drivingschool/models/booking.py
"""
Booking model for the driving school platform.

A booking stores its instructor, date and start time directly; the lesson
length is taken from the booked course, so the occupied window is
[lesson_time, lesson_time + course.duration_minutes).
"""

from datetime import time
from enum import Enum
import logging
from typing import Optional

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, String, Time
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from ..utils.time_utils import MINUTES_PER_DAY, minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


# Statuses that never block a new booking
NON_BLOCKING_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value)


class Booking(Base):
    """Lesson booking between a student and an instructor."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    student_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    instructor_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    course_id = Column(String(26), ForeignKey("courses.id"), nullable=False)

    lesson_date = Column(Date, nullable=False, index=True)
    lesson_time = Column(Time, nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.SCHEDULED.value, index=True)
    rating = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    student = relationship("User", foreign_keys=[student_id])
    instructor = relationship("User", foreign_keys=[instructor_id])
    course = relationship("Course")

    __table_args__ = (
        Index("idx_bookings_instructor_date", "instructor_id", "lesson_date"),
        CheckConstraint("rating IS NULL OR (rating BETWEEN 1 AND 5)", name="check_booking_rating"),
    )

    @property
    def duration_minutes(self) -> int:
        return int(self.course.duration_minutes)

    @property
    def end_time(self) -> Optional[time]:
        """Lesson end derived from the course duration."""
        if self.lesson_time is None or self.course is None:
            return None
        end = time_to_minutes(self.lesson_time) + self.duration_minutes
        return minutes_to_time(end % MINUTES_PER_DAY)

    def is_blocking(self) -> bool:
        return self.status not in NON_BLOCKING_STATUSES

    def __repr__(self) -> str:
        return f"<Booking {self.id} {self.lesson_date} {self.lesson_time} {self.status}>"
