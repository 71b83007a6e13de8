# backend/drivingschool/models/availability.py
"""
Availability models for the driving school platform.

An availability row declares that an instructor is (or explicitly is not)
willing to teach during a window on one date. Recurring rows are templates:
their concrete instances are separate non-recurring rows written when the
template is created, so each instance can be edited on its own.

Classes:
    InstructorAvailability: One availability/unavailability window
"""

import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import RecurrencePattern
from ..database import Base

logger = logging.getLogger(__name__)


class InstructorAvailability(Base):
    """Instructor availability window on a specific date."""

    __tablename__ = "instructor_availability"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    instructor_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_pattern = Column(String(10), nullable=False, default=RecurrencePattern.NONE.value)
    recurrence_end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    instructor = relationship("User")

    # Constraints
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_availability_time_order"),
        Index("idx_availability_instructor_date", "instructor_id", "date", "start_time"),
    )

    def __repr__(self) -> str:
        flag = "available" if self.is_available else "unavailable"
        return f"<InstructorAvailability {self.date} {self.start_time}-{self.end_time} {flag}>"
