# backend/drivingschool/models/course.py
"""Course catalogue entry. A booking's lesson length comes from its course."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Course(Base):
    __tablename__ = "courses"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(100), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (CheckConstraint("duration_minutes > 0", name="check_course_duration_positive"),)

    def __repr__(self) -> str:
        return f"<Course {self.name} ({self.duration_minutes}m)>"
