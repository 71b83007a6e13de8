# backend/drivingschool/models/user.py
"""
User model for the driving school platform.

Instructors, students and administrators are all users, differentiated by
the role field. The scheduling engine treats active users with the
instructor role as its instructor directory.
"""

import logging

from sqlalchemy import Boolean, Column, DateTime, Index, String
from sqlalchemy.sql import func
import ulid

from ..core.config import settings
from ..core.enums import RoleName
from ..database import Base

logger = logging.getLogger(__name__)


class User(Base):
    """
    Main user model.

    Attributes:
        id: ULID primary key
        email: Unique email address
        first_name: User's first name
        last_name: User's last name
        role: One of super_admin, admin, instructor, student
        timezone: IANA timezone the user's wall-clock times are expressed in
        is_active: Whether the user account is active
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default=RoleName.STUDENT.value)
    timezone = Column(String(50), nullable=False, default=lambda: settings.school_timezone)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (Index("idx_users_role_active", "role", "is_active"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_instructor(self) -> bool:
        return self.role == RoleName.INSTRUCTOR.value

    @property
    def is_student(self) -> bool:
        return self.role == RoleName.STUDENT.value

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
