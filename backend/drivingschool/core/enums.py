# backend/drivingschool/core/enums.py
"""
Core enums for the driving school platform.

Role names match the dashboard roles; recurrence and conflict types are
the vocabulary of the scheduling engine.
"""

from enum import Enum


class RoleName(str, Enum):
    """Standard role names."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


ADMIN_ROLES = frozenset({RoleName.SUPER_ADMIN.value, RoleName.ADMIN.value})


class RecurrencePattern(str, Enum):
    """How an availability slot repeats."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ConflictType(str, Enum):
    """Kinds of schedule conflict reported by the conflict checker."""

    BOOKING = "booking"
    UNAVAILABLE = "unavailable"
    OVERLAPPING = "overlapping"  # synthetic, returned when the check itself failed
