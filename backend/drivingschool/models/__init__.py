"""SQLAlchemy models. Importing this package registers every table on Base.metadata."""

from .availability import InstructorAvailability
from .booking import Booking, BookingStatus
from .course import Course
from .user import User

__all__ = [
    "Booking",
    "BookingStatus",
    "Course",
    "InstructorAvailability",
    "User",
]
