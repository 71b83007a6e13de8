"""
Repository layer for data access.

Usage:
    from drivingschool.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_conflict_checker_repository(db)
    bookings = repository.get_bookings_for_conflict_check(instructor_id, check_date)
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .factory import RepositoryFactory
from .insights_repository import InsightsRepository
from .scheduling_repository import SchedulingRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "BookingRepository",
    "ConflictCheckerRepository",
    "InsightsRepository",
    "RepositoryFactory",
    "SchedulingRepository",
]
