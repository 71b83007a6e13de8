# backend/drivingschool/repositories/factory.py
"""
Repository Factory for the scheduling backend.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository
    from .booking_repository import BookingRepository
    from .conflict_checker_repository import ConflictCheckerRepository
    from .insights_repository import InsightsRepository
    from .scheduling_repository import SchedulingRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services can be handed fakes in tests.
    """

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for availability operations."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> "ConflictCheckerRepository":
        """Create repository for conflict checking queries."""
        from .conflict_checker_repository import ConflictCheckerRepository

        return ConflictCheckerRepository(db)

    @staticmethod
    def create_scheduling_repository(db: Session) -> "SchedulingRepository":
        """Create repository for instructor directory and workload queries."""
        from .scheduling_repository import SchedulingRepository

        return SchedulingRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_insights_repository(db: Session) -> "InsightsRepository":
        """Create repository for scheduling analytics."""
        from .insights_repository import InsightsRepository

        return InsightsRepository(db)
