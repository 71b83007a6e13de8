# backend/drivingschool/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each factory builds a service bound to the request's database session.
Tests replace these through app.dependency_overrides.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.auto_schedule_service import AutoScheduleService
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.conflict_checker import ConflictChecker
from ...services.insights_service import InsightsService
from .database import get_db


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_conflict_checker(db: Session = Depends(get_db)) -> ConflictChecker:
    return ConflictChecker(db)


def get_auto_schedule_service(db: Session = Depends(get_db)) -> AutoScheduleService:
    return AutoScheduleService(db)


def get_insights_service(db: Session = Depends(get_db)) -> InsightsService:
    return InsightsService(db)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Get BookingService instance with its conflict checker on the same session."""
    return BookingService(db)
