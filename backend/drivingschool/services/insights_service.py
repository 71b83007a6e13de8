# backend/drivingschool/services/insights_service.py
"""
Scheduling insights over a trailing window of bookings.

Each report is computed independently; a failing report is logged and
returned empty so the others still reach the caller.
"""

from collections import Counter, defaultdict
from datetime import timedelta
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.timezone_utils import get_school_today
from ..repositories.factory import RepositoryFactory
from ..repositories.insights_repository import InsightsRepository
from ..schemas.insights import (
    BusyDay,
    InstructorUtilization,
    PeakHour,
    PopularCourse,
    SchedulingInsights,
)
from ..utils.time_utils import time_to_minutes
from .base import BaseService

logger = logging.getLogger(__name__)


def day_of_week_sunday_first(weekday_iso: int) -> int:
    """ISO weekday (Mon=1..Sun=7) to 1=Sunday..7=Saturday."""
    return weekday_iso % 7 + 1


class InsightsService(BaseService):
    """Read-only analytics for scheduling."""

    def __init__(self, db: Session, repository: Optional[InsightsRepository] = None):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_insights_repository(db)

    def _since(self):
        return get_school_today() - timedelta(days=settings.insights_lookback_days)

    @BaseService.measure_operation("get_scheduling_insights")
    def get_scheduling_insights(self, instructor_id: Optional[str] = None) -> SchedulingInsights:
        """
        Peak hours, busy days, instructor utilization and popular courses.

        Args:
            instructor_id: Restrict bookings to one instructor. Utilization is
                only reported across all instructors.

        Returns:
            SchedulingInsights; never raises
        """
        since = self._since()
        return SchedulingInsights(
            peak_hours=self.get_peak_hours(since, instructor_id),
            busy_days=self.get_busy_days(since, instructor_id),
            instructor_utilization=[] if instructor_id else self.get_instructor_utilization(since),
            popular_courses=self.get_popular_courses(since, instructor_id),
        )

    def get_peak_hours(self, since, instructor_id: Optional[str] = None) -> List[PeakHour]:
        try:
            slots = self.repository.get_booking_slots_since(since, instructor_id)
            counts = Counter(lesson_time.hour for _, lesson_time in slots)
            ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
            return [PeakHour(hour=hour, booking_count=count) for hour, count in ordered]
        except Exception as e:
            self.logger.error(f"Error computing peak hours: {str(e)}")
            return []

    def get_busy_days(self, since, instructor_id: Optional[str] = None) -> List[BusyDay]:
        try:
            slots = self.repository.get_booking_slots_since(since, instructor_id)
            counts = Counter(day_of_week_sunday_first(lesson_date.isoweekday()) for lesson_date, _ in slots)
            ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
            return [BusyDay(day_of_week=day, booking_count=count) for day, count in ordered]
        except Exception as e:
            self.logger.error(f"Error computing busy days: {str(e)}")
            return []

    def get_instructor_utilization(self, since) -> List[InstructorUtilization]:
        try:
            instructors = self.repository.get_active_instructors()

            available_minutes: Dict[str, int] = defaultdict(int)
            for instructor_id, start_time, end_time in self.repository.get_available_windows_since(since):
                available_minutes[instructor_id] += time_to_minutes(end_time) - time_to_minutes(start_time)

            booked_minutes = dict(self.repository.get_booked_minutes_since(since))

            report = []
            for instructor in instructors:
                total = available_minutes.get(instructor.id, 0)
                booked = booked_minutes.get(instructor.id, 0)
                rate = round(booked / total * 100, 2) if total > 0 else 0.0
                report.append(
                    InstructorUtilization(
                        instructor_id=instructor.id,
                        instructor_name=instructor.full_name,
                        total_hours=round(total / 60, 2),
                        booked_hours=round(booked / 60, 2),
                        utilization_rate=rate,
                    )
                )

            report.sort(key=lambda row: row.utilization_rate, reverse=True)
            return report
        except Exception as e:
            self.logger.error(f"Error computing instructor utilization: {str(e)}")
            return []

    def get_popular_courses(self, since, instructor_id: Optional[str] = None) -> List[PopularCourse]:
        try:
            rows = self.repository.get_popular_courses(since, settings.popular_courses_limit, instructor_id)
            return [
                PopularCourse(
                    course_id=course_id,
                    course_name=name,
                    booking_count=count,
                    avg_rating=round(avg_rating, 2),
                )
                for course_id, name, count, avg_rating in rows
            ]
        except Exception as e:
            self.logger.error(f"Error computing popular courses: {str(e)}")
            return []
