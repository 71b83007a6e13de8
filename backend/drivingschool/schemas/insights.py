"""Scheduling insights response schemas."""

from typing import List

from pydantic import Field

from ._strict_base import StrictModel


class PeakHour(StrictModel):
    hour: int = Field(..., ge=0, le=23)
    booking_count: int


class BusyDay(StrictModel):
    day_of_week: int = Field(..., ge=1, le=7, description="1 = Sunday ... 7 = Saturday")
    booking_count: int


class InstructorUtilization(StrictModel):
    instructor_id: str
    instructor_name: str
    total_hours: float
    booked_hours: float
    utilization_rate: float


class PopularCourse(StrictModel):
    course_id: str
    course_name: str
    booking_count: int
    avg_rating: float


class SchedulingInsights(StrictModel):
    peak_hours: List[PeakHour] = Field(default_factory=list)
    busy_days: List[BusyDay] = Field(default_factory=list)
    instructor_utilization: List[InstructorUtilization] = Field(default_factory=list)
    popular_courses: List[PopularCourse] = Field(default_factory=list)
