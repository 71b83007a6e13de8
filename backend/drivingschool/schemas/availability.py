# backend/drivingschool/schemas/availability.py
"""
Availability schemas.

Time-order and recurrence rules are enforced in AvailabilityService so a
batch is accepted or rejected as a whole; these models only shape and type
the payloads.
"""

import datetime
from typing import List, Optional

from pydantic import Field, field_serializer

from ..core.enums import RecurrencePattern
from ._strict_base import StrictModel, StrictRequestModel, hhmm

# Type aliases for clarity
DateType = datetime.date
TimeType = datetime.time


class AvailabilitySlotCreate(StrictRequestModel):
    """One availability window, optionally a recurring template."""

    instructor_id: str = Field(..., min_length=1)
    date: DateType
    start_time: TimeType
    end_time: TimeType
    is_available: bool = True
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern = RecurrencePattern.NONE
    recurrence_end_date: Optional[DateType] = None


class AvailabilityUpdate(StrictRequestModel):
    """Upsert of a single window keyed on (instructor, date, start, end)."""

    instructor_id: str = Field(..., min_length=1)
    date: DateType
    start_time: TimeType
    end_time: TimeType
    is_available: bool


class AvailabilitySlotResponse(StrictModel):
    id: str
    instructor_id: str
    date: DateType
    start_time: TimeType
    end_time: TimeType
    is_available: bool
    is_recurring: bool
    recurrence_pattern: RecurrencePattern
    recurrence_end_date: Optional[DateType] = None

    @field_serializer("start_time", "end_time")
    def _serialize_time(self, value: TimeType) -> str:
        return hhmm(value)


class AvailabilityCreateResponse(StrictModel):
    success: bool = True
    message: str
    created: int


class ScheduleBookingEntry(StrictModel):
    """A booking as shown on the instructor calendar."""

    id: str
    type: str = "booking"
    title: str
    course_id: str
    course_name: str
    student_id: str
    student_name: str
    lesson_date: DateType
    start_time: str
    end_time: str
    status: str


class ScheduleAvailabilityEntry(AvailabilitySlotResponse):
    type: str = "availability"
    title: str


class InstructorScheduleResponse(StrictModel):
    bookings: List[ScheduleBookingEntry] = Field(default_factory=list)
    availability: List[ScheduleAvailabilityEntry] = Field(default_factory=list)
