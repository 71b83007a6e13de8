# backend/drivingschool/schemas/scheduling.py
"""
Scheduling request/response schemas: conflict checks, auto-schedule
requests and the ranked suggestions returned for them.
"""

import datetime
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ..core.enums import ConflictType
from ._strict_base import StrictModel, StrictRequestModel, hhmm

DateType = datetime.date
TimeType = datetime.time

_HHMM = re.compile(r"^\d{2}:\d{2}$")


class TimeWindow(StrictModel):
    start: str
    end: str


class ScheduleConflict(StrictModel):
    """One reason a window cannot be booked."""

    type: ConflictType
    message: str
    conflicting_id: Optional[str] = None
    conflicting_time: Optional[TimeWindow] = None


class ConflictCheckRequest(StrictRequestModel):
    instructor_id: str = Field(..., min_length=1)
    date: DateType
    start_time: TimeType
    end_time: TimeType
    exclude_booking_id: Optional[str] = None


class ConflictCheckResponse(StrictModel):
    has_conflicts: bool
    conflicts: List[ScheduleConflict]


class SchedulingRequest(StrictRequestModel):
    """
    Input to the auto-scheduler.

    earliest_date/latest_date default to today and today + the scheduling
    window when omitted; the service fills them in.
    """

    course_id: str = Field(..., min_length=1)
    instructor_id: Optional[str] = None
    student_id: str = Field(..., min_length=1)
    preferred_dates: List[DateType] = Field(default_factory=list)
    preferred_times: List[str] = Field(default_factory=list)
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    earliest_date: Optional[DateType] = None
    latest_date: Optional[DateType] = None
    avoid_weekends: bool = False

    @field_validator("preferred_times")
    @classmethod
    def validate_preferred_times(cls, v: List[str]) -> List[str]:
        for value in v:
            if not _HHMM.match(value):
                raise ValueError(f"preferred time {value!r} must use HH:MM")
        return v


class ScheduleSuggestion(BaseModel):
    """A conflict-free lesson window with its score and the reasons behind it."""

    model_config = ConfigDict(frozen=True)

    instructor_id: str
    instructor_name: str
    date: DateType
    start_time: TimeType
    end_time: TimeType
    score: int
    reasons: List[str] = Field(..., min_length=1)

    @field_serializer("start_time", "end_time")
    def _serialize_time(self, value: TimeType) -> str:
        return hhmm(value)


class AutoScheduleResponse(StrictModel):
    suggestions: List[ScheduleSuggestion]
    total_suggestions: int
    best_suggestion: Optional[ScheduleSuggestion] = None


class BookingCreate(StrictRequestModel):
    student_id: str = Field(..., min_length=1)
    instructor_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    lesson_date: DateType
    lesson_time: TimeType


class BookingReschedule(StrictRequestModel):
    lesson_date: DateType
    lesson_time: TimeType


class BookingResponse(StrictModel):
    id: str
    student_id: str
    instructor_id: str
    course_id: str
    lesson_date: DateType
    lesson_time: TimeType
    status: str

    @field_serializer("lesson_time")
    def _serialize_time(self, value: TimeType) -> str:
        return hhmm(value)
