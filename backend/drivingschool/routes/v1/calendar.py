# backend/drivingschool/routes/v1/calendar.py
"""
Calendar routes - API v1

Versioned scheduling endpoints under /api/v1/calendar.
All business logic delegated to the scheduling services.

Endpoints:
    GET /availability - Instructor availability for a date range
    POST /availability - Create one or many availability slots
    PUT /availability - Upsert a single availability window
    GET /schedule - Instructor calendar (bookings + availability)
    POST /schedule/conflicts - Check a window for conflicts
    POST /auto-schedule - Ranked lesson suggestions
    GET /auto-schedule/insights - Scheduling analytics
    POST /bookings - Commit a lesson
    POST /bookings/{booking_id}/cancel - Cancel a lesson
    POST /bookings/{booking_id}/reschedule - Move a lesson
"""

import asyncio
from datetime import date
import logging
from typing import List, NoReturn, Optional, Union

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ...api.dependencies import (
    get_auto_schedule_service,
    get_availability_service,
    get_booking_service,
    get_conflict_checker,
    get_current_active_user,
    get_insights_service,
)
from ...api.dependencies.auth import is_admin, is_instructor, is_student
from ...core.exceptions import DomainException, ForbiddenException
from ...models.user import User
from ...schemas.availability import (
    AvailabilityCreateResponse,
    AvailabilitySlotCreate,
    AvailabilitySlotResponse,
    AvailabilityUpdate,
    InstructorScheduleResponse,
)
from ...schemas.insights import SchedulingInsights
from ...schemas.scheduling import (
    AutoScheduleResponse,
    BookingCreate,
    BookingReschedule,
    BookingResponse,
    ConflictCheckRequest,
    ConflictCheckResponse,
    SchedulingRequest,
)
from ...services.auto_schedule_service import AutoScheduleService
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.conflict_checker import ConflictChecker
from ...services.insights_service import InsightsService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["calendar-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _forbidden(message: str) -> ForbiddenException:
    return ForbiddenException(message, code="FORBIDDEN")


def _ensure_can_view_instructor(user: User, instructor_id: str, what: str) -> None:
    if is_instructor(user) and user.id != instructor_id:
        raise _forbidden(f"Cannot view other instructor {what}")
    if is_student(user):
        raise _forbidden(f"Students cannot view instructor {what} directly")


def _ensure_can_manage_availability(user: User, instructor_id: str) -> None:
    if is_instructor(user):
        if user.id != instructor_id:
            raise _forbidden("Cannot manage availability for other instructors")
        return
    if not is_admin(user):
        raise _forbidden("Insufficient permissions")


def _ensure_can_book(user: User, student_id: str, instructor_id: str) -> None:
    if is_admin(user):
        return
    if is_student(user) and user.id == student_id:
        return
    if is_instructor(user) and user.id == instructor_id:
        return
    raise _forbidden("Cannot manage bookings for other users")


# ============================================================================
# Availability
# ============================================================================


@router.get("/availability", response_model=List[AvailabilitySlotResponse])
async def get_availability(
    instructor_id: str = Query(..., min_length=1),
    start_date: date = Query(...),
    end_date: date = Query(...),
    current_user: User = Depends(get_current_active_user),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilitySlotResponse]:
    """Availability rows for an instructor; empty when nothing is known."""
    _ensure_can_view_instructor(current_user, instructor_id, "availability")
    rows = await asyncio.to_thread(
        availability_service.get_availability, instructor_id, start_date, end_date
    )
    return [AvailabilitySlotResponse.model_validate(row) for row in rows]


@router.post(
    "/availability",
    response_model=AvailabilityCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_availability(
    payload: Union[AvailabilitySlotCreate, List[AvailabilitySlotCreate]] = Body(...),
    current_user: User = Depends(get_current_active_user),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityCreateResponse:
    """Create one slot or a batch; recurring slots are expanded."""
    slots = payload if isinstance(payload, list) else [payload]
    for slot in slots:
        _ensure_can_manage_availability(current_user, slot.instructor_id)

    try:
        created = await asyncio.to_thread(availability_service.create_slots, slots)
    except DomainException as e:
        handle_domain_exception(e)

    return AvailabilityCreateResponse(
        message=f"Successfully created {len(slots)} availability slot(s)",
        created=len(created),
    )


@router.put("/availability", response_model=AvailabilitySlotResponse)
async def update_availability(
    payload: AvailabilityUpdate,
    current_user: User = Depends(get_current_active_user),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilitySlotResponse:
    """Set the availability flag of one exact window, creating it if needed."""
    _ensure_can_manage_availability(current_user, payload.instructor_id)
    try:
        row = await asyncio.to_thread(
            availability_service.update_availability,
            payload.instructor_id,
            payload.date,
            payload.start_time,
            payload.end_time,
            payload.is_available,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilitySlotResponse.model_validate(row)


# ============================================================================
# Schedule
# ============================================================================


@router.get("/schedule", response_model=InstructorScheduleResponse)
async def get_schedule(
    instructor_id: str = Query(..., min_length=1),
    start_date: date = Query(...),
    end_date: date = Query(...),
    current_user: User = Depends(get_current_active_user),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> InstructorScheduleResponse:
    _ensure_can_view_instructor(current_user, instructor_id, "schedules")
    return await asyncio.to_thread(
        availability_service.get_instructor_schedule, instructor_id, start_date, end_date
    )


@router.post("/schedule/conflicts", response_model=ConflictCheckResponse)
async def check_schedule_conflicts(
    payload: ConflictCheckRequest,
    current_user: User = Depends(get_current_active_user),
    conflict_checker: ConflictChecker = Depends(get_conflict_checker),
) -> ConflictCheckResponse:
    """Conflicts for a proposed window; a failed check reports one conflict."""
    _ensure_can_view_instructor(current_user, payload.instructor_id, "bookings")
    conflicts = await asyncio.to_thread(
        conflict_checker.check_schedule_conflicts,
        payload.instructor_id,
        payload.date,
        payload.start_time,
        payload.end_time,
        payload.exclude_booking_id,
    )
    return ConflictCheckResponse(has_conflicts=bool(conflicts), conflicts=conflicts)


# ============================================================================
# Auto-schedule
# ============================================================================


@router.post("/auto-schedule", response_model=AutoScheduleResponse)
async def auto_schedule(
    payload: SchedulingRequest,
    current_user: User = Depends(get_current_active_user),
    auto_schedule_service: AutoScheduleService = Depends(get_auto_schedule_service),
) -> AutoScheduleResponse:
    if is_student(current_user) and current_user.id != payload.student_id:
        raise _forbidden("Students can only schedule lessons for themselves")

    try:
        return await asyncio.to_thread(auto_schedule_service.auto_schedule_lesson, payload)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/auto-schedule/insights", response_model=SchedulingInsights)
async def get_scheduling_insights(
    instructor_id: Optional[str] = Query(None),
    current_user: User = Depends(get_current_active_user),
    insights_service: InsightsService = Depends(get_insights_service),
) -> SchedulingInsights:
    """Admins see everything; instructors only their own bookings."""
    if is_instructor(current_user):
        instructor_id = current_user.id
    elif not is_admin(current_user):
        raise _forbidden("Insufficient permissions to view scheduling insights")

    return await asyncio.to_thread(insights_service.get_scheduling_insights, instructor_id)


# ============================================================================
# Bookings
# ============================================================================


@router.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Commit a lesson after re-checking its window under the booking lock."""
    _ensure_can_book(current_user, payload.student_id, payload.instructor_id)
    try:
        booking = await asyncio.to_thread(
            booking_service.commit_booking,
            payload.student_id,
            payload.instructor_id,
            payload.course_id,
            payload.lesson_date,
            payload.lesson_time,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


async def _load_owned_booking(booking_service: BookingService, booking_id: str, user: User):
    booking = await asyncio.to_thread(booking_service.repository.get_with_details, booking_id)
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    _ensure_can_book(user, booking.student_id, booking.instructor_id)
    return booking


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    await _load_owned_booking(booking_service, booking_id, current_user)
    try:
        booking = await asyncio.to_thread(booking_service.cancel_booking, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/bookings/{booking_id}/reschedule", response_model=BookingResponse)
async def reschedule_booking(
    booking_id: str,
    payload: BookingReschedule,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    await _load_owned_booking(booking_service, booking_id, current_user)
    try:
        booking = await asyncio.to_thread(
            booking_service.reschedule_booking, booking_id, payload.lesson_date, payload.lesson_time
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)
