# backend/drivingschool/services/auto_schedule_service.py
"""
Auto-schedule Service for the driving school platform.

Turns a lesson request into a ranked list of concrete, conflict-free
lesson windows across eligible instructors:

    validate -> generate candidates -> score -> rank

Suggestions are advisory. Nothing is reserved; BookingService re-checks
conflicts when a suggestion is committed.
"""

from datetime import timedelta
import logging
import time as time_module
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import RoleName
from ..core.exceptions import DomainException, NotFoundException, ServiceException, ValidationException
from ..core.timezone_utils import get_school_today, get_user_today
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.scheduling_repository import SchedulingRepository
from ..schemas.scheduling import AutoScheduleResponse, ScheduleSuggestion, SchedulingRequest
from .base import BaseService
from .candidate_generator import CandidateGenerator
from .scoring import score_candidate
from .suggestion_ranker import rank_suggestions

logger = logging.getLogger(__name__)

FAILED_MESSAGE = "Failed to generate schedule suggestions"


class AutoScheduleService(BaseService):
    """Service producing ranked lesson suggestions."""

    def __init__(
        self,
        db: Session,
        repository: Optional[SchedulingRepository] = None,
        candidate_generator: Optional[CandidateGenerator] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_scheduling_repository(db)
        self.candidate_generator = candidate_generator or CandidateGenerator(
            db, scheduling_repository=self.repository
        )

    def _resolve_dates(
        self, request: SchedulingRequest, instructor: Optional[User] = None
    ) -> SchedulingRequest:
        """Fill missing dates from "today" in the pinned instructor's zone, else the school's."""
        today = get_user_today(instructor) if instructor is not None else get_school_today()
        earliest = request.earliest_date or today
        latest = request.latest_date or earliest + timedelta(days=settings.default_scheduling_window_days)
        if earliest > latest:
            raise ValidationException(
                "earliest_date cannot be after latest_date",
                code="INVALID_DATE_RANGE",
                details={"earliest_date": earliest.isoformat(), "latest_date": latest.isoformat()},
            )
        return request.model_copy(update={"earliest_date": earliest, "latest_date": latest})

    def _validate_course(self, course_id: str) -> None:
        course = self.repository.get_course(course_id)
        if course is None:
            raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
        if not course.is_active:
            raise ValidationException("Course is not active", code="COURSE_INACTIVE")

    def _validate_instructor(self, instructor_id: str) -> User:
        instructor = self.repository.get_user(instructor_id)
        if instructor is None:
            raise NotFoundException("Instructor not found", code="INSTRUCTOR_NOT_FOUND")
        if instructor.role != RoleName.INSTRUCTOR.value or not instructor.is_active:
            raise ValidationException(
                "User is not an active instructor",
                code="NOT_AN_INSTRUCTOR",
                details={"instructor_id": instructor_id},
            )
        return instructor

    def _instructors_for(self, request: SchedulingRequest) -> List[User]:
        return self.repository.get_active_instructors(request.instructor_id)

    @BaseService.measure_operation("auto_schedule_lesson")
    def auto_schedule_lesson(self, request: SchedulingRequest) -> AutoScheduleResponse:
        """
        Suggest lesson windows for a request.

        Args:
            request: Course, optional pinned instructor, preferences and date range

        Returns:
            Top suggestions by score, plus the count and the best one

        Raises:
            NotFoundException: If the course or pinned instructor does not exist
            ValidationException: If the request is inconsistent
            ServiceException: If suggestions could not be generated
        """
        try:
            self._validate_course(request.course_id)
            pinned = self._validate_instructor(request.instructor_id) if request.instructor_id else None
            resolved = self._resolve_dates(request, pinned)

            instructors = self._instructors_for(resolved)
            deadline = time_module.monotonic() + settings.auto_schedule_timeout_seconds

            suggestions: List[ScheduleSuggestion] = []
            for candidate, workload in self.candidate_generator.iter_candidates(
                resolved, instructors, deadline
            ):
                score, reasons = score_candidate(resolved, candidate, workload)
                suggestions.append(
                    ScheduleSuggestion(
                        instructor_id=candidate.instructor_id,
                        instructor_name=candidate.instructor_name,
                        date=candidate.date,
                        start_time=candidate.start_time,
                        end_time=candidate.end_time,
                        score=score,
                        reasons=reasons,
                    )
                )
        except DomainException:
            raise
        except Exception as e:
            self.logger.error(f"Error in auto-scheduling for course {request.course_id}: {str(e)}")
            raise ServiceException(FAILED_MESSAGE) from e

        ranked = rank_suggestions(suggestions)

        prometheus_metrics.record_candidates_evaluated(self.candidate_generator.evaluated)
        prometheus_metrics.record_suggestions_returned(len(ranked))
        self.log_operation(
            "auto_schedule_lesson",
            course_id=resolved.course_id,
            instructors=len(instructors),
            evaluated=self.candidate_generator.evaluated,
            suggestions=len(ranked),
            truncated=self.candidate_generator.truncated_reason,
        )

        return AutoScheduleResponse(
            suggestions=ranked,
            total_suggestions=len(ranked),
            best_suggestion=ranked[0] if ranked else None,
        )
