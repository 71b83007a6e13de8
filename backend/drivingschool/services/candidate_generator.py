# backend/drivingschool/services/candidate_generator.py
"""
Candidate generation for the auto-scheduler.

Walks every instructor's available windows in the requested date range and
slides a lesson-length window through each in fixed steps, yielding the
positions that are conflict-free at generation time. Work per request is
bounded by a window cap and a deadline.
"""

from dataclasses import dataclass
from datetime import date
import logging
import time as time_module
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.availability import InstructorAvailability
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.availability_repository import AvailabilityRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.scheduling_repository import SchedulingRepository
from ..schemas.scheduling import SchedulingRequest
from ..utils.time_utils import is_weekend, minutes_to_time, time_to_minutes
from .conflict_checker import ConflictChecker, DayConflictIndex

logger = logging.getLogger(__name__)

TRUNCATED_CAP = "cap"
TRUNCATED_DEADLINE = "deadline"


@dataclass(frozen=True)
class ScheduleCandidate:
    instructor_id: str
    instructor_name: str
    date: date
    start_minute: int
    end_minute: int

    @property
    def start_time(self):
        return minutes_to_time(self.start_minute)

    @property
    def end_time(self):
        return minutes_to_time(self.end_minute)


class CandidateGenerator:
    """
    Lazy producer of conflict-free lesson windows.

    Generation order is instructor, then date, then start time. One
    generator instance serves one request; evaluated and truncated_reason
    describe the last run.
    """

    def __init__(
        self,
        db: Session,
        conflict_checker: Optional[ConflictChecker] = None,
        availability_repository: Optional[AvailabilityRepository] = None,
        scheduling_repository: Optional[SchedulingRepository] = None,
        *,
        step_minutes: Optional[int] = None,
        max_windows: Optional[int] = None,
    ):
        self.db = db
        self.conflict_checker = conflict_checker or ConflictChecker(db)
        self.availability_repository = (
            availability_repository or RepositoryFactory.create_availability_repository(db)
        )
        self.scheduling_repository = (
            scheduling_repository or RepositoryFactory.create_scheduling_repository(db)
        )
        self.step_minutes = step_minutes or settings.slot_step_minutes
        self.max_windows = max_windows or settings.max_candidate_windows

        self.evaluated = 0
        self.truncated_reason: Optional[str] = None
        self._day_cache: Dict[Tuple[str, date], Optional[DayConflictIndex]] = {}

    def _day_index(self, instructor_id: str, on_date: date) -> Optional[DayConflictIndex]:
        """
        Blocking windows for (instructor, date), loaded once per request.

        None means the day could not be read and none of its windows may be offered.
        """
        key = (instructor_id, on_date)
        if key not in self._day_cache:
            try:
                self._day_cache[key] = self.conflict_checker.load_day(instructor_id, on_date)
            except Exception as e:
                logger.error(f"Error loading conflicts for {instructor_id} on {on_date}: {str(e)}")
                prometheus_metrics.record_conflict_check_failure()
                self._day_cache[key] = None
        return self._day_cache[key]

    def _instructor_inputs(
        self, instructor: User, request: SchedulingRequest
    ) -> Optional[Tuple[int, List[InstructorAvailability]]]:
        """
        Workload and availability for one instructor, or None to skip them.

        A failed read only removes this instructor from the run.
        """
        try:
            workload = self.scheduling_repository.count_active_bookings(
                instructor.id, request.earliest_date, request.latest_date
            )
        except Exception as e:
            logger.error(f"Error counting workload for instructor {instructor.id}: {str(e)}")
            prometheus_metrics.record_instructor_skipped("workload")
            return None

        try:
            slots = self.availability_repository.get_for_range(
                instructor.id, request.earliest_date, request.latest_date
            )
        except Exception as e:
            logger.error(f"Error getting availability for instructor {instructor.id}: {str(e)}")
            prometheus_metrics.record_instructor_skipped("availability")
            return None

        return workload, slots

    def _truncate(self, reason: str) -> None:
        self.truncated_reason = reason
        prometheus_metrics.record_auto_schedule_truncated(reason)
        logger.warning(
            f"Auto-schedule stopped early ({reason}) after evaluating {self.evaluated} windows"
        )

    def iter_candidates(
        self,
        request: SchedulingRequest,
        instructors: Sequence[User],
        deadline: Optional[float] = None,
    ) -> Iterator[Tuple[ScheduleCandidate, int]]:
        """
        Yield (candidate, instructor workload) pairs.

        Args:
            request: Scheduling request with earliest_date and latest_date resolved
            instructors: Instructors to consider, already ordered
            deadline: time.monotonic() value after which generation stops

        Yields:
            Conflict-free candidates with the workload of their instructor
        """
        if request.earliest_date is None or request.latest_date is None:
            raise ValueError("earliest_date and latest_date must be resolved before generation")

        self.evaluated = 0
        self.truncated_reason = None
        self._day_cache = {}
        duration = request.duration_minutes

        for instructor in instructors:
            inputs = self._instructor_inputs(instructor, request)
            if inputs is None:
                continue
            workload, slots = inputs

            for slot in slots:
                if not slot.is_available:
                    continue
                if request.avoid_weekends and is_weekend(slot.date):
                    continue

                slot_start = time_to_minutes(slot.start_time)
                slot_end = time_to_minutes(slot.end_time)
                current = slot_start

                while current + duration <= slot_end:
                    if self.evaluated >= self.max_windows:
                        self._truncate(TRUNCATED_CAP)
                        return
                    if deadline is not None and time_module.monotonic() > deadline:
                        self._truncate(TRUNCATED_DEADLINE)
                        return

                    self.evaluated += 1
                    day = self._day_index(instructor.id, slot.date)
                    if day is not None and day.is_free(current, current + duration):
                        yield (
                            ScheduleCandidate(
                                instructor_id=instructor.id,
                                instructor_name=instructor.full_name,
                                date=slot.date,
                                start_minute=current,
                                end_minute=current + duration,
                            ),
                            workload,
                        )

                    current += self.step_minutes

    def collect(
        self,
        request: SchedulingRequest,
        instructors: Sequence[User],
        deadline: Optional[float] = None,
    ) -> List[Tuple[ScheduleCandidate, int]]:
        return list(self.iter_candidates(request, instructors, deadline))
