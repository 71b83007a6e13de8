"""
Suggestion scoring.

Scores are additive integers; every increment or penalty contributes one
human-readable reason, in the order applied.
"""

from typing import List, Optional, Tuple

from ..core.config import settings
from ..schemas.scheduling import SchedulingRequest
from ..utils.time_utils import format_minutes
from .candidate_generator import ScheduleCandidate

BASE_SCORE = 100
PREFERRED_DATE_BONUS = 20
PREFERRED_TIME_BONUS = 15
MORNING_BONUS = 10
AFTERNOON_BONUS = 5
HIGH_WORKLOAD_PENALTY = -10
LOW_WORKLOAD_BONUS = 5

MORNING_HOURS = range(9, 13)
AFTERNOON_HOURS = range(13, 18)


def score_candidate(
    request: SchedulingRequest,
    candidate: ScheduleCandidate,
    workload: int,
    *,
    high_workload: Optional[int] = None,
    low_workload: Optional[int] = None,
) -> Tuple[int, List[str]]:
    """
    Score one conflict-free window.

    Args:
        request: The scheduling request (preferences)
        candidate: Window being scored
        workload: Instructor's active bookings in the request's date range
        high_workload: Penalty threshold, defaults to settings
        low_workload: Bonus threshold, defaults to settings

    Returns:
        (score, reasons)
    """
    high = settings.high_workload_threshold if high_workload is None else high_workload
    low = settings.low_workload_threshold if low_workload is None else low_workload

    score = BASE_SCORE
    reasons = ["Available time slot"]

    if candidate.date in request.preferred_dates:
        score += PREFERRED_DATE_BONUS
        reasons.append("Matches preferred date")

    if format_minutes(candidate.start_minute) in request.preferred_times:
        score += PREFERRED_TIME_BONUS
        reasons.append("Matches preferred time")

    hour = candidate.start_minute // 60
    if hour in MORNING_HOURS:
        score += MORNING_BONUS
        reasons.append("Optimal morning time")
    elif hour in AFTERNOON_HOURS:
        score += AFTERNOON_BONUS
        reasons.append("Good afternoon time")

    if workload > high:
        score += HIGH_WORKLOAD_PENALTY
        reasons.append("High instructor workload")
    elif workload < low:
        score += LOW_WORKLOAD_BONUS
        reasons.append("Low instructor workload")

    return score, reasons
