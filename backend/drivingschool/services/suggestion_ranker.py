"""Ordering and truncation of scored suggestions."""

from typing import List, Optional, Sequence

from ..core.config import settings
from ..schemas.scheduling import ScheduleSuggestion


def rank_suggestions(
    suggestions: Sequence[ScheduleSuggestion], limit: Optional[int] = None
) -> List[ScheduleSuggestion]:
    """
    Highest score first, keeping generation order between equal scores.

    Args:
        suggestions: Suggestions in generation order
        limit: Maximum returned, defaults to settings.max_suggestions
    """
    top = settings.max_suggestions if limit is None else limit
    # sorted() is stable
    return sorted(suggestions, key=lambda s: s.score, reverse=True)[:top]
