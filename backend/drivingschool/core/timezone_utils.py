"""
Timezone utilities for the driving school platform.

Lesson and availability times are stored as local wall-clock values. Each
user carries an IANA timezone; the school timezone from settings is the
fallback and the reference for date-range defaults.
"""

from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

import pytz

from .config import settings

if TYPE_CHECKING:
    from drivingschool.models.user import User


def get_school_timezone() -> pytz.BaseTzInfo:
    """Timezone the school operates in."""
    return pytz.timezone(settings.school_timezone)


def get_school_today() -> date:
    """'Today' in the school timezone."""
    return datetime.now(get_school_timezone()).date()


def get_user_timezone(user: Optional["User"]) -> pytz.BaseTzInfo:
    """
    Get user's timezone preference.

    Args:
        user: User object, or None for the school default

    Returns:
        User's timezone as pytz timezone object
    """
    if user is None or not user.timezone:
        return get_school_timezone()
    return pytz.timezone(user.timezone)


def get_user_today(user: Optional["User"]) -> date:
    """
    Get 'today' in the user's timezone.

    Args:
        user: User object

    Returns:
        Today's date in user's timezone
    """
    return datetime.now(get_user_timezone(user)).date()

