from __future__ import annotations

from datetime import date, time

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(t: time) -> int:
    """Minutes since midnight, seconds ignored."""
    return t.hour * 60 + t.minute


def minutes_to_time(minutes: int) -> time:
    """
    Convert minutes since midnight back to a time.

    Raises:
        ValueError: if the value falls outside a single day
    """
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    return time(minutes // 60, minutes % 60)


def format_time(t: time) -> str:
    """Always return HH:MM format"""
    return t.strftime("%H:%M")


def windows_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval overlap: [a_start, a_end) intersects [b_start, b_end)."""
    return start_a < end_b and start_b < end_a


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


def format_minutes(minutes: int) -> str:
    """HH:MM for a minute offset, wrapping values past midnight."""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
