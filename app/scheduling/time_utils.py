"""Clock-time arithmetic for session slots.

Session times are "HH:MM" strings on a single day. Arithmetic happens in
minute offsets from midnight and wraps modulo one day in both directions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.scheduling.models import Session, Student

MINUTES_PER_DAY = 24 * 60

# Fallback slot when neither the session nor its student records a time
DEFAULT_SESSION_TIME = "16:00"
DEFAULT_SESSION_DURATION_MINUTES = 60


def time_to_minutes(time_str: str | None, default: str = DEFAULT_SESSION_TIME) -> int:
    """Convert an HH:MM string to minutes since midnight.

    Empty or missing input resolves to ``default``. Input is trusted internal
    data, so nothing beyond integer parsing is checked.
    """
    if not time_str:
        time_str = default
    hours, minutes = time_str.strip().split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    """Format a minute offset as HH:MM, wrapping past midnight either way."""
    normalized = minutes % MINUTES_PER_DAY
    return f"{normalized // 60:02d}:{normalized % 60:02d}"


def normalize_time(time_str: str) -> str:
    """Validate and zero-pad an HH:MM string ("9:5" -> "09:05").

    Raises:
        ValueError: If the value is not a valid clock time
    """
    parts = time_str.strip().split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Time must be HH:MM, got: {time_str!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Time out of range: {time_str!r}")
    return f"{hours:02d}:{minutes:02d}"


def effective_time(session: Session, student: Student | None = None, default: str = DEFAULT_SESSION_TIME) -> str:
    """Resolve the time a session actually takes place.

    Resolution order: the session's own time, then the owning student's
    default session time, then ``default``.
    """
    if session.time:
        return session.time
    if student is not None and student.default_session_time:
        return student.default_session_time
    return default


def effective_duration(
    session: Session,
    student: Student | None = None,
    default: int = DEFAULT_SESSION_DURATION_MINUTES,
) -> int:
    """Resolve a session's length in minutes (session, then student, then default)."""
    if session.duration_minutes:
        return session.duration_minutes
    if student is not None and student.default_duration_minutes:
        return student.default_duration_minutes
    return default


def format_time_12h(time_str: str | None) -> str:
    """Render HH:MM on a 12-hour clock, e.g. "16:30" -> "4:30 PM"."""
    total = time_to_minutes(time_str)
    hours, minutes = divmod(total, 60)
    period = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {period}"
