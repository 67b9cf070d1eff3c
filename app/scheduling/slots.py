"""Free-slot lookup and time suggestions for a day.

Informational helpers for the host when a candidate is blocked: they list
times that keep a comfortable buffer around every active session. Nothing here
changes a candidate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal

from app.scheduling.conflicts import INACTIVE_STATUSES
from app.scheduling.models import Student
from app.scheduling.time_utils import (
    DEFAULT_SESSION_DURATION_MINUTES,
    effective_duration,
    effective_time,
    format_time_12h,
    minutes_to_time,
    time_to_minutes,
)

BUFFER_MINUTES = 30
SLOT_STEP_MINUTES = 30
EARLIEST_SUGGESTION = 8 * 60
LATEST_SUGGESTION = 23 * 60
MAX_SUGGESTIONS = 3

DayPart = Literal["morning", "afternoon", "evening"]


@dataclass(frozen=True)
class FreeSlot:
    time: str
    duration_minutes: int
    day_part: DayPart

    @property
    def display(self) -> str:
        return format_time_12h(self.time)


@dataclass(frozen=True)
class TimeSuggestion:
    time: str
    label: str


def day_part(start_minutes: int) -> DayPart:
    hour = start_minutes // 60
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    return "evening"


def busy_intervals(
    students: list[Student],
    day: date,
    *,
    exclude_session_id: str | None = None,
) -> list[tuple[int, int]]:
    """Sorted [start, end) minute intervals of active sessions on ``day``.

    Unlike overlap scanning, each session's own duration is used here.
    """
    intervals = []
    for student in students:
        for session in student.sessions:
            if session.date != day or session.status in INACTIVE_STATUSES:
                continue
            if exclude_session_id is not None and session.id == exclude_session_id:
                continue
            start = time_to_minutes(effective_time(session, student))
            intervals.append((start, start + effective_duration(session, student)))
    intervals.sort()
    return intervals


def available_slots(
    students: list[Student],
    day: date,
    *,
    duration: int = DEFAULT_SESSION_DURATION_MINUTES,
    working_hours: tuple[str, str] = ("08:00", "22:00"),
    step: int = SLOT_STEP_MINUTES,
    buffer: int = BUFFER_MINUTES,
) -> list[FreeSlot]:
    """Every ``step``-aligned start within working hours that clears all sessions by ``buffer``."""
    work_start = time_to_minutes(working_hours[0])
    work_end = time_to_minutes(working_hours[1])
    busy = busy_intervals(students, day)

    slots: list[FreeSlot] = []
    slot_start = work_start
    while slot_start + duration <= work_end:
        slot_end = slot_start + duration
        clear = all(not (slot_start < end + buffer and slot_end + buffer > start) for start, end in busy)
        if clear:
            slots.append(FreeSlot(time=minutes_to_time(slot_start), duration_minutes=duration, day_part=day_part(slot_start)))
        slot_start += step
    return slots


def suggest_times(
    students: list[Student],
    day: date,
    *,
    duration: int = DEFAULT_SESSION_DURATION_MINUTES,
    exclude_session_id: str | None = None,
    buffer: int = BUFFER_MINUTES,
    limit: int = MAX_SUGGESTIONS,
) -> list[TimeSuggestion]:
    """Up to ``limit`` start times just before the first session or just after each session."""
    busy = busy_intervals(students, day, exclude_session_id=exclude_session_id)
    if not busy:
        return []

    suggestions: list[TimeSuggestion] = []
    first_start = busy[0][0]
    before_first = first_start - duration - buffer
    if before_first >= EARLIEST_SUGGESTION:
        time_str = minutes_to_time(before_first)
        suggestions.append(TimeSuggestion(time=time_str, label=f"Before: {format_time_12h(time_str)}"))

    for index, (_, end) in enumerate(busy):
        suggested_start = end + buffer
        next_interval = busy[index + 1] if index + 1 < len(busy) else None
        if next_interval is not None and suggested_start + duration + buffer > next_interval[0]:
            continue
        if suggested_start < LATEST_SUGGESTION:
            time_str = minutes_to_time(suggested_start)
            suggestions.append(TimeSuggestion(time=time_str, label=f"After: {format_time_12h(time_str)}"))

    return suggestions[:limit]
