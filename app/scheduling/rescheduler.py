"""Reschedule computation.

Maps each eligible session to its candidate slot under a modification rule.
The result depends only on (original date, effective time, rule).
"""

from __future__ import annotations

from datetime import date, timedelta

from app.scheduling.errors import InvalidRuleError
from app.scheduling.models import (
    CandidateChange,
    DayChangeRule,
    ModificationRule,
    OffsetRule,
    Session,
    SpecificTimeRule,
    Student,
)
from app.scheduling.time_utils import DEFAULT_SESSION_TIME, effective_time, minutes_to_time, time_to_minutes


def validate_rule(rule: ModificationRule) -> None:
    """Reject rules that are no-ops or would silently do something surprising.

    Raises:
        InvalidRuleError: For a zero offset, an empty specific time, or a day
            change whose source and target weekday are the same (the "next
            occurrence" rule would jump a full week).
    """
    if isinstance(rule, OffsetRule) and rule.total_minutes == 0:
        raise InvalidRuleError("ZERO_OFFSET", "Offset must be at least one minute")
    if isinstance(rule, SpecificTimeRule) and not rule.time:
        raise InvalidRuleError("MISSING_TIME", "A new time is required")
    if isinstance(rule, DayChangeRule) and rule.from_weekday == rule.to_weekday:
        raise InvalidRuleError(
            "SAME_WEEKDAY",
            f"Source and target day are both {rule.from_weekday.name.title()}",
        )


def rule_changes_date(rule: ModificationRule) -> bool:
    return isinstance(rule, DayChangeRule)


def days_until_next(current_weekday: int, target_weekday: int) -> int:
    """Days from ``current_weekday`` to the next ``target_weekday``, always 1..7."""
    day_diff = target_weekday - current_weekday
    if day_diff <= 0:
        day_diff += 7
    return day_diff


def compute_new_slot(original_date: date, original_time: str, rule: ModificationRule) -> tuple[date, str]:
    """Return the (date, time) a session moves to under ``rule``."""
    if isinstance(rule, OffsetRule):
        return original_date, minutes_to_time(time_to_minutes(original_time) + rule.signed_minutes)
    if isinstance(rule, SpecificTimeRule):
        return original_date, rule.time
    day_diff = days_until_next(original_date.weekday(), rule.to_weekday)
    return original_date + timedelta(days=day_diff), rule.to_time


def build_candidate(
    student: Student,
    session: Session,
    rule: ModificationRule,
    default_time: str = DEFAULT_SESSION_TIME,
) -> CandidateChange:
    original_time = effective_time(session, student, default_time)
    new_date, new_time = compute_new_slot(session.date, original_time, rule)
    return CandidateChange(
        session=session,
        student=student,
        original_date=session.date,
        original_time=original_time,
        new_date=new_date,
        new_time=new_time,
    )


def build_candidates(
    student: Student,
    sessions: list[Session],
    rule: ModificationRule,
    default_time: str = DEFAULT_SESSION_TIME,
) -> list[CandidateChange]:
    """Build one candidate per session, preserving order."""
    return [build_candidate(student, session, rule, default_time) for session in sessions]
