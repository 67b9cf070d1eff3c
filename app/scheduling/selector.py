"""Session selection.

Picks which of a student's sessions a modification rule applies to. Only
scheduled sessions are ever touched; completed, cancelled and vacation
sessions are history and stay as they are.
"""

from __future__ import annotations

from datetime import date

from loguru import logger

from app.scheduling.models import DayChangeRule, ModificationRule, Session, SessionStatus, Student
from app.scheduling.periods import PeriodResolver
from app.scheduling.time_utils import DEFAULT_SESSION_TIME, effective_time, time_to_minutes

# Recorded times drift a little over a semester; this still counts as the same slot
DAY_CHANGE_TOLERANCE_MINUTES = 30


def _matches_day_change_slot(
    session: Session,
    student: Student,
    rule: DayChangeRule,
    tolerance_minutes: int,
    default_time: str,
) -> bool:
    if session.date.weekday() != rule.from_weekday:
        return False
    session_minutes = time_to_minutes(effective_time(session, student, default_time), default_time)
    return abs(session_minutes - time_to_minutes(rule.from_time)) <= tolerance_minutes


def select_sessions(
    student: Student,
    resolver: PeriodResolver,
    rule: ModificationRule,
    *,
    tolerance_minutes: int = DAY_CHANGE_TOLERANCE_MINUTES,
    not_before: date | None = None,
    default_time: str = DEFAULT_SESSION_TIME,
) -> list[Session]:
    """Return the student's sessions eligible for ``rule``, ordered by date then time.

    Args:
        student: Student whose sessions are considered
        resolver: Period predicate; a session must fall inside one of the periods
        rule: Modification rule; a day-change rule also filters on the source weekday and time
        tolerance_minutes: Allowed distance from the day-change source time
        not_before: When set, sessions dated before this day are skipped
        default_time: Time used when neither session nor student has one

    Returns:
        Eligible sessions (may be empty; that is not an error)
    """
    eligible: list[Session] = []
    for session in student.sessions:
        if session.status != SessionStatus.SCHEDULED:
            continue
        if not_before is not None and session.date < not_before:
            continue
        if session.date not in resolver:
            continue
        if isinstance(rule, DayChangeRule) and not _matches_day_change_slot(
            session, student, rule, tolerance_minutes, default_time
        ):
            continue
        eligible.append(session)

    eligible.sort(key=lambda s: (s.date, time_to_minutes(effective_time(s, student, default_time), default_time)))

    logger.debug(
        "Sessions selected",
        student_id=student.id,
        rule=rule.kind,
        eligible=len(eligible),
        total=len(student.sessions),
    )
    return eligible


def select_vacation_sessions(
    students: list[Student],
    resolver: PeriodResolver,
) -> list[tuple[Student, Session]]:
    """Return every scheduled session of every student inside the periods, ordered by date.

    Used when marking a vacation: the host turns each returned session into a
    vacation session.
    """
    selected = [
        (student, session)
        for student in students
        for session in student.sessions
        if session.status == SessionStatus.SCHEDULED and session.date in resolver
    ]
    selected.sort(key=lambda pair: pair[1].date)
    return selected
