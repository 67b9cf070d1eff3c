"""Conflict detection for candidate session slots.

Checks a proposed (date, time) for one session against every other active
session on that date, across all students.

Classification of a candidate:
- error: the slots overlap (same start, or any intersection of the
  [start, end) intervals). An error is final for the candidate.
- warning: no overlap, but the closest neighbour is less than the warning gap
  away (a gap of exactly zero, back to back, is fine).
- none: otherwise.

Overlap uses one fixed session length for every session, regardless of the
session's own duration field.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

from loguru import logger

from app.scheduling.models import (
    ConflictDetail,
    ConflictInfo,
    ConflictKind,
    ConflictSeverity,
    Session,
    SessionStatus,
    Student,
)
from app.scheduling.time_utils import (
    DEFAULT_SESSION_DURATION_MINUTES,
    DEFAULT_SESSION_TIME,
    effective_time,
    time_to_minutes,
)

SESSION_DURATION_MINUTES = DEFAULT_SESSION_DURATION_MINUTES
WARNING_GAP_MINUTES = 15

# Cancelled and vacation sessions free their slot
INACTIVE_STATUSES = frozenset({SessionStatus.CANCELLED, SessionStatus.VACATION})


@dataclass(frozen=True)
class _ScheduledSlot:
    student: Student
    session: Session
    start_minutes: int


def intervals_overlap(new_start: int, new_end: int, other_start: int, other_end: int) -> bool:
    """Return True if [new_start, new_end) and [other_start, other_end) collide."""
    return (
        other_start <= new_start < other_end
        or other_start < new_end <= other_end
        or (new_start <= other_start and new_end >= other_end)
    )


def gap_between(new_start: int, new_end: int, other_start: int, other_end: int) -> int:
    return min(abs(new_start - other_end), abs(other_start - new_end))


class ConflictDetector:
    """Classifies candidate slots against a snapshot of all students' sessions.

    Args:
        students: Read-only snapshot of every student and their sessions
        session_duration: Fixed session length in minutes used for overlap
        warning_gap_minutes: Gaps strictly between 0 and this value are warnings
        include_same_student: When False, the candidate student's other sessions
            are ignored entirely
        relocated: Sessions that are moving in the same batch, mapped to their
            planned (date, time); they are checked at that slot instead
        default_time: Time used when neither session nor student has one
    """

    def __init__(
        self,
        students: list[Student],
        *,
        session_duration: int = SESSION_DURATION_MINUTES,
        warning_gap_minutes: int = WARNING_GAP_MINUTES,
        include_same_student: bool = True,
        relocated: Mapping[str, tuple[date, str]] | None = None,
        default_time: str = DEFAULT_SESSION_TIME,
    ):
        self.session_duration = session_duration
        self.warning_gap_minutes = warning_gap_minutes
        self.include_same_student = include_same_student
        self.default_time = default_time

        relocated = relocated or {}
        self._by_date: dict[date, list[_ScheduledSlot]] = {}
        for student in students:
            for session in student.sessions:
                if session.status in INACTIVE_STATUSES:
                    continue
                if session.id in relocated:
                    slot_date, slot_time = relocated[session.id]
                else:
                    slot_date, slot_time = session.date, effective_time(session, student, default_time)
                self._by_date.setdefault(slot_date, []).append(
                    _ScheduledSlot(
                        student=student,
                        session=session,
                        start_minutes=time_to_minutes(slot_time, default_time),
                    )
                )

    def sessions_on(self, day: date) -> list[tuple[Student, Session, int]]:
        """Active sessions on ``day`` as (student, session, start minutes), in snapshot order."""
        return [(slot.student, slot.session, slot.start_minutes) for slot in self._by_date.get(day, [])]

    def check(self, student_id: str, session_id: str, new_date: date, new_time: str) -> ConflictInfo:
        """Classify moving ``session_id`` of ``student_id`` to ``new_date`` at ``new_time``."""
        new_start = time_to_minutes(new_time, self.default_time)
        new_end = new_start + self.session_duration

        info = ConflictInfo()
        closest_gap: int | None = None

        for slot in self._by_date.get(new_date, []):
            if slot.session.id == session_id:
                continue
            if not self.include_same_student and slot.student.id == student_id:
                continue

            other_start = slot.start_minutes
            other_end = other_start + self.session_duration

            if new_start == other_start or intervals_overlap(new_start, new_end, other_start, other_end):
                kind = ConflictKind.EXACT if new_start == other_start else ConflictKind.PARTIAL
                info.details.append(ConflictDetail(student=slot.student, session=slot.session, kind=kind))
                if info.severity != ConflictSeverity.ERROR:
                    info.severity = ConflictSeverity.ERROR
                    info.student = slot.student
                    info.session = slot.session
                    info.gap_minutes = None
                continue

            gap = gap_between(new_start, new_end, other_start, other_end)
            if 0 < gap < self.warning_gap_minutes:
                info.details.append(
                    ConflictDetail(student=slot.student, session=slot.session, kind=ConflictKind.CLOSE, gap_minutes=gap)
                )
                if info.severity == ConflictSeverity.ERROR:
                    continue
                if closest_gap is None or gap < closest_gap:
                    closest_gap = gap
                    info.severity = ConflictSeverity.WARNING
                    info.student = slot.student
                    info.session = slot.session
                    info.gap_minutes = gap

        if info.severity != ConflictSeverity.NONE:
            logger.debug(
                "Conflict detected",
                student_id=student_id,
                session_id=session_id,
                new_date=new_date.isoformat(),
                new_time=new_time,
                severity=info.severity.value,
                with_session_id=info.session.id if info.session else None,
            )
        return info
