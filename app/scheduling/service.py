"""Rescheduling engine facade.

Single entry point the host drives: preview a rule over a student's sessions,
preview a single drag-and-drop move, apply the accepted candidates through the
host's mutation callbacks, and undo the last applied batch.

The engine never writes session data itself. Apply hands each accepted
candidate to exactly one host callback; conflicts are never handed over.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import lru_cache
from typing import Protocol

from loguru import logger

from app.config.settings import Settings, settings
from app.scheduling.categorize import categorize, relocation_map
from app.scheduling.conflicts import INACTIVE_STATUSES, WARNING_GAP_MINUTES, ConflictDetector
from app.scheduling.errors import ConfigurationError, InvalidRuleError, MissingSelectionError, NoApplicableChangesError
from app.scheduling.models import (
    CandidateChange,
    CategorizedChanges,
    ConflictDetail,
    ConflictInfo,
    ConflictKind,
    ConflictSeverity,
    ModificationRule,
    Period,
    Session,
    SessionStatus,
    Student,
)
from app.scheduling.periods import PeriodResolver
from app.scheduling.rescheduler import build_candidates, rule_changes_date, validate_rule
from app.scheduling.selector import select_sessions, select_vacation_sessions
from app.scheduling.time_utils import (
    DEFAULT_SESSION_DURATION_MINUTES,
    DEFAULT_SESSION_TIME,
    effective_time,
    normalize_time,
)
from app.scheduling.undo import UndoManager, UndoRecord
from app.scheduling.undo_store import create_undo_store


@dataclass(frozen=True)
class EngineConfig:
    """Tunables of one engine run."""

    default_session_time: str = DEFAULT_SESSION_TIME
    session_duration_minutes: int = DEFAULT_SESSION_DURATION_MINUTES
    warning_gap_minutes: int = WARNING_GAP_MINUTES
    day_change_tolerance_minutes: int = 30
    include_same_student: bool = True
    batch_aware: bool = False

    @classmethod
    def from_settings(cls, app_settings: Settings | None = None) -> EngineConfig:
        app_settings = app_settings or settings
        return cls(
            default_session_time=app_settings.default_session_time,
            session_duration_minutes=app_settings.default_session_duration_minutes,
            warning_gap_minutes=app_settings.conflict_warning_gap_minutes,
            day_change_tolerance_minutes=app_settings.day_change_tolerance_minutes,
            include_same_student=app_settings.include_same_student_conflicts,
            batch_aware=app_settings.batch_aware_conflicts,
        )


@dataclass(frozen=True)
class TimeChangeResult:
    success: bool
    updated_count: int


class ScheduleMutator(Protocol):
    """Host-side write callbacks. The engine calls exactly one per accepted candidate."""

    def apply_time_change(self, student_id: str, session_id: str, new_time: str) -> TimeChangeResult: ...

    def apply_date_time_change(self, student_id: str, session_id: str, new_date: date, new_time: str) -> None: ...


@dataclass
class ApplyResult:
    applied: int
    held_back_warnings: int
    held_back_conflicts: int
    undo_record: UndoRecord
    rejected: list[str] = field(default_factory=list)


@dataclass
class UndoResult:
    restored: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def performed(self) -> bool:
        return self.restored > 0 or bool(self.failed)


@lru_cache
def get_undo_manager() -> UndoManager:
    """Process-wide undo slot built from settings."""
    return UndoManager(create_undo_store(), ttl=timedelta(minutes=settings.undo_ttl_minutes))


class ScheduleEngine:
    """Computes and applies reschedules over one snapshot of students.

    Args:
        students: Read-only snapshot; not mutated
        config: Engine tunables (defaults from settings)
        undo_manager: Undo slot shared across engine instances (defaults to the process-wide one)
    """

    def __init__(
        self,
        students: list[Student],
        *,
        config: EngineConfig | None = None,
        undo_manager: UndoManager | None = None,
    ):
        self.students = students
        self.config = config or EngineConfig.from_settings()
        self.undo_manager = undo_manager or get_undo_manager()

    def _require_student(self, student_id: str | None) -> Student:
        if not student_id:
            raise MissingSelectionError("NO_STUDENT", "Select a student first")
        student = next((s for s in self.students if s.id == student_id), None)
        if student is None:
            raise MissingSelectionError("UNKNOWN_STUDENT", f"Student {student_id} not found")
        return student

    def _detector(self, candidates: list[CandidateChange] | None = None) -> ConflictDetector:
        relocated = relocation_map(candidates) if self.config.batch_aware and candidates else None
        return ConflictDetector(
            self.students,
            session_duration=self.config.session_duration_minutes,
            warning_gap_minutes=self.config.warning_gap_minutes,
            include_same_student=self.config.include_same_student,
            relocated=relocated,
            default_time=self.config.default_session_time,
        )

    def preview(
        self,
        student_id: str | None,
        periods: list[Period],
        rule: ModificationRule,
        *,
        today: date | None = None,
    ) -> CategorizedChanges:
        """Compute and classify every candidate for ``rule`` over the student's sessions.

        Args:
            student_id: Student whose sessions are rescheduled
            periods: Calendar periods to search (union)
            rule: Modification rule
            today: When set, sessions before this day are left alone

        Returns:
            Candidates bucketed as safe / warnings / conflicts (possibly all empty)

        Raises:
            MissingSelectionError: No or unknown student, or no periods
            InvalidRuleError: The rule is a no-op or contradictory
        """
        student = self._require_student(student_id)
        if not periods:
            raise MissingSelectionError("NO_PERIODS", "Select at least one period")
        validate_rule(rule)

        resolver = PeriodResolver(periods)
        sessions = select_sessions(
            student,
            resolver,
            rule,
            tolerance_minutes=self.config.day_change_tolerance_minutes,
            not_before=today,
            default_time=self.config.default_session_time,
        )
        candidates = build_candidates(student, sessions, rule, self.config.default_session_time)
        if not candidates:
            logger.info("No eligible sessions", student_id=student.id, rule=rule.kind, periods=len(resolver))

        return categorize(candidates, self._detector(candidates), changes_date=rule_changes_date(rule))

    def preview_move(
        self,
        student_id: str,
        session_id: str,
        new_date: date,
        new_time: str | None = None,
    ) -> CategorizedChanges:
        """Classify moving one session to another day, keeping its time unless ``new_time`` is given.

        A student may not hold two sessions on the same day through a move:
        landing on a day where the student already has an active session is a
        conflict even without a time overlap.
        """
        student = self._require_student(student_id)
        session = student.find_session(session_id)
        if session is None:
            raise MissingSelectionError("UNKNOWN_SESSION", f"Session {session_id} not found for student {student_id}")
        if session.status != SessionStatus.SCHEDULED:
            raise ConfigurationError("SESSION_NOT_SCHEDULED", f"Session {session_id} is {session.status.value}")

        if new_date == session.date:
            raise InvalidRuleError("SAME_DATE", "The session is already on that date")

        original_time = effective_time(session, student, self.config.default_session_time)
        try:
            target_time = normalize_time(new_time) if new_time else original_time
        except ValueError as e:
            raise InvalidRuleError("INVALID_TIME", str(e)) from e

        candidate = CandidateChange(
            session=session,
            student=student,
            original_date=session.date,
            original_time=original_time,
            new_date=new_date,
            new_time=target_time,
        )
        result = categorize([candidate], self._detector(), changes_date=candidate.changes_date)

        same_day = self._same_student_session_on(student, session, new_date)
        if same_day is not None and candidate not in result.conflicts:
            info = result.info_for(candidate)
            info.severity = ConflictSeverity.ERROR
            info.student = student
            info.session = same_day
            info.gap_minutes = None
            info.details.append(ConflictDetail(student=student, session=same_day, kind=ConflictKind.SAME_DAY))
            result.safe = [c for c in result.safe if c is not candidate]
            result.warnings = [c for c in result.warnings if c is not candidate]
            result.conflicts.append(candidate)
        return result

    @staticmethod
    def _same_student_session_on(student: Student, moving: Session, day: date) -> Session | None:
        return next(
            (
                s
                for s in student.sessions
                if s.id != moving.id and s.date == day and s.status not in INACTIVE_STATUSES
            ),
            None,
        )

    def check_slot(self, student_id: str, session_id: str, new_date: date, new_time: str) -> ConflictInfo:
        """Classify one session at an arbitrary slot against the snapshot."""
        student = self._require_student(student_id)
        if student.find_session(session_id) is None:
            raise MissingSelectionError("UNKNOWN_SESSION", f"Session {session_id} not found for student {student_id}")
        try:
            new_time = normalize_time(new_time)
        except ValueError as e:
            raise InvalidRuleError("INVALID_TIME", str(e)) from e
        return self._detector().check(student.id, session_id, new_date, new_time)

    def preview_vacation(self, periods: list[Period]) -> list[tuple[Student, Session]]:
        """Scheduled sessions of every student inside ``periods``, for marking as vacation."""
        if not periods:
            raise MissingSelectionError("NO_PERIODS", "Select at least one period")
        return select_vacation_sessions(self.students, PeriodResolver(periods))

    def apply(
        self,
        changes: CategorizedChanges,
        mutator: ScheduleMutator,
        *,
        include_warnings: bool = False,
    ) -> ApplyResult:
        """Hand accepted candidates to the host and record the batch for undo.

        Safe candidates are always applied, warnings only when
        ``include_warnings`` is set, conflicts never. Time changes the host
        reports as unsuccessful are listed in ``rejected`` and not counted as
        applied.

        Raises:
            NoApplicableChangesError: Nothing is left to apply
        """
        to_apply = changes.applicable(include_warnings=include_warnings)
        if not to_apply:
            raise NoApplicableChangesError(blocked=changes.total)

        record = self.undo_manager.begin_batch(to_apply, restores_date=changes.changes_date)

        rejected: list[str] = []
        for candidate in to_apply:
            if changes.changes_date:
                mutator.apply_date_time_change(
                    candidate.student.id,
                    candidate.session.id,
                    candidate.new_date,
                    candidate.new_time,
                )
                continue
            outcome = mutator.apply_time_change(candidate.student.id, candidate.session.id, candidate.new_time)
            if not outcome.success:
                logger.warning(
                    "Host rejected time change",
                    student_id=candidate.student.id,
                    session_id=candidate.session.id,
                    new_time=candidate.new_time,
                )
                rejected.append(candidate.session.id)

        result = ApplyResult(
            applied=len(to_apply) - len(rejected),
            held_back_warnings=0 if include_warnings else len(changes.warnings),
            held_back_conflicts=len(changes.conflicts),
            undo_record=record,
            rejected=rejected,
        )
        logger.info(
            "Batch applied",
            applied=result.applied,
            rejected=len(rejected),
            held_back_warnings=result.held_back_warnings,
            held_back_conflicts=result.held_back_conflicts,
            changes_date=changes.changes_date,
        )
        return result

    def undo(self, mutator: ScheduleMutator) -> UndoResult:
        """Replay the inverse of the active batch once.

        A callback that raises or reports no success for an entry is logged and
        listed in ``failed``, never retried;
        the batch is gone afterwards either way. Without an active batch this
        is a no-op.
        """
        result = UndoResult()
        for inverse in self.undo_manager.undo():
            try:
                if inverse.restores_date:
                    mutator.apply_date_time_change(inverse.student_id, inverse.session_id, inverse.date, inverse.time)
                    outcome = TimeChangeResult(success=True, updated_count=1)
                else:
                    outcome = mutator.apply_time_change(inverse.student_id, inverse.session_id, inverse.time)
            except Exception as e:
                logger.error(
                    "Undo replay failed for session",
                    student_id=inverse.student_id,
                    session_id=inverse.session_id,
                    error=str(e),
                )
                result.failed.append(inverse.session_id)
                continue
            if not outcome.success:
                logger.error(
                    "Host rejected undo restore",
                    student_id=inverse.student_id,
                    session_id=inverse.session_id,
                )
                result.failed.append(inverse.session_id)
                continue
            result.restored += 1

        if result.performed:
            logger.info("Undo finished", restored=result.restored, failed=len(result.failed))
        return result
