"""Root conftest for all tests.

Shared builders and fakes for the scheduling engine: a student/session
factory, a controllable clock for the undo window and a host mutator that
records every callback it receives.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

import pytest

from app.scheduling.models import Session, SessionStatus, Student
from app.scheduling.service import EngineConfig, ScheduleEngine, TimeChangeResult
from app.scheduling.undo import UndoManager
from app.scheduling.undo_store import InMemoryUndoStore


def build_student(
    student_id: str,
    sessions: list[tuple[str, date, str | None]] | None = None,
    *,
    name: str | None = None,
    default_session_time: str | None = None,
    status: dict[str, SessionStatus] | None = None,
) -> Student:
    """Build a student from (session_id, date, time) tuples.

    ``status`` overrides the status of individual sessions by id.
    """
    status = status or {}
    return Student(
        id=student_id,
        name=name or student_id.title(),
        default_session_time=default_session_time,
        sessions=[
            Session(
                id=session_id,
                date=session_date,
                time=session_time,
                status=status.get(session_id, SessionStatus.SCHEDULED),
            )
            for session_id, session_date, session_time in sessions or []
        ],
    )


class FakeClock:
    """Deterministic clock; tests move it forward explicitly."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class RecordingMutator:
    """Host mutator that records calls.

    Sessions in ``fail_for`` raise; time changes for sessions in ``reject_for``
    come back with ``success=False`` and are not recorded.
    """

    fail_for: set[str] = field(default_factory=set)
    reject_for: set[str] = field(default_factory=set)
    time_changes: list[tuple[str, str, str]] = field(default_factory=list)
    date_time_changes: list[tuple[str, str, date, str]] = field(default_factory=list)

    def apply_time_change(self, student_id: str, session_id: str, new_time: str) -> TimeChangeResult:
        if session_id in self.fail_for:
            raise RuntimeError(f"host refused {session_id}")
        if session_id in self.reject_for:
            return TimeChangeResult(success=False, updated_count=0)
        self.time_changes.append((student_id, session_id, new_time))
        return TimeChangeResult(success=True, updated_count=1)

    def apply_date_time_change(self, student_id: str, session_id: str, new_date: date, new_time: str) -> None:
        if session_id in self.fail_for:
            raise RuntimeError(f"host refused {session_id}")
        self.date_time_changes.append((student_id, session_id, new_date, new_time))


@pytest.fixture
def make_student():
    """Factory fixture wrapping build_student."""
    return build_student


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def undo_manager(clock: FakeClock) -> UndoManager:
    return UndoManager(InMemoryUndoStore(), clock=clock)


@pytest.fixture
def mutator() -> RecordingMutator:
    return RecordingMutator()


@pytest.fixture
def engine_factory(undo_manager: UndoManager):
    """Build engines over a snapshot that share the test's undo manager."""

    def _build(students: list[Student], **config) -> ScheduleEngine:
        return ScheduleEngine(students, config=EngineConfig(**config), undo_manager=undo_manager)

    return _build
