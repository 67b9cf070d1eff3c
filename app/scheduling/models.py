"""Data model for session rescheduling.

Students and sessions are a read-only snapshot supplied by the host. Rules and
periods describe what the tutor asked for. Candidates, conflict info and the
categorized result are transient and never persisted by the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as date_type
from enum import IntEnum, StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from app.scheduling.time_utils import DEFAULT_SESSION_DURATION_MINUTES, normalize_time


class SessionStatus(StrEnum):
    """Lifecycle status of a tutoring session."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    VACATION = "vacation"


class Weekday(IntEnum):
    """Day of week, numbered like ``date.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


class PeriodKind(StrEnum):
    """How a period was chosen."""

    WEEK = "week"
    MONTH = "month"
    CUSTOM = "custom"


class ConflictSeverity(StrEnum):
    """Conflict classification of a candidate slot."""

    NONE = "none"
    WARNING = "warning"
    ERROR = "error"


class ConflictKind(StrEnum):
    """Kind of a single collision with another session."""

    EXACT = "exact"
    PARTIAL = "partial"
    CLOSE = "close"
    SAME_DAY = "same_day"


class Session(BaseModel):
    """A single tutoring session owned by one student."""

    id: str
    date: date_type
    time: str | None = None  # None means "use the student's default time"
    status: SessionStatus = SessionStatus.SCHEDULED
    duration_minutes: int | None = Field(default=None, gt=0)

    @field_validator("time", mode="before")
    @classmethod
    def normalize_session_time(cls, value: str | None) -> str | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return normalize_time(value)


class Student(BaseModel):
    """A student and their ordered sessions."""

    id: str
    name: str
    default_session_time: str | None = None
    default_duration_minutes: int = Field(default=DEFAULT_SESSION_DURATION_MINUTES, gt=0)
    sessions: list[Session] = Field(default_factory=list)

    @field_validator("default_session_time", mode="before")
    @classmethod
    def normalize_default_time(cls, value: str | None) -> str | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return normalize_time(value)

    def find_session(self, session_id: str) -> Session | None:
        return next((s for s in self.sessions if s.id == session_id), None)


class Period(BaseModel):
    """Inclusive calendar date range chosen by the user."""

    start: date_type
    end: date_type
    kind: PeriodKind = PeriodKind.CUSTOM
    label: str | None = None

    @model_validator(mode="after")
    def check_bounds(self) -> Period:
        if self.start > self.end:
            raise ValueError(f"Period start {self.start} is after end {self.end}")
        if not self.label:
            self.label = f"{self.start.isoformat()} to {self.end.isoformat()}"
        return self

    def contains(self, day: date_type) -> bool:
        return self.start <= day <= self.end


class OffsetRule(BaseModel):
    """Shift the session time by a signed amount; the date is unchanged."""

    kind: Literal["offset"] = "offset"
    direction: Literal[1, -1] = 1
    hours: int = Field(default=0, ge=0)
    minutes: int = Field(default=0, ge=0)

    @property
    def total_minutes(self) -> int:
        return self.hours * 60 + self.minutes

    @property
    def signed_minutes(self) -> int:
        return self.direction * self.total_minutes


class SpecificTimeRule(BaseModel):
    """Set an absolute time; the date is unchanged."""

    kind: Literal["specific"] = "specific"
    time: str

    @field_validator("time", mode="before")
    @classmethod
    def normalize_rule_time(cls, value: str) -> str:
        # Empty is allowed here so validate_rule can report it as a configuration error
        if isinstance(value, str) and not value.strip():
            return ""
        return normalize_time(value)


class DayChangeRule(BaseModel):
    """Move sessions held on one weekday slot to the next occurrence of another weekday."""

    kind: Literal["day_change"] = "day_change"
    from_weekday: Weekday
    from_time: str
    to_weekday: Weekday
    to_time: str

    @field_validator("from_time", "to_time", mode="before")
    @classmethod
    def normalize_rule_times(cls, value: str) -> str:
        return normalize_time(value)


ModificationRule = Annotated[
    OffsetRule | SpecificTimeRule | DayChangeRule,
    Field(discriminator="kind"),
]


@dataclass(frozen=True)
class CandidateChange:
    """A proposed, not yet applied, change of one session's slot."""

    session: Session
    student: Student
    original_date: date_type
    original_time: str
    new_date: date_type
    new_time: str

    @property
    def changes_date(self) -> bool:
        return self.new_date != self.original_date


@dataclass
class ConflictDetail:
    """One collision between a candidate slot and another session."""

    student: Student
    session: Session
    kind: ConflictKind
    gap_minutes: int | None = None

    @property
    def message(self) -> str:
        if self.kind == ConflictKind.EXACT:
            return f"Conflicts with {self.student.name}'s session at the same time"
        if self.kind == ConflictKind.PARTIAL:
            return f"Overlaps with {self.student.name}'s session"
        if self.kind == ConflictKind.SAME_DAY:
            return f"{self.student.name} already has a session that day"
        return f"Only {self.gap_minutes} min gap to {self.student.name}'s session"


@dataclass
class ConflictInfo:
    """Result of checking one candidate slot against the snapshot.

    ``student``/``session`` reference the collision that decided the severity:
    the first overlap for errors, the closest neighbour for warnings.
    """

    severity: ConflictSeverity = ConflictSeverity.NONE
    student: Student | None = None
    session: Session | None = None
    gap_minutes: int | None = None
    details: list[ConflictDetail] = field(default_factory=list)


@dataclass
class CategorizedChanges:
    """Candidates partitioned by conflict severity, each bucket in input order."""

    safe: list[CandidateChange] = field(default_factory=list)
    warnings: list[CandidateChange] = field(default_factory=list)
    conflicts: list[CandidateChange] = field(default_factory=list)
    conflict_info: dict[str, ConflictInfo] = field(default_factory=dict)
    changes_date: bool = False

    @property
    def total(self) -> int:
        return len(self.safe) + len(self.warnings) + len(self.conflicts)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def applicable(self, *, include_warnings: bool = False) -> list[CandidateChange]:
        """Candidates that may be applied; conflicts are never included."""
        if include_warnings:
            return [*self.safe, *self.warnings]
        return list(self.safe)

    def info_for(self, candidate: CandidateChange) -> ConflictInfo:
        return self.conflict_info.get(candidate.session.id, ConflictInfo())
