"""Scheduling API endpoints.

Stateless wrappers over the engine: every request carries the snapshot of
students it should be evaluated against. Nothing here applies a change.
"""

from __future__ import annotations

from datetime import date as date_type

from fastapi import APIRouter, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

from app.scheduling.errors import SchedulingError
from app.scheduling.models import (
    CandidateChange,
    CategorizedChanges,
    ConflictInfo,
    ConflictSeverity,
    ModificationRule,
    Period,
    Student,
)
from app.scheduling.service import ScheduleEngine
from app.scheduling.slots import available_slots, suggest_times
from app.scheduling.time_utils import DEFAULT_SESSION_DURATION_MINUTES

router = APIRouter(prefix="/schedule", tags=["schedule"])


class ConflictDetailRow(BaseModel):
    student_id: str
    student_name: str
    session_id: str
    kind: str
    gap_minutes: int | None = None
    message: str


class ConflictInfoResponse(BaseModel):
    severity: ConflictSeverity
    conflict_student_id: str | None = None
    conflict_student_name: str | None = None
    conflict_session_id: str | None = None
    gap_minutes: int | None = None
    details: list[ConflictDetailRow] = Field(default_factory=list)


class CandidateRow(BaseModel):
    session_id: str
    student_id: str
    original_date: date_type
    original_time: str
    new_date: date_type
    new_time: str
    conflict: ConflictInfoResponse


class PreviewRequest(BaseModel):
    students: list[Student] = Field(description="Snapshot of every student and their sessions")
    student_id: str = Field(description="Student whose sessions are rescheduled")
    periods: list[Period] = Field(description="Periods to search; union semantics")
    rule: ModificationRule
    today: date_type | None = Field(default=None, description="Leave sessions before this day alone")


class PreviewResponse(BaseModel):
    safe: list[CandidateRow]
    warnings: list[CandidateRow]
    conflicts: list[CandidateRow]
    changes_date: bool
    total: int


class ConflictCheckRequest(BaseModel):
    students: list[Student]
    student_id: str
    session_id: str
    new_date: date_type
    new_time: str


class SlotsRequest(BaseModel):
    students: list[Student]
    date: date_type
    duration_minutes: int = Field(default=DEFAULT_SESSION_DURATION_MINUTES, gt=0)
    exclude_session_id: str | None = None


class FreeSlotRow(BaseModel):
    time: str
    display: str
    day_part: str


class SuggestionRow(BaseModel):
    time: str
    label: str


class SlotsResponse(BaseModel):
    available: list[FreeSlotRow]
    suggestions: list[SuggestionRow]


def _conflict_to_response(info: ConflictInfo) -> ConflictInfoResponse:
    return ConflictInfoResponse(
        severity=info.severity,
        conflict_student_id=info.student.id if info.student else None,
        conflict_student_name=info.student.name if info.student else None,
        conflict_session_id=info.session.id if info.session else None,
        gap_minutes=info.gap_minutes,
        details=[
            ConflictDetailRow(
                student_id=detail.student.id,
                student_name=detail.student.name,
                session_id=detail.session.id,
                kind=detail.kind.value,
                gap_minutes=detail.gap_minutes,
                message=detail.message,
            )
            for detail in info.details
        ],
    )


def _candidate_to_row(candidate: CandidateChange, changes: CategorizedChanges) -> CandidateRow:
    return CandidateRow(
        session_id=candidate.session.id,
        student_id=candidate.student.id,
        original_date=candidate.original_date,
        original_time=candidate.original_time,
        new_date=candidate.new_date,
        new_time=candidate.new_time,
        conflict=_conflict_to_response(changes.info_for(candidate)),
    )


def _to_http_error(e: SchedulingError) -> HTTPException:
    logger.info("Scheduling request rejected", code=e.code, message=e.message)
    return HTTPException(status_code=422, detail={"code": e.code, "message": e.message})


@router.post("/preview", response_model=PreviewResponse)
def preview(request: PreviewRequest) -> PreviewResponse:
    """Preview a rule over one student's sessions, bucketed by conflict severity."""
    engine = ScheduleEngine(request.students)
    try:
        changes = engine.preview(request.student_id, request.periods, request.rule, today=request.today)
    except SchedulingError as e:
        raise _to_http_error(e) from e

    return PreviewResponse(
        safe=[_candidate_to_row(c, changes) for c in changes.safe],
        warnings=[_candidate_to_row(c, changes) for c in changes.warnings],
        conflicts=[_candidate_to_row(c, changes) for c in changes.conflicts],
        changes_date=changes.changes_date,
        total=changes.total,
    )


@router.post("/conflicts/check", response_model=ConflictInfoResponse)
def check_conflicts(request: ConflictCheckRequest) -> ConflictInfoResponse:
    """Classify one session at a target slot."""
    engine = ScheduleEngine(request.students)
    try:
        info = engine.check_slot(request.student_id, request.session_id, request.new_date, request.new_time)
    except SchedulingError as e:
        raise _to_http_error(e) from e
    return _conflict_to_response(info)


@router.post("/slots", response_model=SlotsResponse)
def free_slots(request: SlotsRequest) -> SlotsResponse:
    """Free slots and nearby suggestions for a day."""
    slots = available_slots(request.students, request.date, duration=request.duration_minutes)
    suggestions = suggest_times(
        request.students,
        request.date,
        duration=request.duration_minutes,
        exclude_session_id=request.exclude_session_id,
    )
    return SlotsResponse(
        available=[FreeSlotRow(time=s.time, display=s.display, day_part=s.day_part) for s in slots],
        suggestions=[SuggestionRow(time=s.time, label=s.label) for s in suggestions],
    )
