"""Undo for applied batches.

Before a batch is handed to the host, the original slot of every session in it
is snapshotted. The snapshot can be replayed once, within a fixed window.
Only one batch is undoable at a time: starting a new one discards the previous
(last write wins).

Expiry is checked on every access against an injected clock, so it holds even
when no countdown timer is running.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from loguru import logger
from pydantic import BaseModel, ValidationError

from app.scheduling.models import CandidateChange
from app.scheduling.undo_store import InMemoryUndoStore, UndoStore

UNDO_TTL = timedelta(minutes=10)


def utc_now() -> datetime:
    return datetime.now(UTC)


class UndoEntry(BaseModel):
    session_id: str
    student_id: str
    original_date: date
    original_time: str


class UndoRecord(BaseModel):
    """Snapshot of one applied batch."""

    entries: list[UndoEntry]
    created_at: datetime
    expires_at: datetime
    restores_date: bool = False

    @property
    def count(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class InverseMutation:
    """Restores one session to its pre-batch slot."""

    student_id: str
    session_id: str
    date: date
    time: str
    restores_date: bool


class UndoManager:
    """Single-slot holder of the active undo batch.

    Args:
        store: Key-value slot the record is mirrored to (rehydrated on first access)
        ttl: How long a batch stays undoable
        clock: Returns the current time; injected so tests can move time
    """

    def __init__(
        self,
        store: UndoStore | None = None,
        *,
        ttl: timedelta = UNDO_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store or InMemoryUndoStore()
        self.ttl = ttl
        self._clock = clock
        self._record: UndoRecord | None = None
        self._lock = threading.Lock()

    def begin_batch(self, candidates: list[CandidateChange], *, restores_date: bool = False) -> UndoRecord:
        """Snapshot the original slots of ``candidates`` and make it the active batch."""
        now = self._clock()
        record = UndoRecord(
            entries=[
                UndoEntry(
                    session_id=c.session.id,
                    student_id=c.student.id,
                    original_date=c.original_date,
                    original_time=c.original_time,
                )
                for c in candidates
            ],
            created_at=now,
            expires_at=now + self.ttl,
            restores_date=restores_date,
        )
        with self._lock:
            replaced = self._record is not None
            self._record = record
            self._store.save(record.model_dump_json(), int(self.ttl.total_seconds()))

        logger.info(
            "Undo batch recorded",
            count=record.count,
            expires_at=record.expires_at.isoformat(),
            replaced_previous=replaced,
        )
        return record

    def is_active(self, record: UndoRecord, now: datetime | None = None) -> bool:
        now = now or self._clock()
        return now < record.expires_at

    def current(self) -> UndoRecord | None:
        """Return the active record, or None when there is none or it has expired."""
        with self._lock:
            return self._current_locked()

    def _current_locked(self) -> UndoRecord | None:
        record = self._record
        if record is None:
            record = self._rehydrate()
        if record is None:
            return None
        if not self.is_active(record):
            logger.debug("Undo batch expired", expires_at=record.expires_at.isoformat())
            self._discard()
            return None
        self._record = record
        return record

    def _rehydrate(self) -> UndoRecord | None:
        payload = self._store.load()
        if not payload:
            return None
        try:
            return UndoRecord.model_validate_json(payload)
        except ValidationError as e:
            logger.warning("Discarding unreadable undo batch", error=str(e))
            self._store.clear()
            return None

    def _discard(self) -> None:
        self._record = None
        self._store.clear()

    def clear(self) -> None:
        with self._lock:
            self._discard()

    def undo(self) -> list[InverseMutation]:
        """Consume the active batch and return the mutations that restore it.

        The batch is discarded before the caller replays anything, so an undo
        happens at most once whatever the outcome of the replay. Returns an
        empty list when no batch is active.
        """
        with self._lock:
            record = self._current_locked()
            if record is None:
                logger.info("Undo requested with no active batch")
                return []
            self._discard()

        logger.info("Undo batch consumed", count=record.count)
        return [
            InverseMutation(
                student_id=entry.student_id,
                session_id=entry.session_id,
                date=entry.original_date,
                time=entry.original_time,
                restores_date=record.restores_date,
            )
            for entry in record.entries
        ]

    def remaining(self) -> timedelta:
        """Time left in the undo window (zero when nothing is undoable)."""
        record = self.current()
        if record is None:
            return timedelta(0)
        return max(timedelta(0), record.expires_at - self._clock())

    def tick(self) -> int:
        """Countdown hook: whole seconds remaining, clearing the batch once expired."""
        return int(self.remaining().total_seconds())
