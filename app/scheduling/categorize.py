"""Partition candidates into safe / warning / conflict buckets."""

from __future__ import annotations

from datetime import date

from loguru import logger

from app.scheduling.conflicts import ConflictDetector
from app.scheduling.models import CandidateChange, CategorizedChanges, ConflictSeverity


def relocation_map(candidates: list[CandidateChange]) -> dict[str, tuple[date, str]]:
    """Planned slot of every candidate, keyed by session id."""
    return {c.session.id: (c.new_date, c.new_time) for c in candidates}


def categorize(
    candidates: list[CandidateChange],
    detector: ConflictDetector,
    *,
    changes_date: bool = False,
) -> CategorizedChanges:
    """Classify each candidate with ``detector`` and bucket it by severity.

    Buckets keep the input order, and every candidate lands in exactly one.
    """
    result = CategorizedChanges(changes_date=changes_date)
    for candidate in candidates:
        info = detector.check(
            candidate.student.id,
            candidate.session.id,
            candidate.new_date,
            candidate.new_time,
        )
        result.conflict_info[candidate.session.id] = info
        if info.severity == ConflictSeverity.ERROR:
            result.conflicts.append(candidate)
        elif info.severity == ConflictSeverity.WARNING:
            result.warnings.append(candidate)
        else:
            result.safe.append(candidate)

    logger.info(
        "Candidates categorized",
        total=result.total,
        safe=len(result.safe),
        warnings=len(result.warnings),
        conflicts=len(result.conflicts),
    )
    return result
