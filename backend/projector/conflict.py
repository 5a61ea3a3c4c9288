"""Concurrent-edit detection for wiki articles.

This is a proximity heuristic, not a causal check: the two newest revisions
are flagged when their timestamps fall inside a fixed window and no
SYNTHESIZE operation has been recorded. Edits made far apart can still race,
and edits made close together can be sequential; a version-vector check
would replace it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta

from eoapi.models.enums import Op
from eoapi.schemas.projection import RevisionSchema
from projector.ops import LogRecord, Operation

CONFLICT_WINDOW = timedelta(seconds=60)


@dataclass(frozen=True)
class ConflictResult:
    """Conflict flags for a revisioned entity."""

    has_conflict: bool = False
    candidates: list[str] = field(default_factory=list)


def has_synthesis(records: Iterable[LogRecord]) -> bool:
    """Whether any SYNTHESIZE operation appears anywhere in the records."""
    return any(
        isinstance(record, Operation) and record.op == Op.SYNTHESIZE
        for record in records
    )


def detect_conflict(
    revisions: Sequence[RevisionSchema],
    records: Iterable[LogRecord],
    window: timedelta = CONFLICT_WINDOW,
) -> ConflictResult:
    """Flag the two newest revisions if they were made too close together.

    Args:
        revisions: Revisions sorted ascending by timestamp.
        records: The entity's full record list, scanned for SYNTHESIZE.
        window: Two revisions strictly closer than this conflict.

    Returns:
        ConflictResult with the older candidate first.
    """
    if len(revisions) < 2 or has_synthesis(records):
        return ConflictResult()

    previous, latest = revisions[-2], revisions[-1]
    if abs(latest.ts - previous.ts) < window:
        return ConflictResult(
            has_conflict=True, candidates=[previous.rev_id, latest.rev_id]
        )
    return ConflictResult()
