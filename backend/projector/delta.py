"""Incremental replay: fold new records onto an existing projection.

Used by editors that load a stored snapshot and then catch up on the log
records written after it. The snapshot is never mutated; a new projection
is returned. Metadata is not re-derived from a delta.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import timedelta
from typing import Any

from eoapi.models.enums import ChildType, Op
from eoapi.schemas.projection import (
    ProjectedBlogSchema,
    ProjectedContent,
    ProjectedExperimentSchema,
    ProjectedPageSchema,
    ProjectedWikiSchema,
)
from projector.blocks import order_blocks
from projector.conflict import CONFLICT_WINDOW, detect_conflict, has_synthesis
from projector.ops import iter_operations, iter_records
from projector.replay import (
    fold_blocks,
    fold_entries,
    fold_revisions,
    revision_operations,
    sort_revisions,
)

logger = logging.getLogger(__name__)


def apply_delta(
    snapshot: ProjectedContent,
    records: Iterable[Any],
    conflict_window: timedelta = CONFLICT_WINDOW,
) -> ProjectedContent:
    """Fold ``records`` onto ``snapshot``.

    For wikis, a SYNTHESIZE in the delta or in the snapshot's history
    clears any conflict; otherwise new revisions trigger a fresh conflict
    check over the merged list, and a delta without new revisions leaves the
    snapshot's flags as they were.

    Args:
        snapshot: A projection previously produced by replay.
        records: Raw records written after the snapshot, in time order.
        conflict_window: Wiki conflict proximity threshold.

    Returns:
        A new projection of the same type.

    Raises:
        ValueError: If ``snapshot`` is not a projection.
    """
    parsed = list(iter_records(records))
    if not parsed:
        return snapshot
    content_id = snapshot.content_id
    history = list(snapshot.history)

    if isinstance(snapshot, ProjectedPageSchema):
        blocks = {block.block_id: block for block in snapshot.blocks}
        fold_blocks(
            iter_operations(parsed, ChildType.BLOCK, content_id), blocks, history
        )
        return snapshot.model_copy(
            update={
                "blocks": list(blocks.values()),
                "block_order": order_blocks(blocks.values()),
                "history": history,
            }
        )

    if isinstance(snapshot, (ProjectedWikiSchema, ProjectedBlogSchema)):
        revisions = {revision.rev_id: revision for revision in snapshot.revisions}
        if isinstance(snapshot, ProjectedWikiSchema):
            operations = list(revision_operations(parsed, content_id))
        else:
            operations = list(iter_operations(parsed, ChildType.REVISION, content_id))
        fold_revisions(operations, revisions, history)
        ordered = sort_revisions(revisions.values())
        update: dict[str, Any] = {
            "revisions": ordered,
            "current_revision": ordered[-1] if ordered else None,
            "history": history,
        }
        if isinstance(snapshot, ProjectedWikiSchema):
            # A SYNTHESIZE before the snapshot is in its history
            resolved = has_synthesis(parsed) or any(
                entry.op == Op.SYNTHESIZE for entry in snapshot.history
            )
            if resolved:
                update["has_conflict"] = False
                update["conflict_candidates"] = []
            elif any(operation.op == Op.INSERT for operation in operations):
                conflict = detect_conflict(ordered, [], conflict_window)
                update["has_conflict"] = conflict.has_conflict
                update["conflict_candidates"] = conflict.candidates
        return snapshot.model_copy(update=update)

    if isinstance(snapshot, ProjectedExperimentSchema):
        # Tombstoned entries were already dropped from the snapshot
        entries = {entry.entry_id: entry for entry in snapshot.entries}
        fold_entries(
            iter_operations(parsed, ChildType.ENTRY, content_id), entries, history
        )
        return snapshot.model_copy(
            update={
                "entries": [e for e in entries.values() if not e.deleted],
                "history": history,
            }
        )

    raise ValueError(f"Cannot apply a delta to {type(snapshot).__name__}")
