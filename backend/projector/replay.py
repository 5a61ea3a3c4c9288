"""Entity replayers: fold an entity's ordered log into its projection.

Each content kind has its own fold over the records addressed at its child
type (blocks for pages, revisions for wikis and blogs, entries for
experiments), keyed by child id. The folds are pure: identical input always
yields an identical projection, and nothing is persisted between replays.

The log is trusted to be in ascending timestamp order; it is never re-sorted
here. Lifecycle of a child record::

    {unknown} --INSERT--> {active} --ALTER*--> {active} --NULLIFY--> {tombstoned}

ALTER and NULLIFY on an unknown or tombstoned record are no-ops. A later
INSERT with the same id overwrites the accumulator entry, which recreates
the record.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Iterator, Mapping
from datetime import timedelta
from typing import Any

from eoapi.models.enums import (
    ROOT_CONTENT_TYPES,
    AccessMode,
    ChildType,
    ContentType,
    Op,
)
from eoapi.schemas.projection import (
    BlockSchema,
    ContentMetaSchema,
    ExperimentEntrySchema,
    HistoryEntrySchema,
    ProjectedBlogSchema,
    ProjectedContent,
    ProjectedExperimentSchema,
    ProjectedPageSchema,
    ProjectedWikiSchema,
    RevisionSchema,
)
from projector.access import is_visible
from projector.blocks import order_blocks
from projector.conflict import CONFLICT_WINDOW, detect_conflict
from projector.meta import extract_meta, parse_content_id
from projector.ops import (
    AlterOperand,
    BlockInsert,
    EntryInsert,
    LogRecord,
    Operation,
    RevisionInsert,
    iter_operations,
    iter_records,
)
from projector.patch import apply_patch

logger = logging.getLogger(__name__)


def history_entry(operation: Operation) -> HistoryEntrySchema:
    return HistoryEntrySchema(
        event_id=operation.event_id,
        op=operation.op,
        ts=operation.ctx.ts,
        agent=operation.ctx.agent,
    )


def require_content_type(content_id: str, expected: ContentType) -> None:
    """Reject a content id that belongs to another replayer.

    Raises:
        ValueError: If ``content_id`` is malformed or of another kind.
    """
    target = parse_content_id(content_id)
    actual = ROOT_CONTENT_TYPES[target.root_type]
    if actual != expected:
        raise ValueError(
            f"{content_id!r} is a {actual.value}, not a {expected.value}"
        )


# =============================================================================
# Folds
# =============================================================================


def fold_blocks(
    operations: Iterable[Operation],
    blocks: dict[str, BlockSchema],
    history: list[HistoryEntrySchema],
) -> None:
    """Fold block operations into ``blocks`` and ``history``.

    ``blocks`` is keyed by block id in first-insert order. Records are
    replaced, never mutated, so earlier states stay intact.
    """
    for operation in operations:
        history.append(history_entry(operation))
        block_id = operation.target.child_id
        operand = operation.operand
        existing = blocks.get(block_id)

        if operation.op == Op.INSERT and isinstance(operand, BlockInsert):
            blocks[block_id] = BlockSchema(
                block_id=block_id,
                block_type=operand.block_type,
                data=copy.deepcopy(operand.data),
                after=operand.after,
                deleted=False,
                event_id=operation.event_id,
            )
        elif existing is None or existing.deleted:
            continue
        elif operation.op == Op.ALTER and isinstance(operand, AlterOperand):
            blocks[block_id] = existing.model_copy(
                update={
                    "data": apply_patch(existing.data, operand.patch),
                    "after": operand.after if operand.moves else existing.after,
                    "event_id": operation.event_id,
                }
            )
        elif operation.op == Op.NULLIFY:
            blocks[block_id] = existing.model_copy(
                update={"deleted": True, "event_id": operation.event_id}
            )


def fold_revisions(
    operations: Iterable[Operation],
    revisions: dict[str, RevisionSchema],
    history: list[HistoryEntrySchema],
) -> None:
    """Fold revision operations. Only INSERT creates anything."""
    for operation in operations:
        history.append(history_entry(operation))
        operand = operation.operand
        if operation.op == Op.INSERT and isinstance(operand, RevisionInsert):
            rev_id = operation.target.child_id
            revisions[rev_id] = RevisionSchema(
                rev_id=rev_id,
                format=operand.format,
                content=operand.content,
                summary=operand.summary,
                ts=operation.ctx.ts,
                event_id=operation.event_id,
            )


def fold_entries(
    operations: Iterable[Operation],
    entries: dict[str, ExperimentEntrySchema],
    history: list[HistoryEntrySchema],
) -> None:
    """Fold experiment entry operations."""
    for operation in operations:
        history.append(history_entry(operation))
        entry_id = operation.target.child_id
        operand = operation.operand
        existing = entries.get(entry_id)

        if operation.op == Op.INSERT and isinstance(operand, EntryInsert):
            entries[entry_id] = ExperimentEntrySchema(
                entry_id=entry_id,
                kind=operand.kind,
                data=copy.deepcopy(operand.data),
                ts=operation.ctx.ts,
                deleted=False,
                event_id=operation.event_id,
            )
        elif existing is None or existing.deleted:
            continue
        elif operation.op == Op.ALTER and isinstance(operand, AlterOperand):
            entries[entry_id] = existing.model_copy(
                update={
                    "data": apply_patch(existing.data, operand.patch),
                    "event_id": operation.event_id,
                }
            )
        elif operation.op == Op.NULLIFY:
            entries[entry_id] = existing.model_copy(
                update={"deleted": True, "event_id": operation.event_id}
            )


def revision_operations(
    records: Iterable[LogRecord], content_id: str
) -> Iterator[Operation]:
    """Yield revision operations and the SYNTHESIZE operations of an entity.

    SYNTHESIZE targets the root, not a revision, but it is kept in wiki
    history so a stored projection remembers that a conflict was resolved.
    """
    for record in records:
        if not isinstance(record, Operation) or record.target.root_id != content_id:
            continue
        if record.op == Op.SYNTHESIZE or (
            record.target.child_type == ChildType.REVISION and record.target.child_id
        ):
            yield record


def sort_revisions(revisions: Iterable[RevisionSchema]) -> list[RevisionSchema]:
    """Sort ascending by timestamp; ties keep log order."""
    return sorted(revisions, key=lambda revision: revision.ts)


# =============================================================================
# Per-kind replayers
# =============================================================================


def replay_page(
    content_id: str, meta: ContentMetaSchema, records: Iterable[LogRecord]
) -> ProjectedPageSchema:
    """Replay a page. Deleted blocks stay in ``blocks`` but not in the order."""
    require_content_type(content_id, ContentType.PAGE)
    blocks: dict[str, BlockSchema] = {}
    history: list[HistoryEntrySchema] = []
    fold_blocks(
        iter_operations(records, ChildType.BLOCK, content_id), blocks, history
    )
    return ProjectedPageSchema(
        content_id=content_id,
        meta=meta,
        blocks=list(blocks.values()),
        block_order=order_blocks(blocks.values()),
        history=history,
    )


def replay_wiki(
    content_id: str,
    meta: ContentMetaSchema,
    records: Iterable[LogRecord],
    conflict_window: timedelta = CONFLICT_WINDOW,
) -> ProjectedWikiSchema:
    """Replay a wiki article, flagging unresolved concurrent edits."""
    require_content_type(content_id, ContentType.WIKI)
    records = list(records)
    revisions: dict[str, RevisionSchema] = {}
    history: list[HistoryEntrySchema] = []
    fold_revisions(revision_operations(records, content_id), revisions, history)
    ordered = sort_revisions(revisions.values())
    conflict = detect_conflict(ordered, records, conflict_window)
    return ProjectedWikiSchema(
        content_id=content_id,
        meta=meta,
        current_revision=ordered[-1] if ordered else None,
        revisions=ordered,
        has_conflict=conflict.has_conflict,
        conflict_candidates=conflict.candidates,
        history=history,
    )


def replay_blog(
    content_id: str, meta: ContentMetaSchema, records: Iterable[LogRecord]
) -> ProjectedBlogSchema:
    """Replay a blog post. Blogs have no conflict concept."""
    require_content_type(content_id, ContentType.BLOG)
    revisions: dict[str, RevisionSchema] = {}
    history: list[HistoryEntrySchema] = []
    fold_revisions(
        iter_operations(records, ChildType.REVISION, content_id), revisions, history
    )
    ordered = sort_revisions(revisions.values())
    return ProjectedBlogSchema(
        content_id=content_id,
        meta=meta,
        current_revision=ordered[-1] if ordered else None,
        revisions=ordered,
        history=history,
    )


def replay_experiment(
    content_id: str, meta: ContentMetaSchema, records: Iterable[LogRecord]
) -> ProjectedExperimentSchema:
    """Replay an experiment. Tombstoned entries are dropped entirely."""
    require_content_type(content_id, ContentType.EXPERIMENT)
    entries: dict[str, ExperimentEntrySchema] = {}
    history: list[HistoryEntrySchema] = []
    fold_entries(
        iter_operations(records, ChildType.ENTRY, content_id), entries, history
    )
    return ProjectedExperimentSchema(
        content_id=content_id,
        meta=meta,
        entries=[entry for entry in entries.values() if not entry.deleted],
        history=history,
    )


# =============================================================================
# Orchestrator
# =============================================================================


def replay_entity(
    content_id: str,
    records: Iterable[Any],
    mode: AccessMode = AccessMode.PUBLIC,
    meta_override: Mapping[str, Any] | None = None,
    conflict_window: timedelta = CONFLICT_WINDOW,
) -> ProjectedContent | None:
    """Replay one entity's log into its projection.

    Args:
        content_id: Root content id, e.g. "page:about".
        records: Raw log records for the entity, in ascending time order.
        mode: PUBLIC emits only published+public entities; INCLUDE_DRAFTS
            emits everything but archived ones.
        meta_override: Optional side-channel metadata snapshot.
        conflict_window: Wiki conflict proximity threshold.

    Returns:
        The projection, or None if the access filter hides the entity.

    Raises:
        ValueError: If ``content_id`` is not a content root id.
    """
    target = parse_content_id(content_id)
    parsed = list(iter_records(records))
    meta = extract_meta(content_id, parsed, meta_override)

    if not is_visible(meta, mode):
        logger.debug(
            f"Filtered {content_id} ({meta.status.value}, {meta.visibility.value})"
        )
        return None

    content_type = ROOT_CONTENT_TYPES[target.root_type]
    if content_type == ContentType.PAGE:
        return replay_page(content_id, meta, parsed)
    if content_type == ContentType.WIKI:
        return replay_wiki(content_id, meta, parsed, conflict_window)
    if content_type == ContentType.BLOG:
        return replay_blog(content_id, meta, parsed)
    return replay_experiment(content_id, meta, parsed)
