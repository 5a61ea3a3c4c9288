"""Site index replay: the global catalog of all entities.

The index lives in its own stream, addressed ``site:index/index:<content_id>``.
INSERT and DESCRIBE both upsert a whole entry; NULLIFY archives one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from eoapi.models.enums import (
    ChildType,
    ContentStatus,
    ContentType,
    Op,
    Visibility,
)
from eoapi.schemas.projection import IndexEntrySchema, SiteIndexSchema
from projector.ops import IndexUpsert, Operation, iter_operations, iter_records

logger = logging.getLogger(__name__)


def _entry_from(operation: Operation, operand: IndexUpsert) -> IndexEntrySchema:
    content_id = operation.target.child_id
    _, _, default_slug = content_id.partition(":")
    return IndexEntrySchema(
        content_id=content_id,
        slug=operand.slug or default_slug or content_id,
        title=operand.title or content_id,
        content_type=operand.content_type or ContentType.PAGE,
        status=operand.status or ContentStatus.DRAFT,
        visibility=operand.visibility or Visibility.PRIVATE,
        tags=list(operand.tags or []),
        event_id=operation.event_id,
    )


def is_navigable(entry: IndexEntrySchema) -> bool:
    return (
        entry.status == ContentStatus.PUBLISHED
        and entry.visibility == Visibility.PUBLIC
    )


def replay_site_index(
    records: Iterable[Any], built_at: datetime | None = None
) -> SiteIndexSchema:
    """Fold the index stream into the site catalog.

    Entries are keyed by content id. An upsert replaces the whole entry
    (missing fields fall back to defaults) and points its slug at it; slugs
    an entry used before stay in ``slug_map``. NULLIFY of an unknown entry
    is a no-op.

    Args:
        records: Raw index records, in ascending time order.
        built_at: Build timestamp to stamp on the result (default: now).

    Returns:
        SiteIndexSchema with all entries and the navigable subset.
    """
    entries: dict[str, IndexEntrySchema] = {}
    slug_map: dict[str, str] = {}

    for operation in iter_operations(iter_records(records), ChildType.INDEX):
        content_id = operation.target.child_id
        operand = operation.operand

        if operation.op in (Op.INSERT, Op.DESCRIBE) and isinstance(
            operand, IndexUpsert
        ):
            entry = _entry_from(operation, operand)
            entries[content_id] = entry
            slug_map[entry.slug] = content_id
        elif operation.op == Op.NULLIFY and content_id in entries:
            entries[content_id] = entries[content_id].model_copy(
                update={"status": ContentStatus.ARCHIVED}
            )

    all_entries = list(entries.values())
    logger.debug(f"Site index: {len(all_entries)} entries")
    return SiteIndexSchema(
        entries=all_entries,
        nav=[entry for entry in all_entries if is_navigable(entry)],
        slug_map=slug_map,
        built_at=built_at or datetime.now(timezone.utc),
    )
