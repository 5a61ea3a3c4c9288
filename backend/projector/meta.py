"""Metadata extraction.

An entity's metadata starts from defaults derived from its content id and is
then overridden, field by field, by metadata snapshots and by DESCRIBE
operations, with later timestamps winning.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from eoapi.models.enums import ROOT_CONTENT_TYPES, Op
from eoapi.schemas.projection import ContentMetaSchema, Timestamp
from projector.ops import (
    DescribeOperand,
    LogRecord,
    MetaSnapshot,
    Target,
    parse_target,
)

logger = logging.getLogger(__name__)

# content_id and content_type are fixed by the address itself
PROTECTED_FIELDS = frozenset({"content_id", "content_type"})

_timestamp = TypeAdapter(Timestamp)


def parse_content_id(content_id: str) -> Target:
    """Parse a root content id such as "wiki:operators".

    Raises:
        ValueError: If the id is not a root address of a content kind.
    """
    target = parse_target(content_id)
    if (
        target is None
        or target.child_type is not None
        or target.root_type not in ROOT_CONTENT_TYPES
    ):
        raise ValueError(f"Not a content id: {content_id!r}")
    return target


def default_meta(content_id: str) -> ContentMetaSchema:
    """Metadata for an entity nobody has described yet."""
    target = parse_content_id(content_id)
    return ContentMetaSchema(
        content_id=content_id,
        content_type=ROOT_CONTENT_TYPES[target.root_type],
        slug=target.root_slug,
        title=target.root_slug,
    )


def merge_meta(
    meta: ContentMetaSchema,
    fields: Mapping[str, Any],
    updated_at: datetime | None = None,
) -> ContentMetaSchema:
    """Shallow-merge ``fields`` into ``meta``.

    Unknown and protected keys are ignored. If the merged record does not
    validate (e.g. an unknown status), ``meta`` is returned unchanged.
    """
    update = {
        key: value
        for key, value in fields.items()
        if key in ContentMetaSchema.model_fields and key not in PROTECTED_FIELDS
    }
    if updated_at is not None:
        update["updated_at"] = updated_at
    try:
        return ContentMetaSchema.model_validate({**meta.model_dump(), **update})
    except ValidationError as e:
        logger.debug(
            f"Ignoring metadata update for {meta.content_id}: "
            f"{e.error_count()} validation error(s)"
        )
        return meta


def _snapshot_time(fields: Mapping[str, Any]) -> datetime | None:
    value = fields.get("updated_at")
    if value is None:
        return None
    try:
        parsed = _timestamp.validate_python(value)
    except ValidationError:
        return None
    return parsed


def extract_meta(
    content_id: str,
    records: Iterable[LogRecord],
    meta_override: Mapping[str, Any] | None = None,
) -> ContentMetaSchema:
    """Derive an entity's metadata from its log.

    In-log metadata snapshots and root-level DESCRIBE operations are merged
    in log order; a DESCRIBE also sets ``updated_at`` to its own timestamp.
    ``meta_override`` is a snapshot supplied from outside the log. It is
    merged just before the first DESCRIBE that is not older than its own
    ``updated_at`` (first of all if it has none), so the later of the two
    wins.

    Args:
        content_id: Root content id, e.g. "blog:hello".
        records: Parsed records of the entity, in log order.
        meta_override: Optional side-channel metadata snapshot.

    Returns:
        The merged metadata.
    """
    meta = default_meta(content_id)
    pending = dict(meta_override) if meta_override else None
    pending_time = _snapshot_time(pending) if pending else None

    for record in records:
        if isinstance(record, MetaSnapshot):
            meta = merge_meta(meta, record.fields)
            continue
        if (
            record.op != Op.DESCRIBE
            or record.target.child_type is not None
            or record.target.root_id != content_id
            or not isinstance(record.operand, DescribeOperand)
        ):
            continue
        if pending is not None and (
            pending_time is None or pending_time <= record.ctx.ts
        ):
            meta = merge_meta(meta, pending)
            pending = None
        meta = merge_meta(meta, record.operand.fields, updated_at=record.ctx.ts)

    if pending is not None:
        meta = merge_meta(meta, pending)
    return meta
