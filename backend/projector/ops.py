"""Op model: parsing and validation of raw log records.

Every record in the log has the normal form ``op(target, operand, ctx)``.
Records are validated here, at parse time, into typed ``Operation`` values;
anything malformed is skipped so that a single bad record never fails a
replay.

Records may arrive wrapped in an envelope::

    {"event_id": "$abc", "type": "eo.op", "content": {op, target, operand, ctx}}

or bare (just the operation mapping). Envelopes of type
``com.eo.content.meta`` carry an out-of-band metadata snapshot instead of an
operation.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from eoapi.models.enums import (
    ChildType,
    ContentStatus,
    ContentType,
    EntryKind,
    Op,
    RootType,
    Visibility,
)
from eoapi.schemas.projection import Timestamp

logger = logging.getLogger(__name__)

EO_OP_EVENT = "eo.op"
CONTENT_META_EVENT = "com.eo.content.meta"

REQUIRED_FIELDS = ("op", "target", "operand", "ctx")

# target := rootType ":" rootSlug ("/" childType ":" childId)?
# childId may contain ":" because index rows are keyed by content id.
TARGET_PATTERN = re.compile(
    r"^(?P<root_type>page|blog|wiki|exp|site):(?P<root_slug>[^/:]+)"
    r"(?:/(?P<child_type>block|rev|entry|index):(?P<child_id>[^/]+))?$"
)


# =============================================================================
# Targets
# =============================================================================


@dataclass(frozen=True)
class Target:
    """A parsed hierarchical address."""

    root_type: RootType
    root_slug: str
    child_type: ChildType | None = None
    child_id: str | None = None

    @property
    def root_id(self) -> str:
        return f"{self.root_type.value}:{self.root_slug}"

    def __str__(self) -> str:
        if self.child_type is None:
            return self.root_id
        return f"{self.root_id}/{self.child_type.value}:{self.child_id}"


def parse_target(target: str) -> Target | None:
    """Parse a target address, returning None if it does not match the grammar."""
    if not isinstance(target, str):
        return None
    match = TARGET_PATTERN.match(target)
    if match is None:
        return None
    child_type = match.group("child_type")
    return Target(
        root_type=RootType(match.group("root_type")),
        root_slug=match.group("root_slug"),
        child_type=ChildType(child_type) if child_type else None,
        child_id=match.group("child_id"),
    )


# =============================================================================
# Provenance
# =============================================================================


class Context(BaseModel):
    """Provenance of a log record."""

    agent: str
    ts: Timestamp
    txn: str | None = None
    parent: str | None = None
    role: str | None = None


# =============================================================================
# Operand shapes
# =============================================================================


class PatchOperation(BaseModel):
    """A single add/replace/remove step of a JSON patch."""

    op: Literal["add", "replace", "remove"]
    path: str
    value: Any = None


class BlockInsert(BaseModel):
    """INSERT on ``page:*/block:*``."""

    block_type: str = "text"
    data: dict[str, Any] = Field(default_factory=dict)
    after: str | None = None


class RevisionInsert(BaseModel):
    """INSERT on ``wiki:*/rev:*`` or ``blog:*/rev:*``."""

    format: str = "markdown"
    content: str = ""
    summary: str = ""


class EntryInsert(BaseModel):
    """INSERT on ``exp:*/entry:*``."""

    kind: EntryKind = EntryKind.NOTE
    data: dict[str, Any] = Field(default_factory=dict)


class IndexUpsert(BaseModel):
    """INSERT or DESCRIBE on ``site:index/index:*``.

    A DESCRIBE built by the editor wraps its fields in ``set``; those are
    unwrapped so both forms carry the same shape.
    """

    slug: str | None = None
    title: str | None = None
    content_type: ContentType | None = None
    status: ContentStatus | None = None
    visibility: Visibility | None = None
    tags: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_set(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and isinstance(data.get("set"), Mapping):
            return data["set"]
        return data


class DescribeOperand(BaseModel):
    """DESCRIBE on a root target: a partial metadata update.

    ``set`` is required; a DESCRIBE without it is malformed and skipped.
    """

    fields: dict[str, Any] = Field(alias="set")


class AlterOperand(BaseModel):
    """ALTER: a JSON patch for ``data``, optionally moving a block.

    ``after`` only takes effect when the key is present; an explicit null
    moves the block to the head.
    """

    patch: list[PatchOperation] = Field(default_factory=list)
    after: str | None = None

    @property
    def moves(self) -> bool:
        return "after" in self.model_fields_set


class NullifyOperand(BaseModel):
    """NULLIFY: tombstone a record."""

    reason: str | None = None


class SynthesizeOperand(BaseModel):
    """SYNTHESIZE: resolve a conflict by choosing among inputs."""

    mode: str = "most_recent"
    chosen: str | None = None
    inputs: list[str] = Field(default_factory=list)


class GenericOperand(BaseModel):
    """SEGMENT, CONNECT, SUPERPOSE, RECOMBINE and root-level INSERT.

    These are recorded in history but have no effect on any projection.
    """

    model_config = ConfigDict(extra="allow")


Operand = (
    BlockInsert
    | RevisionInsert
    | EntryInsert
    | IndexUpsert
    | DescribeOperand
    | AlterOperand
    | NullifyOperand
    | SynthesizeOperand
    | GenericOperand
)

_INSERT_MODELS: dict[ChildType, type[BaseModel]] = {
    ChildType.BLOCK: BlockInsert,
    ChildType.REVISION: RevisionInsert,
    ChildType.ENTRY: EntryInsert,
    ChildType.INDEX: IndexUpsert,
}

_OPERAND_MODELS: dict[Op, type[BaseModel]] = {
    Op.ALTER: AlterOperand,
    Op.NULLIFY: NullifyOperand,
    Op.SYNTHESIZE: SynthesizeOperand,
}


def operand_model(op: Op, child_type: ChildType | None) -> type[BaseModel]:
    """Return the operand shape for an operator addressed at a child type."""
    if op == Op.INSERT and child_type is not None:
        return _INSERT_MODELS[child_type]
    if op == Op.DESCRIBE:
        return IndexUpsert if child_type == ChildType.INDEX else DescribeOperand
    return _OPERAND_MODELS.get(op, GenericOperand)


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class Operation:
    """A validated log operation."""

    event_id: str
    op: Op
    target: Target
    operand: Operand
    ctx: Context


@dataclass(frozen=True)
class MetaSnapshot:
    """An out-of-band metadata snapshot (not part of the op log)."""

    event_id: str
    fields: dict[str, Any]


LogRecord = Operation | MetaSnapshot


def parse_operation(content: Any, event_id: str) -> Operation | None:
    """Validate one operation mapping.

    Returns:
        The typed Operation, or None if the record is malformed.
    """
    if not isinstance(content, Mapping):
        logger.debug(f"Skipping {event_id}: not a mapping")
        return None
    missing = [name for name in REQUIRED_FIELDS if name not in content]
    if missing:
        logger.debug(f"Skipping {event_id}: missing {', '.join(missing)}")
        return None

    op = Op.lookup(content["op"]) if isinstance(content["op"], str) else None
    if op is None:
        logger.debug(f"Skipping {event_id}: unknown operator {content['op']!r}")
        return None

    target = parse_target(content["target"])
    if target is None:
        logger.debug(f"Skipping {event_id}: bad target {content['target']!r}")
        return None

    try:
        ctx = Context.model_validate(content["ctx"])
        operand = operand_model(op, target.child_type).model_validate(
            content["operand"]
        )
    except ValidationError as e:
        logger.debug(f"Skipping {event_id}: {e.error_count()} validation error(s)")
        return None

    return Operation(
        event_id=event_id, op=op, target=target, operand=operand, ctx=ctx
    )


def _bare_event_id(raw: Mapping[str, Any], position: int) -> str:
    event_id = raw.get("event_id")
    if isinstance(event_id, str) and event_id:
        return event_id
    ctx = raw.get("ctx")
    if isinstance(ctx, Mapping) and isinstance(ctx.get("txn"), str) and ctx["txn"]:
        return ctx["txn"]
    return f"${position}"


def parse_record(raw: Any, position: int = 0) -> LogRecord | None:
    """Parse one raw log record (enveloped or bare).

    Args:
        raw: The decoded JSON record.
        position: Index of the record in its list, used as a fallback id.

    Returns:
        An Operation, a MetaSnapshot, or None for anything else.
    """
    if not isinstance(raw, Mapping):
        logger.debug(f"Skipping record {position}: not a mapping")
        return None

    if "content" in raw and "type" in raw:
        event_id = raw.get("event_id")
        if not isinstance(event_id, str) or not event_id:
            event_id = f"${position}"
        if raw["type"] == CONTENT_META_EVENT:
            if not isinstance(raw["content"], Mapping):
                logger.debug(f"Skipping {event_id}: metadata is not a mapping")
                return None
            return MetaSnapshot(event_id=event_id, fields=dict(raw["content"]))
        if raw["type"] != EO_OP_EVENT:
            return None
        return parse_operation(raw["content"], event_id)

    return parse_operation(raw, _bare_event_id(raw, position))


def iter_records(records: Iterable[Any]) -> Iterator[LogRecord]:
    """Yield the valid records of a log, in order, skipping the rest."""
    for position, raw in enumerate(records):
        record = parse_record(raw, position)
        if record is not None:
            yield record


def iter_operations(
    records: Iterable[LogRecord],
    child_type: ChildType,
    root_id: str | None = None,
) -> Iterator[Operation]:
    """Yield the operations addressed at one child type, in order.

    When ``root_id`` is given, operations on other entities are skipped too.
    """
    for record in records:
        if (
            isinstance(record, Operation)
            and record.target.child_type == child_type
            and record.target.child_id
            and (root_id is None or record.target.root_id == root_id)
        ):
            yield record
