"""Constructors for well-formed log operations.

Every edit in the editor emits one of these. They return plain mappings in
the wire shape (``op``/``target``/``operand``/``ctx``), ready to append to
the log or to feed straight back into a replay.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from eoapi.models.enums import Op

INDEX_ROOT = "site:index"


def _ctx(agent: str, ts: datetime | None, txn: str | None = None) -> dict[str, Any]:
    ts = ts or datetime.now(timezone.utc)
    ctx: dict[str, Any] = {"agent": agent, "ts": ts.isoformat()}
    if txn is not None:
        ctx["txn"] = txn
    return ctx


def _millis(ts: datetime | None) -> int:
    return int((ts or datetime.now(timezone.utc)).timestamp() * 1000)


def _event(
    op: Op, target: str, operand: Mapping[str, Any], ctx: dict[str, Any]
) -> dict[str, Any]:
    return {"op": op.value, "target": target, "operand": dict(operand), "ctx": ctx}


# =============================================================================
# Content metadata
# =============================================================================


def des_content_meta(
    content_id: str,
    fields: Mapping[str, Any],
    agent: str,
    ts: datetime | None = None,
) -> dict[str, Any]:
    """DESCRIBE an entity's metadata (title, status, tags, visibility...)."""
    return _event(
        Op.DESCRIBE,
        content_id,
        {"set": dict(fields)},
        _ctx(agent, ts, f"des-meta-{content_id}-{_millis(ts)}"),
    )


# =============================================================================
# Site index
# =============================================================================


def ins_index_entry(
    content_id: str,
    fields: Mapping[str, Any],
    agent: str,
    ts: datetime | None = None,
) -> dict[str, Any]:
    """INSERT a catalog row for ``content_id``."""
    return _event(
        Op.INSERT,
        f"{INDEX_ROOT}/index:{content_id}",
        {**fields, "content_id": content_id},
        _ctx(agent, ts, f"ins-index-{content_id}"),
    )


def des_index_entry(
    content_id: str,
    fields: Mapping[str, Any],
    agent: str,
    ts: datetime | None = None,
) -> dict[str, Any]:
    """DESCRIBE a catalog row. Replaces the whole row on replay."""
    return _event(
        Op.DESCRIBE,
        f"{INDEX_ROOT}/index:{content_id}",
        {"set": dict(fields)},
        _ctx(agent, ts),
    )


def nul_index_entry(
    content_id: str, agent: str, ts: datetime | None = None
) -> dict[str, Any]:
    """Archive a catalog row."""
    return _event(
        Op.NULLIFY,
        f"{INDEX_ROOT}/index:{content_id}",
        {"reason": "archived"},
        _ctx(agent, ts),
    )


# =============================================================================
# Page blocks
# =============================================================================


def ins_block(
    page_id: str,
    block_id: str,
    block_type: str,
    data: Mapping[str, Any],
    after: str | None,
    agent: str,
    ts: datetime | None = None,
) -> dict[str, Any]:
    """INSERT a block after ``after`` (None = at the head)."""
    return _event(
        Op.INSERT,
        f"{page_id}/block:{block_id}",
        {"block_type": block_type, "data": dict(data), "after": after},
        _ctx(agent, ts, f"ins-block-{block_id}"),
    )


_KEEP = object()


def alt_block(
    page_id: str,
    block_id: str,
    patch: list[Mapping[str, Any]],
    agent: str,
    after: Any = _KEEP,
    ts: datetime | None = None,
) -> dict[str, Any]:
    """ALTER a block's data; pass ``after`` (even None) to move it."""
    operand: dict[str, Any] = {"patch": [dict(step) for step in patch]}
    if after is not _KEEP:
        operand["after"] = after
    return _event(
        Op.ALTER,
        f"{page_id}/block:{block_id}",
        operand,
        _ctx(agent, ts, f"alt-block-{block_id}-{_millis(ts)}"),
    )


def nul_block(
    page_id: str, block_id: str, agent: str, ts: datetime | None = None
) -> dict[str, Any]:
    return _event(
        Op.NULLIFY,
        f"{page_id}/block:{block_id}",
        {"reason": "user_deleted"},
        _ctx(agent, ts),
    )


# =============================================================================
# Wiki / blog revisions
# =============================================================================


def ins_revision(
    content_id: str,
    rev_id: str,
    content: str,
    agent: str,
    summary: str = "",
    format: str = "markdown",
    ts: datetime | None = None,
) -> dict[str, Any]:
    """INSERT a new immutable revision."""
    return _event(
        Op.INSERT,
        f"{content_id}/rev:{rev_id}",
        {"format": format, "content": content, "summary": summary},
        _ctx(agent, ts, f"ins-rev-{rev_id}"),
    )


def syn_revision(
    content_id: str,
    chosen_rev_id: str,
    candidates: list[str],
    agent: str,
    ts: datetime | None = None,
) -> dict[str, Any]:
    """SYNTHESIZE: resolve a revision conflict in favour of ``chosen_rev_id``."""
    return _event(
        Op.SYNTHESIZE,
        content_id,
        {"mode": "most_recent", "chosen": chosen_rev_id, "inputs": list(candidates)},
        _ctx(agent, ts, f"syn-{content_id}-{_millis(ts)}"),
    )


# =============================================================================
# Experiment entries
# =============================================================================


def ins_exp_entry(
    exp_id: str,
    entry_id: str,
    kind: str,
    data: Mapping[str, Any],
    agent: str,
    ts: datetime | None = None,
) -> dict[str, Any]:
    return _event(
        Op.INSERT,
        f"{exp_id}/entry:{entry_id}",
        {"kind": kind, "data": dict(data)},
        _ctx(agent, ts, f"ins-entry-{entry_id}"),
    )


def alt_exp_entry(
    exp_id: str,
    entry_id: str,
    patch: list[Mapping[str, Any]],
    agent: str,
    ts: datetime | None = None,
) -> dict[str, Any]:
    return _event(
        Op.ALTER,
        f"{exp_id}/entry:{entry_id}",
        {"patch": [dict(step) for step in patch]},
        _ctx(agent, ts),
    )


def nul_exp_entry(
    exp_id: str, entry_id: str, agent: str, ts: datetime | None = None
) -> dict[str, Any]:
    return _event(
        Op.NULLIFY,
        f"{exp_id}/entry:{entry_id}",
        {"reason": "user_deleted"},
        _ctx(agent, ts),
    )
