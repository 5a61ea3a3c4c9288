"""Positional list reconstruction for page blocks.

Blocks point at their predecessor through ``after``; the visible order is
rebuilt by walking that chain from the head (``after is None``).
"""

from __future__ import annotations

from collections.abc import Iterable

from eoapi.schemas.projection import BlockSchema


def order_blocks(blocks: Iterable[BlockSchema]) -> list[str]:
    """Rebuild the visible block order.

    When several live blocks claim the same predecessor, the last one
    processed wins and the others drop out of the order (they remain in the
    block set). The walk is capped at ``len(blocks) + 1`` steps, so a cycle
    or a dangling ``after`` truncates the order instead of hanging.

    Args:
        blocks: All blocks of a page, deleted ones included.

    Returns:
        Ordered IDs of the reachable, non-deleted blocks.
    """
    blocks = list(blocks)
    successor: dict[str | None, str] = {}
    for block in blocks:
        if not block.deleted:
            successor[block.after] = block.block_id

    ordered: list[str] = []
    current: str | None = None
    for _ in range(len(blocks) + 1):
        following = successor.get(current)
        if following is None:
            break
        ordered.append(following)
        current = following
    return ordered
