"""Minimal JSON-patch applier.

Pure function: the input map is deep-copied and never mutated, so a fold can
hold on to earlier states safely.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from typing import Any

from projector.ops import PatchOperation

logger = logging.getLogger(__name__)

# Appends to a list on add
APPEND_SEGMENT = "-"


def _split_path(path: str) -> list[str]:
    """Split a "/"-delimited path, ignoring a single leading slash."""
    return path[1:].split("/") if path.startswith("/") else path.split("/")


def _list_index(segment: str, upper: int) -> int | None:
    """Parse ``segment`` as a list index in ``[0, upper)``."""
    if not (segment.isascii() and segment.isdigit()):
        return None
    index = int(segment)
    return index if index < upper else None


def _descend(cursor: Any, segment: str, create: bool) -> Any:
    """Step into ``cursor[segment]``, or return None if the path is dead.

    With ``create``, a key missing from a map is filled with an empty map.
    Existing scalars are never overwritten.
    """
    if isinstance(cursor, dict):
        if segment not in cursor and create:
            cursor[segment] = {}
        child = cursor.get(segment)
    elif isinstance(cursor, list):
        index = _list_index(segment, len(cursor))
        child = cursor[index] if index is not None else None
    else:
        return None
    return child if isinstance(child, (dict, list)) else None


def _apply_step(result: dict[str, Any], step: PatchOperation) -> bool:
    """Apply one step in place; return False if its path does not resolve."""
    *parents, leaf = _split_path(step.path)
    cursor: Any = result
    for segment in parents:
        cursor = _descend(cursor, segment, create=step.op != "remove")
        if cursor is None:
            return False

    if isinstance(cursor, dict):
        if step.op == "remove":
            cursor.pop(leaf, None)
        else:
            cursor[leaf] = copy.deepcopy(step.value)
        return True

    if step.op == "add":
        if leaf == APPEND_SEGMENT:
            cursor.append(copy.deepcopy(step.value))
            return True
        index = _list_index(leaf, len(cursor) + 1)
        if index is None:
            return False
        cursor.insert(index, copy.deepcopy(step.value))
        return True

    index = _list_index(leaf, len(cursor))
    if index is None:
        return False
    if step.op == "replace":
        cursor[index] = copy.deepcopy(step.value)
    else:
        del cursor[index]
    return True


def apply_patch(
    data: dict[str, Any], patch: Iterable[PatchOperation]
) -> dict[str, Any]:
    """Apply add/replace/remove steps to a copy of ``data``.

    Paths walk through maps by key and through lists by index. For
    add/replace, keys missing from a map along the path are created as empty
    maps. On a list, add inserts at the index (``-`` appends), replace and
    remove need an existing index. A step whose path runs through an
    existing scalar or an out-of-range index changes nothing, and removing a
    missing key is a no-op.

    Args:
        data: The current map (left untouched).
        patch: Patch steps, applied in order.

    Returns:
        A new map with every applicable step applied.
    """
    result = copy.deepcopy(data)
    for step in patch:
        if not _apply_step(result, step):
            logger.debug(f"Skipping patch step {step.op} {step.path}: no such path")
    return result
