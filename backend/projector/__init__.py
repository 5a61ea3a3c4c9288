"""Replay/projection engine for the EO content log.

Turns an ordered list of ``op(target, operand, ctx)`` records into
JSON-serializable entity projections and the site index. Pure and
synchronous: no I/O, no shared state, safe to run per entity in parallel.
"""

from projector.access import access_mode, is_visible
from projector.delta import apply_delta
from projector.replay import (
    replay_blog,
    replay_entity,
    replay_experiment,
    replay_page,
    replay_wiki,
)
from projector.site_index import replay_site_index

__all__ = [
    "access_mode",
    "apply_delta",
    "is_visible",
    "replay_blog",
    "replay_entity",
    "replay_experiment",
    "replay_page",
    "replay_site_index",
    "replay_wiki",
]
