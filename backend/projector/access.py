"""Access filter applied before entity-specific replay."""

from __future__ import annotations

from eoapi.models.enums import AccessMode, ContentStatus, Visibility
from eoapi.schemas.projection import ContentMetaSchema


def access_mode(include_drafts: bool) -> AccessMode:
    return AccessMode.INCLUDE_DRAFTS if include_drafts else AccessMode.PUBLIC


def is_visible(meta: ContentMetaSchema, mode: AccessMode) -> bool:
    """Whether an entity may be projected in the given mode.

    Archived entities are never projected. Public passes additionally
    require status=published and visibility=public.
    """
    if meta.status == ContentStatus.ARCHIVED:
        return False
    if mode == AccessMode.INCLUDE_DRAFTS:
        return True
    return (
        meta.status == ContentStatus.PUBLISHED
        and meta.visibility == Visibility.PUBLIC
    )
