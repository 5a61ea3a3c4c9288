"""Enum types for the EO content platform."""

from eoapi.models.enums import (
    ROOT_CONTENT_TYPES,
    AccessMode,
    ChildType,
    ContentStatus,
    ContentType,
    EntryKind,
    Op,
    RootType,
    Visibility,
)

__all__ = [
    "ROOT_CONTENT_TYPES",
    "AccessMode",
    "ChildType",
    "ContentStatus",
    "ContentType",
    "EntryKind",
    "Op",
    "RootType",
    "Visibility",
]
