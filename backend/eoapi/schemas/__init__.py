"""Pydantic schemas module.

This module contains Pydantic models used for:
- API request/response validation
- The output contract of the replay engine

Naming convention:
- Schema suffix on every model
- Projected* prefix for replayed entity states
"""

from eoapi.schemas.projection import (
    BlockSchema,
    ContentMetaSchema,
    ExperimentEntrySchema,
    HistoryEntrySchema,
    IndexEntrySchema,
    ProjectedBlogSchema,
    ProjectedContent,
    ProjectedExperimentSchema,
    ProjectedPageSchema,
    ProjectedWikiSchema,
    RevisionSchema,
    SiteIndexSchema,
)
from eoapi.schemas.replay import (
    DeltaRequestSchema,
    IndexRequestSchema,
    ReplayRequestSchema,
)

__all__ = [
    "BlockSchema",
    "ContentMetaSchema",
    "DeltaRequestSchema",
    "ExperimentEntrySchema",
    "HistoryEntrySchema",
    "IndexEntrySchema",
    "IndexRequestSchema",
    "ProjectedBlogSchema",
    "ProjectedContent",
    "ProjectedExperimentSchema",
    "ProjectedPageSchema",
    "ProjectedWikiSchema",
    "ReplayRequestSchema",
    "RevisionSchema",
    "SiteIndexSchema",
]
