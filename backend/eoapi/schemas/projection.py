"""Pydantic schemas for projected (replayed) content.

These are the stable output shapes consumed by the site renderer and the
search-index builder. Field names and nesting must not drift.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, Field

from eoapi.models.enums import (
    ContentStatus,
    ContentType,
    EntryKind,
    Op,
    Visibility,
)


def _assume_utc(value: datetime) -> datetime:
    # Naive timestamps are read as UTC so they compare with aware ones
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


Timestamp = Annotated[datetime, AfterValidator(_assume_utc)]


class ContentMetaSchema(BaseModel):
    """Metadata of a single entity.

    Attributes:
        content_id: Root address, e.g. "wiki:operators".
        content_type: Shape inferred from the root prefix.
        slug: URL slug (defaults to the part after the colon).
        title: Display title (defaults to the slug).
        status: draft, published or archived.
        tags: Free-form tags.
        visibility: public or private.
        updated_at: Timestamp of the latest metadata change, if any.
    """

    content_id: str
    content_type: ContentType
    slug: str
    title: str
    status: ContentStatus = ContentStatus.DRAFT
    tags: list[str] = Field(default_factory=list)
    visibility: Visibility = Visibility.PRIVATE
    updated_at: Timestamp | None = None


class HistoryEntrySchema(BaseModel):
    """One accepted log record, kept for audit/inspection."""

    event_id: str
    op: Op
    ts: Timestamp
    agent: str


class BlockSchema(BaseModel):
    """A page content block.

    Blocks form a singly linked list through ``after``: ``None`` means the
    block sits at the head, otherwise it follows the named block.
    """

    block_id: str
    block_type: str
    data: dict[str, Any] = Field(default_factory=dict)
    after: str | None = None
    deleted: bool = False
    event_id: str = Field(..., description="Last event that touched this block")


class RevisionSchema(BaseModel):
    """An immutable wiki or blog revision."""

    rev_id: str
    format: str = "markdown"
    content: str = ""
    summary: str = ""
    ts: Timestamp
    event_id: str


class ExperimentEntrySchema(BaseModel):
    """A lab-notebook entry."""

    entry_id: str
    kind: EntryKind = EntryKind.NOTE
    data: dict[str, Any] = Field(default_factory=dict)
    ts: Timestamp
    deleted: bool = False
    event_id: str


class IndexEntrySchema(BaseModel):
    """One row of the global site catalog."""

    content_id: str
    slug: str
    title: str
    content_type: ContentType = ContentType.PAGE
    status: ContentStatus = ContentStatus.DRAFT
    visibility: Visibility = Visibility.PRIVATE
    tags: list[str] = Field(default_factory=list)
    event_id: str


class _ProjectedBase(BaseModel):
    content_id: str
    meta: ContentMetaSchema
    history: list[HistoryEntrySchema] = Field(default_factory=list)


class ProjectedPageSchema(_ProjectedBase):
    """Replayed page: every block ever inserted plus the visible order."""

    content_type: Literal["page"] = "page"
    blocks: list[BlockSchema] = Field(default_factory=list)
    block_order: list[str] = Field(
        default_factory=list, description="Ordered block IDs (deleted excluded)"
    )


class ProjectedWikiSchema(_ProjectedBase):
    """Replayed wiki article with conflict flags."""

    content_type: Literal["wiki"] = "wiki"
    current_revision: RevisionSchema | None = None
    revisions: list[RevisionSchema] = Field(default_factory=list)
    has_conflict: bool = False
    conflict_candidates: list[str] = Field(default_factory=list)


class ProjectedBlogSchema(_ProjectedBase):
    """Replayed blog post. Same shape as a wiki, never in conflict."""

    content_type: Literal["blog"] = "blog"
    current_revision: RevisionSchema | None = None
    revisions: list[RevisionSchema] = Field(default_factory=list)
    has_conflict: bool = False
    conflict_candidates: list[str] = Field(default_factory=list)


class ProjectedExperimentSchema(_ProjectedBase):
    """Replayed experiment. Tombstoned entries are never exposed."""

    content_type: Literal["experiment"] = "experiment"
    entries: list[ExperimentEntrySchema] = Field(default_factory=list)


ProjectedContent = Annotated[
    ProjectedPageSchema
    | ProjectedWikiSchema
    | ProjectedBlogSchema
    | ProjectedExperimentSchema,
    Field(discriminator="content_type"),
]


class SiteIndexSchema(BaseModel):
    """The global catalog of all entities."""

    entries: list[IndexEntrySchema] = Field(default_factory=list)
    nav: list[IndexEntrySchema] = Field(
        default_factory=list, description="Published, public entries"
    )
    slug_map: dict[str, str] = Field(
        default_factory=dict, description="slug -> content_id for routing"
    )
    built_at: Timestamp
