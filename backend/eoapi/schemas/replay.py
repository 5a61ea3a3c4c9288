"""Pydantic schemas for replay endpoint requests."""

from typing import Any

from pydantic import BaseModel, Field

from eoapi.schemas.projection import ProjectedContent, Timestamp


class ReplayRequestSchema(BaseModel):
    """Log records of one entity plus an optional metadata snapshot."""

    records: list[Any] = Field(
        default_factory=list, description="Raw log records, oldest first"
    )
    meta: dict[str, Any] | None = Field(
        None, description="Side-channel metadata snapshot"
    )
    include_drafts: bool | None = Field(
        None, description="Override the server's draft setting"
    )


class IndexRequestSchema(BaseModel):
    """Records of the site index stream."""

    records: list[Any] = Field(default_factory=list)
    built_at: Timestamp | None = None


class DeltaRequestSchema(BaseModel):
    """A stored projection and the records written after it."""

    snapshot: ProjectedContent
    records: list[Any] = Field(default_factory=list)
