"""Replay endpoints: project posted log records on demand."""

from datetime import timedelta

from fastapi import APIRouter, HTTPException

from eoapi.config import settings
from eoapi.schemas.projection import ProjectedContent, SiteIndexSchema
from eoapi.schemas.replay import (
    DeltaRequestSchema,
    IndexRequestSchema,
    ReplayRequestSchema,
)
from projector.access import access_mode
from projector.delta import apply_delta
from projector.replay import replay_entity
from projector.site_index import replay_site_index

router = APIRouter()


def _conflict_window() -> timedelta:
    return timedelta(seconds=settings.conflict_window_seconds)


@router.post("/replay/{content_id}", response_model=ProjectedContent)
async def replay_content(
    content_id: str, request: ReplayRequestSchema
) -> ProjectedContent:
    """Replay one entity's records into its projection."""
    include_drafts = (
        settings.include_drafts
        if request.include_drafts is None
        else request.include_drafts
    )
    try:
        projection = replay_entity(
            content_id,
            request.records,
            mode=access_mode(include_drafts),
            meta_override=request.meta,
            conflict_window=_conflict_window(),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if projection is None:
        raise HTTPException(
            status_code=404, detail=f"{content_id} is not visible in this mode"
        )
    return projection


@router.post("/delta", response_model=ProjectedContent)
async def replay_delta(request: DeltaRequestSchema) -> ProjectedContent:
    """Fold newer records onto a stored projection."""
    return apply_delta(request.snapshot, request.records, _conflict_window())


@router.post("/index")
async def replay_index(request: IndexRequestSchema) -> SiteIndexSchema:
    """Replay the site index stream into the catalog."""
    return replay_site_index(request.records, built_at=request.built_at)
