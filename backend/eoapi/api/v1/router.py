"""API v1 router combining all endpoint routers."""

from fastapi import APIRouter

from eoapi.api.v1 import replay

api_router = APIRouter()

api_router.include_router(replay.router, tags=["replay"])
