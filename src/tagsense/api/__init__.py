"""API routes module.

This module contains FastAPI routers for TagSense:
- tags: tag recommendations, analytics and embedding backfill
"""

from fastapi import APIRouter

from .tags import router as tags_router

api_router = APIRouter()

api_router.include_router(tags_router, prefix="/workspaces", tags=["tags"])

__all__ = ["api_router"]
