"""Tag API routes.

Thin handlers around the recommendation engine, the analytics service and
the embedding backfill. Authentication and workspace membership checks
belong to the surrounding application.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from tagsense.core.analytics import TagAnalyticsService
from tagsense.core.config import (
    get_embedding_settings,
    get_recommendation_settings,
)
from tagsense.core.embedding import EmbeddingService, get_embedding_service
from tagsense.core.exceptions import LookupFailure
from tagsense.core.recommendation import TagRecommendationEngine
from tagsense.core.stores import NullVectorStore, VectorStore
from tagsense.db import (
    SqlActivityStore,
    SqlAssociationStore,
    SqlSimilarEntityStore,
    SqlTagStore,
    SqlVectorStore,
    backfill_embeddings,
    get_session_factory,
)
from tagsense.schemas.tag import (
    EmbeddingBackfillResponse,
    TagAnalyticsResponse,
    TagCountsResponse,
    TagRecommendationResponse,
    TagStatsResponse,
)
from tagsense.utils import get_logger

logger = get_logger(__name__)
router = APIRouter()


def parse_tag_ids(raw: str | None) -> list[str]:
    """Parse a comma separated tag id list, dropping blanks and duplicates."""
    if not raw:
        return []

    tag_ids: list[str] = []
    seen: set[str] = set()
    for part in raw.split(","):
        tag_id = part.strip()
        if not tag_id or tag_id in seen:
            continue
        seen.add(tag_id)
        tag_ids.append(tag_id)
    return tag_ids


def get_recommendation_engine() -> TagRecommendationEngine:
    """Build a recommendation engine backed by the database stores."""
    session_factory = get_session_factory()

    vector_store: VectorStore = NullVectorStore()
    if get_embedding_settings().enabled:
        vector_store = SqlVectorStore(session_factory)

    return TagRecommendationEngine(
        tag_store=SqlTagStore(session_factory),
        association_store=SqlAssociationStore(session_factory),
        activity_store=SqlActivityStore(session_factory),
        vector_store=vector_store,
        similar_entity_store=SqlSimilarEntityStore(session_factory),
        settings=get_recommendation_settings(),
    )


def get_analytics_service() -> TagAnalyticsService:
    """Build an analytics service backed by the database stores."""
    session_factory = get_session_factory()
    return TagAnalyticsService(
        tag_store=SqlTagStore(session_factory),
        association_store=SqlAssociationStore(session_factory),
        activity_store=SqlActivityStore(session_factory),
    )


@router.get(
    "/{workspace_id}/tags/recommendations",
    response_model=list[TagRecommendationResponse],
)
async def get_tag_recommendations(
    workspace_id: str,
    item_id: str = Query(..., alias="itemId", min_length=1, description="Entity ID"),
    item_type: Literal["project", "folder"] = Query(..., alias="itemType"),
    user_id: str = Query(..., alias="userId", min_length=1, description="Acting user"),
    current_tags: str | None = Query(
        default=None, alias="currentTags", description="Comma separated tag IDs"
    ),
    engine: TagRecommendationEngine = Depends(get_recommendation_engine),  # noqa: B008
):
    """Recommend up to five tags for a project or folder.

    Args:
        workspace_id: Workspace of the entity
        item_id: Entity being tagged
        item_type: "project" or "folder"
        user_id: User asking for recommendations
        current_tags: Tags already applied to the entity
        engine: Recommendation engine

    Returns:
        Ranked recommendations, best first
    """
    try:
        recommendations = await engine.get_recommendations(
            workspace_id=workspace_id,
            entity_id=item_id,
            entity_type=item_type,
            current_tag_ids=parse_tag_ids(current_tags),
            user_id=user_id,
        )
    except LookupFailure as e:
        logger.exception(f"Failed to get tag recommendations: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get tag recommendations",
        ) from e

    return [TagRecommendationResponse.model_validate(item) for item in recommendations]


@router.get("/{workspace_id}/tags/analytics", response_model=TagAnalyticsResponse)
async def get_tag_analytics(
    workspace_id: str,
    days: int = Query(default=30, ge=1, le=365, description="Trend window in days"),
    service: TagAnalyticsService = Depends(get_analytics_service),  # noqa: B008
):
    """Tag usage, tagging trend and frequent tag pairs for a workspace."""
    try:
        analytics = await service.get_analytics(workspace_id, days=days)
    except LookupFailure as e:
        logger.exception(f"Failed to get tag analytics: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get tag analytics",
        ) from e

    return TagAnalyticsResponse.model_validate(analytics)


@router.get("/{workspace_id}/tags/{tag_id}/stats", response_model=TagStatsResponse)
async def get_tag_stats(
    workspace_id: str,
    tag_id: str,
    service: TagAnalyticsService = Depends(get_analytics_service),  # noqa: B008
):
    """Project, folder and template counts of one tag."""
    try:
        stats = await service.get_tag_stats(workspace_id, tag_id)
    except LookupFailure as e:
        logger.exception(f"Failed to get tag stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get tag stats",
        ) from e

    if stats is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")

    return TagStatsResponse(stats=TagCountsResponse.model_validate(stats))


@router.post(
    "/{workspace_id}/tags/embeddings/backfill",
    response_model=EmbeddingBackfillResponse,
)
async def backfill_workspace_embeddings(
    workspace_id: str,
    service: EmbeddingService = Depends(get_embedding_service),  # noqa: B008
):
    """Embed tags, projects and folders that have no stored vector yet."""
    try:
        counts = await backfill_embeddings(get_session_factory(), service, workspace_id)
    except LookupFailure as e:
        logger.exception(f"Embedding backfill failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Embedding backfill failed",
        ) from e
    except Exception as e:
        logger.exception(f"Embedding service error during backfill: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Embedding service unavailable",
        ) from e

    return EmbeddingBackfillResponse(workspace_id=workspace_id, embedded=counts)
