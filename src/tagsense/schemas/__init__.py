"""Pydantic schemas for API responses.

- tag: tag recommendation, analytics and backfill schemas
"""

from .tag import (
    EmbeddingBackfillResponse,
    SignalReasonResponse,
    SimilarItemResponse,
    TagAnalyticsResponse,
    TagCountsResponse,
    TagDistributionResponse,
    TagPairResponse,
    TagRecommendationResponse,
    TagResponse,
    TagStatsResponse,
    TagTrendResponse,
    TagUsageResponse,
)

__all__ = [
    "TagResponse",
    "SignalReasonResponse",
    "SimilarItemResponse",
    "TagRecommendationResponse",
    "TagUsageResponse",
    "TagTrendResponse",
    "TagDistributionResponse",
    "TagPairResponse",
    "TagAnalyticsResponse",
    "TagCountsResponse",
    "TagStatsResponse",
    "EmbeddingBackfillResponse",
]
