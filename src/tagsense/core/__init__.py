"""Core recommendation logic.

- config: application configuration
- vector_math: vector similarity helpers
- signals: the four scoring signals
- recommendation: the recommendation engine
- analytics: workspace tag statistics
- embedding: OpenAI-compatible embedding service
"""

from .analytics import TagAnalytics, TagAnalyticsService, TagStats
from .config import (
    AppSettings,
    DatabaseSettings,
    EmbeddingSettings,
    RecommendationSettings,
    get_app_settings,
    get_database_settings,
    get_embedding_settings,
    get_recommendation_settings,
    reload_all_settings,
)
from .embedding import EmbeddingService, close_embedding_service, get_embedding_service
from .exceptions import DimensionMismatch, LookupFailure, TagSenseError
from .recommendation import TagRecommendationEngine
from .stores import (
    ActivityStore,
    AssociationStore,
    NullVectorStore,
    SimilarEntityStore,
    TagStore,
    VectorStore,
)

__all__ = [
    # Config
    "AppSettings",
    "DatabaseSettings",
    "EmbeddingSettings",
    "RecommendationSettings",
    "get_app_settings",
    "get_database_settings",
    "get_embedding_settings",
    "get_recommendation_settings",
    "reload_all_settings",
    # Errors
    "TagSenseError",
    "DimensionMismatch",
    "LookupFailure",
    # Stores
    "TagStore",
    "AssociationStore",
    "ActivityStore",
    "VectorStore",
    "NullVectorStore",
    "SimilarEntityStore",
    # Services
    "TagRecommendationEngine",
    "TagAnalyticsService",
    "TagAnalytics",
    "TagStats",
    "EmbeddingService",
    "get_embedding_service",
    "close_embedding_service",
]
