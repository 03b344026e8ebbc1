"""Application configuration for TagSense.

Settings are split per concern so each block keeps its own env prefix:
database, embedding, recommendation and the top-level app settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationInfo, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    user: str = Field(default="tagsense", description="Database user")
    password: str = Field(default="tagsense_secret", description="Database password")
    name: str = Field(default="tagsense", description="Database name")
    url: str | None = Field(
        default=None, description="Full database URL (overrides other settings)"
    )
    echo: bool = Field(default=False, description="Log emitted SQL statements")
    pool_size: int = Field(default=5, ge=1, description="Persistent connections per process")
    max_overflow: int = Field(
        default=10, ge=0, description="Extra connections allowed above pool_size"
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @computed_field
    @property
    def async_url(self) -> str:
        """Get async database URL for SQLAlchemy."""
        if self.url:
            url = self.url
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif not url.startswith("postgresql+asyncpg://"):
                url = f"postgresql+asyncpg://{url}"

            # asyncpg does not understand libpq query parameters
            if "?" in url:
                base, query = url.split("?", 1)
                new_params = []
                for p in query.split("&"):
                    if p.startswith("sslmode="):
                        new_params.append("ssl=require")
                    elif p.startswith("channel_binding="):
                        continue
                    else:
                        new_params.append(p)
                url = base + "?" + "&".join(new_params) if new_params else base

            return url
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"

    @computed_field
    @property
    def sync_url(self) -> str:
        """Get sync database URL for migrations and scripts."""
        if self.url:
            return self.url.replace("+asyncpg", "")
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration (OpenAI compatible API)."""

    enabled: bool = Field(
        default=False,
        description="Use stored embeddings for the content similarity signal",
    )
    api_key: str = Field(default="", description="API key for embedding service")
    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL for embedding API (OpenAI compatible)",
    )
    model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    dimensions: int = Field(
        default=1536,
        description="Embedding vector dimensions",
        ge=64,
        le=4096,
    )

    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str, info: ValidationInfo) -> str:
        """Warn if embeddings are enabled without an API key."""
        if not v and info.data.get("enabled"):
            import warnings

            warnings.warn(
                "EMBEDDING_API_KEY is not set. Embedding backfill will not work.",
                stacklevel=2,
            )
        return v


class RecommendationSettings(BaseSettings):
    """Tag recommendation tuning.

    Signal weights are fixed in ``tagsense.core.recommendation``.
    """

    max_results: int = Field(
        default=5,
        description="Maximum number of recommendations returned",
        ge=1,
        le=50,
    )
    content_similarity_threshold: float = Field(
        default=0.5,
        description="Minimum cosine similarity for the content signal",
        ge=0.0,
        le=1.0,
    )
    user_pattern_window_days: int = Field(
        default=30,
        description="Look-back window for the user's tagging activity",
        ge=1,
        le=365,
    )
    user_pattern_key: Literal["tag", "entity"] = Field(
        default="tag",
        description=(
            "Aggregation key for user pattern scores: 'tag' groups add_tag activity "
            "by tag id, 'entity' reproduces the legacy grouping by entity id"
        ),
    )
    similar_items_limit: int = Field(
        default=5,
        description="Maximum similar items attached to a recommendation",
        ge=0,
        le=20,
    )

    model_config = SettingsConfigDict(
        env_prefix="RECOMMENDATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class AppSettings(BaseSettings):
    """Main application settings."""

    app_name: str = Field(default="tagsense", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_file: str = Field(default="logs/app.log", description="Log file path")

    # Server
    api_port: int = Field(default=8000, description="API server port")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v_upper


@lru_cache
def get_app_settings() -> AppSettings:
    """Get cached application settings instance."""
    return AppSettings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings instance."""
    return DatabaseSettings()


@lru_cache
def get_embedding_settings() -> EmbeddingSettings:
    """Get cached embedding settings instance."""
    return EmbeddingSettings()


@lru_cache
def get_recommendation_settings() -> RecommendationSettings:
    """Get cached recommendation settings instance."""
    return RecommendationSettings()


def reload_all_settings() -> None:
    """Clear all settings caches to reload from environment."""
    get_app_settings.cache_clear()
    get_database_settings.cache_clear()
    get_embedding_settings.cache_clear()
    get_recommendation_settings.cache_clear()
