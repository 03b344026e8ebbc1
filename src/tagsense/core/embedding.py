"""Embedding service for tag and entity content vectors.

Uses the OpenAI SDK, so any OpenAI-compatible endpoint works:
- OpenAI
- Azure OpenAI / SiliconFlow / Jina AI
- Ollama (local)
"""

from openai import AsyncOpenAI

from tagsense.core.config import EmbeddingSettings, get_embedding_settings
from tagsense.utils import get_logger
from tagsense.utils.decorator_utils import async_retry_decorator

logger = get_logger(__name__)


def _dedupe_names(names: list[str] | None) -> list[str]:
    """Drop blanks and case-insensitive duplicates, keeping first occurrence."""
    if not names:
        return []

    result: list[str] = []
    seen: set[str] = set()
    for raw in names:
        name = (raw or "").strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        result.append(name)
    return result


class EmbeddingService:
    """Embedding service using an OpenAI-compatible API.

    Usage:
        service = EmbeddingService()
        embedding = await service.embed_text("Design review")
        embeddings = await service.embed_batch(["frontend", "backend"])
    """

    def __init__(self, settings: EmbeddingSettings | None = None):
        """Initialize embedding service.

        Args:
            settings: Optional settings override. If not provided, uses global settings.
        """
        self.settings = settings or get_embedding_settings()
        self._client: AsyncOpenAI | None = None

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create async OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
            )
        return self._client

    @async_retry_decorator(max_retries=3, delay=1.0, backoff=2.0)
    async def embed_text(self, text: str) -> list[float]:
        """Compute embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats
        """
        if not text.strip():
            return [0.0] * self.settings.dimensions

        response = await self.client.embeddings.create(
            model=self.settings.model,
            input=text,
        )
        return response.data[0].embedding

    @async_retry_decorator(max_retries=3, delay=1.0, backoff=2.0)
    async def embed_batch(
        self,
        texts: list[str],
        batch_size: int = 32,
    ) -> list[list[float]]:
        """Compute embeddings for multiple texts.

        Args:
            texts: List of texts to embed
            batch_size: Number of texts per API call

        Returns:
            List of embedding vectors, in input order
        """
        if not texts:
            return []

        all_embeddings: list[list[float]] = []

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]

            # The API rejects empty strings
            processed_batch = [t if t.strip() else " " for t in batch]

            response = await self.client.embeddings.create(
                model=self.settings.model,
                input=processed_batch,
            )

            sorted_data = sorted(response.data, key=lambda x: x.index)
            batch_embeddings = [d.embedding for d in sorted_data]

            for j, text in enumerate(batch):
                if not text.strip():
                    batch_embeddings[j] = [0.0] * self.settings.dimensions

            all_embeddings.extend(batch_embeddings)

            logger.debug(
                f"Embedded batch {i // batch_size + 1}, total: {len(all_embeddings)}/{len(texts)}"
            )

        return all_embeddings

    def build_tag_text(self, name: str) -> str:
        """Build text for a tag embedding."""
        return f"Tag: {name.strip()}"

    def build_entity_text(
        self,
        name: str,
        entity_type: str,
        description: str | None = None,
        tag_names: list[str] | None = None,
    ) -> str:
        """Build text for a project or folder embedding.

        Args:
            name: Entity name
            entity_type: "project" or "folder"
            description: Optional free-text description
            tag_names: Names of tags already applied

        Returns:
            Combined text for embedding
        """
        parts = [f"{entity_type.capitalize()}: {name.strip()}"]

        if description and description.strip():
            parts.append(description.strip())

        tags = _dedupe_names(tag_names)
        if tags:
            parts.append(f"Tags: {', '.join(tags)}")

        return "\n".join(parts)

    async def close(self) -> None:
        """Close the client connection."""
        if self._client is not None:
            await self._client.close()
            self._client = None


# Global service instance
_embedding_service: EmbeddingService | None = None


def get_embedding_service() -> EmbeddingService:
    """Get global embedding service instance."""
    global _embedding_service
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
    return _embedding_service


async def close_embedding_service() -> None:
    """Close global embedding service."""
    global _embedding_service
    if _embedding_service is not None:
        await _embedding_service.close()
        _embedding_service = None
