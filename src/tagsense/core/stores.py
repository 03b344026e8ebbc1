"""Store contracts consumed by the recommendation core.

Implementations perform I/O (database, vector index, network) and therefore
expose async methods. They should raise ``LookupFailure`` when the backing
service is unavailable or returns malformed data.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection
from datetime import datetime

from tagsense.core.records import (
    ActivityCount,
    ActivityGroupKey,
    CooccurrenceCount,
    DailyTagActivity,
    EntityTagSet,
    EntityType,
    SimilarEntity,
    Tag,
    TagDistribution,
    TagUsage,
)


class TagStore(ABC):
    """Read access to workspace tags."""

    @abstractmethod
    async def list_tags(
        self,
        workspace_id: str,
        exclude_ids: Collection[str] = (),
    ) -> list[Tag]:  # pragma: no cover - interface only
        """Return all tags of a workspace except ``exclude_ids``."""

    @abstractmethod
    async def get_tags(
        self,
        workspace_id: str,
        tag_ids: Collection[str],
    ) -> list[Tag]:  # pragma: no cover
        """Return the workspace tags with the given ids (unknown ids are skipped)."""


class AssociationStore(ABC):
    """Read access to tag-entity associations."""

    @abstractmethod
    async def count_cooccurrences(
        self,
        workspace_id: str,
        seed_tag_ids: Collection[str],
    ) -> list[CooccurrenceCount]:  # pragma: no cover
        """Count, per tag, the entities that also carry at least one seed tag.

        Seed tags themselves are never returned.
        """

    @abstractmethod
    async def count_usage(
        self,
        workspace_id: str,
        tag_ids: Collection[str],
    ) -> list[TagUsage]:  # pragma: no cover
        """Return project/folder/template association counts per tag."""

    @abstractmethod
    async def list_tag_sets(self, workspace_id: str) -> list[EntityTagSet]:  # pragma: no cover
        """Return the tag set of every tagged entity in the workspace."""


class ActivityStore(ABC):
    """Read access to the activity log."""

    @abstractmethod
    async def count_tagging_activity(
        self,
        user_id: str,
        workspace_id: str,
        since: datetime,
        group_by: ActivityGroupKey = "tag",
    ) -> list[ActivityCount]:  # pragma: no cover
        """Count a user's ``add_tag`` activities since ``since``, grouped by tag or entity id."""

    @abstractmethod
    async def daily_tagging_activity(
        self,
        workspace_id: str,
        since: datetime,
    ) -> list[DailyTagActivity]:  # pragma: no cover
        """Count ``add_tag`` activities per day and tag for a workspace."""

    @abstractmethod
    async def tag_distribution(
        self,
        workspace_id: str,
    ) -> list[TagDistribution]:  # pragma: no cover
        """Count all ``add_tag`` activities per entity type and tag for a workspace."""


class VectorStore(ABC):
    """Lookup of content vectors for entities and tags."""

    @abstractmethod
    async def get_entity_vector(
        self, entity_id: str, entity_type: EntityType
    ) -> list[float] | None:  # pragma: no cover
        """Return the entity's content vector, or None if there is none."""

    @abstractmethod
    async def get_tag_vector(self, tag_id: str) -> list[float] | None:  # pragma: no cover
        """Return the tag's vector, or None if there is none."""


class NullVectorStore(VectorStore):
    """Vector store used when no embedding backend is configured."""

    async def get_entity_vector(
        self, entity_id: str, entity_type: EntityType
    ) -> list[float] | None:
        return None

    async def get_tag_vector(self, tag_id: str) -> list[float] | None:
        return None


class SimilarEntityStore(ABC):
    """Fuzzy name lookup of entities resembling a target entity."""

    @abstractmethod
    async def find_similar_entities(
        self,
        workspace_id: str,
        entity_id: str,
        entity_type: EntityType,
        limit: int = 5,
    ) -> list[SimilarEntity]:  # pragma: no cover
        """Return up to ``limit`` same-type entities with similar names, excluding the target."""
