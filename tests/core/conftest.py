from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

import pytest

from tagsense.core.exceptions import LookupFailure
from tagsense.core.records import (
    ActivityCount,
    CooccurrenceCount,
    DailyTagActivity,
    EntityTagSet,
    SimilarEntity,
    Tag,
    TagDistribution,
    TagUsage,
)
from tagsense.core.stores import (
    ActivityStore,
    AssociationStore,
    SimilarEntityStore,
    TagStore,
    VectorStore,
)

WORKSPACE = "ws1"


@dataclass
class FakeActivity:
    user_id: str
    entity_id: str
    tag_id: str
    tag_name: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    entity_type: str = "project"


class InMemoryStores(TagStore, AssociationStore, ActivityStore, VectorStore, SimilarEntityStore):
    """All store contracts over plain Python data, for one workspace."""

    def __init__(
        self,
        tags: list[Tag],
        associations: list[tuple[str, str, str]] | None = None,
        activities: list[FakeActivity | tuple] | None = None,
        entity_vectors: dict[str, list[float]] | None = None,
        tag_vectors: dict[str, list[float]] | None = None,
        similar: list[SimilarEntity] | None = None,
        failing: Collection[str] = (),
    ):
        self.tags = tags
        # (entity_type, entity_id, tag_id)
        self.associations = associations or []
        self.activities = [
            a if isinstance(a, FakeActivity) else FakeActivity(*a) for a in activities or []
        ]
        self.entity_vectors = entity_vectors or {}
        self.tag_vectors = tag_vectors or {}
        self.similar = similar or []
        self.failing = set(failing)
        self.calls: list[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise LookupFailure(name, "store unavailable")

    def _entity_tags(self) -> dict[tuple[str, str], set[str]]:
        grouped: dict[tuple[str, str], set[str]] = {}
        for entity_type, entity_id, tag_id in self.associations:
            grouped.setdefault((entity_type, entity_id), set()).add(tag_id)
        return grouped

    async def list_tags(self, workspace_id, exclude_ids=()):
        self._enter("list_tags")
        return [t for t in self.tags if t.workspace_id == workspace_id and t.id not in exclude_ids]

    async def get_tags(self, workspace_id, tag_ids):
        self._enter("get_tags")
        return [t for t in self.tags if t.workspace_id == workspace_id and t.id in tag_ids]

    async def count_cooccurrences(self, workspace_id, seed_tag_ids):
        self._enter("count_cooccurrences")
        counts: dict[str, int] = {}
        for (entity_type, _), tag_ids in self._entity_tags().items():
            if entity_type == "template" or not tag_ids & set(seed_tag_ids):
                continue
            for tag_id in tag_ids - set(seed_tag_ids):
                counts[tag_id] = counts.get(tag_id, 0) + 1
        return [CooccurrenceCount(tag_id=k, pair_count=v) for k, v in counts.items()]

    async def count_usage(self, workspace_id, tag_ids):
        self._enter("count_usage")
        usage = []
        for tag_id in tag_ids:
            kinds = [kind for kind, _, t in self.associations if t == tag_id]
            usage.append(
                TagUsage(
                    tag_id=tag_id,
                    project_count=kinds.count("project"),
                    folder_count=kinds.count("folder"),
                    template_count=kinds.count("template"),
                )
            )
        return usage

    async def list_tag_sets(self, workspace_id):
        self._enter("list_tag_sets")
        return [
            EntityTagSet(entity_id=entity_id, entity_type=kind, tag_ids=frozenset(tags))
            for (kind, entity_id), tags in self._entity_tags().items()
        ]

    async def count_tagging_activity(self, user_id, workspace_id, since, group_by="tag"):
        self._enter("count_tagging_activity")
        counts: dict[str, int] = {}
        for activity in self.activities:
            if activity.user_id != user_id or activity.created_at < since:
                continue
            key = activity.tag_id if group_by == "tag" else activity.entity_id
            counts[key] = counts.get(key, 0) + 1
        return [ActivityCount(key=k, count=v) for k, v in counts.items()]

    async def daily_tagging_activity(self, workspace_id, since):
        self._enter("daily_tagging_activity")
        counts: dict[tuple[date, str, str], int] = {}
        for activity in self.activities:
            if activity.created_at < since:
                continue
            key = (activity.created_at.date(), activity.tag_id, activity.tag_name)
            counts[key] = counts.get(key, 0) + 1
        return [
            DailyTagActivity(day=day, tag_id=tag_id, tag_name=name, count=n)
            for (day, tag_id, name), n in counts.items()
        ]

    async def tag_distribution(self, workspace_id):
        self._enter("tag_distribution")
        counts: dict[tuple[str, str, str], int] = {}
        for activity in self.activities:
            key = (activity.entity_type, activity.tag_id, activity.tag_name)
            counts[key] = counts.get(key, 0) + 1
        return [
            TagDistribution(entity_type=kind, tag_id=tag_id, tag_name=name, count=n)
            for (kind, tag_id, name), n in counts.items()
        ]

    async def get_entity_vector(self, entity_id, entity_type):
        self._enter("get_entity_vector")
        return self.entity_vectors.get(entity_id)

    async def get_tag_vector(self, tag_id):
        self._enter("get_tag_vector")
        return self.tag_vectors.get(tag_id)

    async def find_similar_entities(self, workspace_id, entity_id, entity_type, limit=5):
        self._enter("find_similar_entities")
        return [e for e in self.similar if e.id != entity_id and e.type == entity_type][:limit]


def make_tags(*names: str) -> list[Tag]:
    return [Tag(id=name, workspace_id=WORKSPACE, name=f"tag-{name}") for name in names]


@pytest.fixture
def make_stores():
    def _make(**kwargs) -> InMemoryStores:
        tags = kwargs.pop("tags", None) or make_tags("A", "B", "C", "D")
        return InMemoryStores(tags=tags, **kwargs)

    return _make
