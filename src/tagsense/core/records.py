"""Typed records exchanged between stores, signals and the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal

EntityType = Literal["project", "folder"]
SignalType = Literal["similar_content", "co_occurrence", "user_pattern", "popularity"]
ActivityGroupKey = Literal["tag", "entity"]

ADD_TAG_ACTIVITY = "add_tag"


@dataclass(frozen=True)
class Tag:
    """A workspace-scoped tag."""

    id: str
    workspace_id: str
    name: str
    color: str | None = None


@dataclass(frozen=True)
class CooccurrenceCount:
    """Number of entities carrying ``tag_id`` together with a seed tag."""

    tag_id: str
    pair_count: int


@dataclass(frozen=True)
class TagUsage:
    """Association counts of one tag, per entity kind."""

    tag_id: str
    project_count: int = 0
    folder_count: int = 0
    template_count: int = 0

    @property
    def total(self) -> int:
        return self.project_count + self.folder_count + self.template_count


@dataclass(frozen=True)
class ActivityCount:
    """Grouped ``add_tag`` activity count.

    ``key`` is a tag id or an entity id, depending on how the activity was
    grouped.
    """

    key: str
    count: int


@dataclass(frozen=True)
class DailyTagActivity:
    day: date
    tag_id: str
    tag_name: str
    count: int


@dataclass(frozen=True)
class TagDistribution:
    """All-time ``add_tag`` count of one tag on one entity kind."""

    entity_type: str
    tag_id: str
    tag_name: str
    count: int


@dataclass(frozen=True)
class EntityTagSet:
    """The tags applied to one entity."""

    entity_id: str
    entity_type: str
    tag_ids: frozenset[str]


@dataclass(frozen=True)
class SimilarItem:
    id: str
    name: str
    type: EntityType


@dataclass(frozen=True)
class SimilarEntity:
    """An entity whose name resembles the target, with its applied tags."""

    id: str
    name: str
    type: EntityType
    tag_ids: frozenset[str] = frozenset()

    def as_item(self) -> SimilarItem:
        return SimilarItem(id=self.id, name=self.name, type=self.type)


@dataclass(frozen=True)
class SignalReason:
    signal_type: SignalType
    description: str
    score: float


@dataclass
class TagScore:
    """A ranked recommendation with its provenance."""

    tag: Tag
    score: float
    reasons: list[SignalReason] = field(default_factory=list)
    reason: SignalType | None = None
    cooccurring_tag_names: list[str] | None = None
    similar_items: list[SimilarItem] | None = None

    @property
    def tag_id(self) -> str:
        return self.tag.id
