"""Signal calculators for tag recommendations.

Each calculator maps candidate tag ids to a score in [0, 1]. Calculators share
no state, so the engine can run them concurrently.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from tagsense.core.exceptions import DimensionMismatch
from tagsense.core.records import ActivityGroupKey, EntityType, Tag
from tagsense.core.stores import ActivityStore, AssociationStore, VectorStore
from tagsense.core.vector_math import cosine_distance
from tagsense.utils import get_logger

logger = get_logger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.5
DEFAULT_PATTERN_WINDOW_DAYS = 30


@dataclass(frozen=True)
class RecommendationScope:
    """The entity being tagged and who is tagging it."""

    workspace_id: str
    entity_id: str
    entity_type: EntityType
    current_tag_ids: frozenset[str]
    user_id: str


def normalize_by_max(counts: Mapping[str, float]) -> dict[str, float]:
    """Divide every count by the batch maximum; empty or all-zero input gives {}."""
    if not counts:
        return {}
    max_count = max(counts.values())
    if max_count <= 0:
        return {}
    return {key: float(count) / max_count for key, count in counts.items()}


async def content_similarity_scores(
    scope: RecommendationScope,
    candidates: Sequence[Tag],
    vector_store: VectorStore,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> dict[str, float]:
    """Score candidates by cosine similarity between entity and tag vectors.

    Only similarities strictly above ``threshold`` are kept.
    """
    scores: dict[str, float] = {}

    entity_vector = await vector_store.get_entity_vector(
        scope.entity_id, scope.entity_type
    )
    if entity_vector is None or len(entity_vector) == 0:
        return scores

    for tag in candidates:
        tag_vector = await vector_store.get_tag_vector(tag.id)
        if tag_vector is None or len(tag_vector) == 0:
            continue
        try:
            similarity = 1.0 - cosine_distance(entity_vector, tag_vector)
        except DimensionMismatch as e:
            logger.debug(f"Skipping tag {tag.id} for content similarity: {e}")
            continue
        if similarity > threshold:
            scores[tag.id] = similarity

    return scores


async def cooccurrence_scores(
    scope: RecommendationScope,
    candidates: Sequence[Tag],
    association_store: AssociationStore,
) -> dict[str, float]:
    """Score candidates by how often they share entities with the current tags."""
    if not scope.current_tag_ids:
        return {}

    candidate_ids = {tag.id for tag in candidates}
    rows = await association_store.count_cooccurrences(
        scope.workspace_id, scope.current_tag_ids
    )

    counts: dict[str, int] = {}
    for row in rows:
        if row.tag_id in scope.current_tag_ids or row.tag_id not in candidate_ids:
            continue
        counts[row.tag_id] = counts.get(row.tag_id, 0) + row.pair_count

    return normalize_by_max(counts)


async def user_pattern_scores(
    scope: RecommendationScope,
    candidates: Sequence[Tag],
    activity_store: ActivityStore,
    window_days: int = DEFAULT_PATTERN_WINDOW_DAYS,
    group_by: ActivityGroupKey = "tag",
    now: datetime | None = None,
) -> dict[str, float]:
    """Score by the user's recent ``add_tag`` activity.

    With ``group_by="tag"`` the scores are keyed by the applied tag id. With
    ``group_by="entity"`` they are keyed by the tagged entity id, which is the
    legacy aggregation and only lines up with a candidate when ids collide.
    Tag-keyed counts are restricted to candidates before normalizing.
    """
    since = (now or datetime.now(timezone.utc)) - timedelta(days=window_days)
    rows = await activity_store.count_tagging_activity(
        scope.user_id, scope.workspace_id, since, group_by=group_by
    )

    candidate_ids = {tag.id for tag in candidates}
    counts: dict[str, int] = {}
    for row in rows:
        if group_by == "tag" and row.key not in candidate_ids:
            continue
        counts[row.key] = counts.get(row.key, 0) + row.count

    return normalize_by_max(counts)


async def popularity_scores(
    scope: RecommendationScope,
    candidates: Sequence[Tag],
    association_store: AssociationStore,
) -> dict[str, float]:
    """Score candidates by total usage across projects, folders and templates."""
    if not candidates:
        return {}

    rows = await association_store.count_usage(
        scope.workspace_id, [tag.id for tag in candidates]
    )
    return normalize_by_max({row.tag_id: row.total for row in rows})
