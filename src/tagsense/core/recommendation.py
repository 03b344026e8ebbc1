"""Tag recommendation engine.

Combines four independent signals into one ranked list of tag suggestions:

- similar_content: cosine similarity between entity and tag vectors
- co_occurrence: tags that share entities with the current tags
- user_pattern: tags the acting user applied recently
- popularity: overall tag usage in the workspace
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Collection, Mapping, Sequence

from tagsense.core.config import RecommendationSettings, get_recommendation_settings
from tagsense.core.exceptions import LookupFailure
from tagsense.core.records import EntityType, SignalReason, SignalType, Tag, TagScore
from tagsense.core.signals import (
    RecommendationScope,
    content_similarity_scores,
    cooccurrence_scores,
    popularity_scores,
    user_pattern_scores,
)
from tagsense.core.stores import (
    ActivityStore,
    AssociationStore,
    NullVectorStore,
    SimilarEntityStore,
    TagStore,
    VectorStore,
)
from tagsense.utils import get_logger

logger = get_logger(__name__)

# Fixed weights, summing to 1.0. Order also fixes the order of reasons.
SIGNAL_WEIGHTS: dict[SignalType, float] = {
    "similar_content": 0.4,
    "co_occurrence": 0.3,
    "user_pattern": 0.2,
    "popularity": 0.1,
}

SIGNAL_DESCRIPTIONS: dict[SignalType, str] = {
    "similar_content": "Based on content similarity",
    "co_occurrence": "Often used together with your current tags",
    "user_pattern": "Based on your tagging patterns",
    "popularity": "Popular in similar contexts",
}


def combine_signal_scores(signal_scores: Mapping[SignalType, float]) -> float:
    """Weighted sum of per-signal scores, never below zero."""
    total = sum(
        weight * signal_scores.get(signal, 0.0)
        for signal, weight in SIGNAL_WEIGHTS.items()
    )
    return max(0.0, float(total))


def collect_signal_reasons(signal_scores: Mapping[SignalType, float]) -> list[SignalReason]:
    """One reason per signal with a nonzero score, in fixed signal order."""
    reasons: list[SignalReason] = []
    for signal in SIGNAL_WEIGHTS:
        score = signal_scores.get(signal, 0.0)
        if score > 0:
            reasons.append(
                SignalReason(
                    signal_type=signal,
                    description=SIGNAL_DESCRIPTIONS[signal],
                    score=score,
                )
            )
    return reasons


def dominant_signal(reasons: Sequence[SignalReason]) -> SignalType | None:
    """Signal with the largest weighted contribution (earliest wins ties)."""
    if not reasons:
        return None
    best = max(reasons, key=lambda r: SIGNAL_WEIGHTS[r.signal_type] * r.score)
    return best.signal_type


def build_tag_score(tag: Tag, signal_scores: Mapping[SignalType, float]) -> TagScore:
    reasons = collect_signal_reasons(signal_scores)
    return TagScore(
        tag=tag,
        score=combine_signal_scores(signal_scores),
        reasons=reasons,
        reason=dominant_signal(reasons),
    )


class TagRecommendationEngine:
    """Suggest tags for a project or folder.

    Stores are injected so the engine holds no global clients; every call
    reads its inputs fresh.

    Usage:
        engine = TagRecommendationEngine(tag_store, association_store, activity_store)
        recommendations = await engine.get_recommendations(
            workspace_id="ws1",
            entity_id="p1",
            entity_type="project",
            current_tag_ids=["t1"],
            user_id="u1",
        )
    """

    def __init__(
        self,
        tag_store: TagStore,
        association_store: AssociationStore,
        activity_store: ActivityStore,
        vector_store: VectorStore | None = None,
        similar_entity_store: SimilarEntityStore | None = None,
        settings: RecommendationSettings | None = None,
    ):
        self.tag_store = tag_store
        self.association_store = association_store
        self.activity_store = activity_store
        self.vector_store = vector_store or NullVectorStore()
        self.similar_entity_store = similar_entity_store
        self.settings = settings or get_recommendation_settings()

    async def get_recommendations(
        self,
        workspace_id: str,
        entity_id: str,
        entity_type: EntityType,
        current_tag_ids: Collection[str],
        user_id: str,
    ) -> list[TagScore]:
        """Return up to ``max_results`` tags ranked by combined score.

        Raises:
            LookupFailure: If the candidate tags cannot be fetched.
        """
        scope = RecommendationScope(
            workspace_id=workspace_id,
            entity_id=entity_id,
            entity_type=entity_type,
            current_tag_ids=frozenset(t for t in current_tag_ids if t),
            user_id=user_id,
        )

        candidates = await self._fetch_candidates(scope)
        if not candidates:
            return []

        content, cooccurrence, user_pattern, popularity = await asyncio.gather(
            self._run_signal(
                "similar_content",
                scope,
                content_similarity_scores(
                    scope,
                    candidates,
                    self.vector_store,
                    threshold=self.settings.content_similarity_threshold,
                ),
            ),
            self._run_signal(
                "co_occurrence",
                scope,
                cooccurrence_scores(scope, candidates, self.association_store),
            ),
            self._run_signal(
                "user_pattern",
                scope,
                user_pattern_scores(
                    scope,
                    candidates,
                    self.activity_store,
                    window_days=self.settings.user_pattern_window_days,
                    group_by=self.settings.user_pattern_key,
                ),
            ),
            self._run_signal(
                "popularity",
                scope,
                popularity_scores(scope, candidates, self.association_store),
            ),
        )

        scored = [
            build_tag_score(
                tag,
                {
                    "similar_content": content.get(tag.id, 0.0),
                    "co_occurrence": cooccurrence.get(tag.id, 0.0),
                    "user_pattern": user_pattern.get(tag.id, 0.0),
                    "popularity": popularity.get(tag.id, 0.0),
                },
            )
            for tag in candidates
        ]

        ranked = [item for item in scored if item.score > 0]
        ranked.sort(key=lambda item: item.score, reverse=True)
        ranked = ranked[: self.settings.max_results]

        await self._attach_evidence(scope, ranked)

        logger.debug(
            f"Recommended {len(ranked)}/{len(candidates)} tags for "
            f"{scope.entity_type} {scope.entity_id} in workspace {scope.workspace_id}"
        )
        return ranked

    async def _fetch_candidates(self, scope: RecommendationScope) -> list[Tag]:
        try:
            tags = await self.tag_store.list_tags(
                scope.workspace_id, exclude_ids=scope.current_tag_ids
            )
        except LookupFailure:
            raise
        except Exception as e:
            raise LookupFailure("tag_store", f"failed to list tags: {e}") from e

        return [tag for tag in tags if tag.id not in scope.current_tag_ids]

    async def _run_signal(
        self,
        signal: SignalType,
        scope: RecommendationScope,
        calculation: Awaitable[dict[str, float]],
    ) -> dict[str, float]:
        """Await one calculator; a failure degrades that signal to all zeros."""
        try:
            return await calculation
        except Exception as e:
            logger.warning(
                f"Signal {signal} failed for {scope.entity_type} {scope.entity_id}: {e}"
            )
            return {}

    async def _attach_evidence(
        self, scope: RecommendationScope, ranked: list[TagScore]
    ) -> None:
        if not ranked:
            return

        cooccurrence_led = [item for item in ranked if item.reason == "co_occurrence"]
        if cooccurrence_led and scope.current_tag_ids:
            names = await self._current_tag_names(scope)
            for item in cooccurrence_led:
                item.cooccurring_tag_names = list(names)

        limit = self.settings.similar_items_limit
        if self.similar_entity_store is None or limit <= 0:
            return

        try:
            similar = await self.similar_entity_store.find_similar_entities(
                scope.workspace_id, scope.entity_id, scope.entity_type, limit=limit
            )
        except Exception as e:
            logger.warning(f"Similar entity lookup failed for {scope.entity_id}: {e}")
            return

        for item in ranked:
            items = [entity.as_item() for entity in similar if item.tag_id in entity.tag_ids]
            if items:
                item.similar_items = items[:limit]

    async def _current_tag_names(self, scope: RecommendationScope) -> list[str]:
        try:
            tags = await self.tag_store.get_tags(scope.workspace_id, scope.current_tag_ids)
        except Exception as e:
            logger.warning(f"Could not resolve current tag names: {e}")
            return []
        return sorted(tag.name for tag in tags)
