from datetime import datetime, timedelta, timezone

import pytest

from tagsense.core.signals import (
    RecommendationScope,
    content_similarity_scores,
    cooccurrence_scores,
    normalize_by_max,
    popularity_scores,
    user_pattern_scores,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _scope(current=("A",), entity_id="E1", user_id="u1"):
    return RecommendationScope(
        workspace_id="ws1",
        entity_id=entity_id,
        entity_type="project",
        current_tag_ids=frozenset(current),
        user_id=user_id,
    )


def test_normalize_by_max():
    assert normalize_by_max({"a": 4, "b": 2, "c": 1}) == {"a": 1.0, "b": 0.5, "c": 0.25}
    assert normalize_by_max({}) == {}
    assert normalize_by_max({"a": 0}) == {}


@pytest.mark.asyncio
async def test_content_similarity_keeps_only_scores_above_threshold(make_stores):
    stores = make_stores(
        entity_vectors={"E1": [1.0, 0.0]},
        tag_vectors={
            "B": [1.0, 0.0],  # similarity 1.0
            "C": [1.0, 1.0],  # ~0.707
            "D": [0.0, 1.0],  # 0.0
        },
    )
    candidates = [t for t in stores.tags if t.id != "A"]

    scores = await content_similarity_scores(_scope(), candidates, stores, threshold=0.5)

    assert set(scores) == {"B", "C"}
    assert scores["B"] == pytest.approx(1.0)
    assert scores["C"] == pytest.approx(0.7071, abs=1e-4)


@pytest.mark.asyncio
async def test_content_similarity_threshold_is_strict(make_stores):
    stores = make_stores(
        entity_vectors={"E1": [1.0, 0.0]},
        tag_vectors={"B": [1.0, 0.0]},
    )
    candidates = [t for t in stores.tags if t.id == "B"]

    scores = await content_similarity_scores(_scope(), candidates, stores, threshold=1.0)

    assert scores == {}


@pytest.mark.asyncio
async def test_content_similarity_without_entity_vector_is_empty(make_stores):
    stores = make_stores(tag_vectors={"B": [1.0, 0.0]})

    scores = await content_similarity_scores(_scope(), stores.tags, stores)

    assert scores == {}
    assert "get_tag_vector" not in stores.calls


@pytest.mark.asyncio
async def test_content_similarity_skips_mismatched_dimensions(make_stores):
    stores = make_stores(
        entity_vectors={"E1": [1.0, 0.0]},
        tag_vectors={"B": [1.0, 0.0, 0.0], "C": [1.0, 0.0], "D": []},
    )
    candidates = [t for t in stores.tags if t.id != "A"]

    scores = await content_similarity_scores(_scope(), candidates, stores)

    assert scores == {"C": pytest.approx(1.0)}


@pytest.mark.asyncio
async def test_cooccurrence_counts_shared_entities(make_stores):
    stores = make_stores(
        associations=[
            ("project", "P1", "A"),
            ("project", "P1", "B"),
            ("project", "P2", "A"),
            ("project", "P2", "B"),
            ("folder", "F1", "A"),
            ("folder", "F1", "C"),
            ("project", "P3", "D"),
        ]
    )
    candidates = [t for t in stores.tags if t.id != "A"]

    scores = await cooccurrence_scores(_scope(), candidates, stores)

    assert scores == {"B": 1.0, "C": 0.5}


@pytest.mark.asyncio
async def test_cooccurrence_without_current_tags_is_empty(make_stores):
    stores = make_stores(associations=[("project", "P1", "A"), ("project", "P1", "B")])

    scores = await cooccurrence_scores(_scope(current=()), stores.tags, stores)

    assert scores == {}
    assert stores.calls == []


@pytest.mark.asyncio
async def test_cooccurrence_ignores_non_candidates(make_stores):
    stores = make_stores(
        associations=[
            ("project", "P1", "A"),
            ("project", "P1", "B"),
            ("project", "P1", "C"),
            ("project", "P2", "A"),
            ("project", "P2", "C"),
        ]
    )
    candidates = [t for t in stores.tags if t.id == "B"]

    scores = await cooccurrence_scores(_scope(), candidates, stores)

    assert scores == {"B": 1.0}


@pytest.mark.asyncio
async def test_user_pattern_groups_by_applied_tag(make_stores):
    recent = NOW - timedelta(days=2)
    stores = make_stores(
        activities=[
            ("u1", "P1", "B", "tag-B", recent),
            ("u1", "P2", "B", "tag-B", recent),
            ("u1", "P3", "C", "tag-C", recent),
            ("u2", "P4", "D", "tag-D", recent),
            ("u1", "P5", "A", "tag-A", recent),
        ]
    )
    candidates = [t for t in stores.tags if t.id != "A"]

    scores = await user_pattern_scores(_scope(), candidates, stores, now=NOW)

    assert scores == {"B": 1.0, "C": 0.5}


@pytest.mark.asyncio
async def test_user_pattern_respects_window(make_stores):
    stores = make_stores(
        activities=[
            ("u1", "P1", "B", "tag-B", NOW - timedelta(days=45)),
            ("u1", "P2", "C", "tag-C", NOW - timedelta(days=1)),
        ]
    )
    candidates = [t for t in stores.tags if t.id != "A"]

    scores = await user_pattern_scores(_scope(), candidates, stores, window_days=30, now=NOW)

    assert scores == {"C": 1.0}


@pytest.mark.asyncio
async def test_user_pattern_entity_grouping_keys_by_entity(make_stores):
    recent = NOW - timedelta(days=1)
    stores = make_stores(
        activities=[
            ("u1", "P1", "B", "tag-B", recent),
            ("u1", "P1", "C", "tag-C", recent),
            ("u1", "P2", "B", "tag-B", recent),
        ]
    )
    candidates = [t for t in stores.tags if t.id != "A"]

    scores = await user_pattern_scores(
        _scope(), candidates, stores, group_by="entity", now=NOW
    )

    assert scores == {"P1": 1.0, "P2": 0.5}


@pytest.mark.asyncio
async def test_popularity_normalizes_total_usage(make_stores):
    stores = make_stores(
        associations=[
            ("project", "P1", "B"),
            ("folder", "F1", "B"),
            ("template", "T1", "B"),
            ("template", "T2", "B"),
            ("project", "P2", "C"),
            ("project", "P3", "C"),
        ]
    )
    candidates = [t for t in stores.tags if t.id != "A"]

    scores = await popularity_scores(_scope(), candidates, stores)

    assert scores == {"B": 1.0, "C": 0.5, "D": 0.0}


@pytest.mark.asyncio
async def test_popularity_with_no_usage_is_empty(make_stores):
    stores = make_stores()

    scores = await popularity_scores(_scope(), stores.tags, stores)

    assert scores == {}
