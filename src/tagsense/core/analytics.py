"""Workspace tag analytics: usage, tagging trend, distribution and frequent tag pairs."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from itertools import combinations

from tagsense.core.exceptions import LookupFailure
from tagsense.core.records import EntityTagSet, Tag, TagDistribution
from tagsense.core.stores import ActivityStore, AssociationStore, TagStore
from tagsense.utils import get_logger

logger = get_logger(__name__)

PAIR_MIN_COUNT = 2
PAIR_LIMIT = 20


@dataclass(frozen=True)
class TagUsageStat:
    tag_id: str
    tag_name: str
    color: str | None
    count: int


@dataclass(frozen=True)
class TagTrendPoint:
    day: date
    tag_id: str
    tag_name: str
    count: int


@dataclass(frozen=True)
class TagPairStat:
    tag1_id: str
    tag1_name: str
    tag2_id: str
    tag2_name: str
    count: int


@dataclass(frozen=True)
class TagStats:
    """Association counts of a single tag."""

    tag_id: str
    project_count: int
    folder_count: int
    template_count: int

    @property
    def total_items(self) -> int:
        return self.project_count + self.folder_count + self.template_count


@dataclass
class TagAnalytics:
    usage: list[TagUsageStat] = field(default_factory=list)
    trend: list[TagTrendPoint] = field(default_factory=list)
    distribution: list[TagDistribution] = field(default_factory=list)
    cooccurrence: list[TagPairStat] = field(default_factory=list)


def count_tag_pairs(tag_sets: list[EntityTagSet]) -> Counter[tuple[str, str]]:
    """Count unordered tag pairs (ordered by id) over entity tag sets."""
    pairs: Counter[tuple[str, str]] = Counter()
    for tag_set in tag_sets:
        for left, right in combinations(sorted(tag_set.tag_ids), 2):
            pairs[(left, right)] += 1
    return pairs


def top_tag_pairs(
    tag_sets: list[EntityTagSet],
    tags_by_id: dict[str, Tag],
    min_count: int = PAIR_MIN_COUNT,
    limit: int = PAIR_LIMIT,
) -> list[TagPairStat]:
    """Most frequent tag pairs seen on at least ``min_count`` entities."""
    pairs = count_tag_pairs(tag_sets)
    ranked = sorted(
        (
            (pair, count)
            for pair, count in pairs.items()
            if count >= min_count and pair[0] in tags_by_id and pair[1] in tags_by_id
        ),
        key=lambda item: (-item[1], item[0]),
    )
    return [
        TagPairStat(
            tag1_id=left,
            tag1_name=tags_by_id[left].name,
            tag2_id=right,
            tag2_name=tags_by_id[right].name,
            count=count,
        )
        for (left, right), count in ranked[:limit]
    ]


class TagAnalyticsService:
    """Aggregate tag statistics for a workspace."""

    def __init__(
        self,
        tag_store: TagStore,
        association_store: AssociationStore,
        activity_store: ActivityStore,
    ):
        self.tag_store = tag_store
        self.association_store = association_store
        self.activity_store = activity_store

    async def get_analytics(
        self,
        workspace_id: str,
        days: int = 30,
        now: datetime | None = None,
    ) -> TagAnalytics:
        """Build usage, trend and co-occurrence statistics.

        Args:
            workspace_id: Workspace to analyze
            days: Look-back window for the trend
            now: Reference time (defaults to current UTC time)

        Returns:
            TagAnalytics for the workspace

        Raises:
            LookupFailure: If any store fails
        """
        since = (now or datetime.now(timezone.utc)) - timedelta(days=days)

        try:
            tags = await self.tag_store.list_tags(workspace_id)
            tags_by_id = {tag.id: tag for tag in tags}
            usage_rows = await self.association_store.count_usage(
                workspace_id, list(tags_by_id)
            )
            trend_rows = await self.activity_store.daily_tagging_activity(
                workspace_id, since
            )
            distribution_rows = await self.activity_store.tag_distribution(workspace_id)
            tag_sets = await self.association_store.list_tag_sets(workspace_id)
        except LookupFailure:
            raise
        except Exception as e:
            raise LookupFailure("analytics", f"failed to load tag analytics: {e}") from e

        usage_by_id = {row.tag_id: row.total for row in usage_rows}
        usage = sorted(
            (
                TagUsageStat(
                    tag_id=tag.id,
                    tag_name=tag.name,
                    color=tag.color,
                    count=usage_by_id.get(tag.id, 0),
                )
                for tag in tags
            ),
            key=lambda stat: (-stat.count, stat.tag_name),
        )

        trend = sorted(
            (
                TagTrendPoint(
                    day=row.day, tag_id=row.tag_id, tag_name=row.tag_name, count=row.count
                )
                for row in trend_rows
            ),
            key=lambda point: (point.day, point.tag_name),
        )

        distribution = sorted(
            distribution_rows,
            key=lambda row: (row.entity_type, -row.count, row.tag_name),
        )

        cooccurrence = top_tag_pairs(tag_sets, tags_by_id)

        logger.debug(
            f"Analytics for workspace {workspace_id}: {len(usage)} tags, "
            f"{len(trend)} trend points, {len(cooccurrence)} pairs"
        )
        return TagAnalytics(
            usage=usage,
            trend=trend,
            distribution=distribution,
            cooccurrence=cooccurrence,
        )

    async def get_tag_stats(self, workspace_id: str, tag_id: str) -> TagStats | None:
        """Project, folder and template counts of one tag.

        Returns:
            TagStats, or None if the tag is not in the workspace

        Raises:
            LookupFailure: If any store fails
        """
        try:
            tags = await self.tag_store.get_tags(workspace_id, [tag_id])
            if not tags:
                return None
            usage_rows = await self.association_store.count_usage(workspace_id, [tag_id])
        except LookupFailure:
            raise
        except Exception as e:
            raise LookupFailure("analytics", f"failed to load tag stats: {e}") from e

        usage = next((row for row in usage_rows if row.tag_id == tag_id), None)
        if usage is None:
            return TagStats(tag_id=tag_id, project_count=0, folder_count=0, template_count=0)
        return TagStats(
            tag_id=tag_id,
            project_count=usage.project_count,
            folder_count=usage.folder_count,
            template_count=usage.template_count,
        )
