"""SQLAlchemy implementations of the recommendation stores.

Every store method opens its own session from the injected session factory,
because the engine runs signal lookups concurrently and an ``AsyncSession``
must not be shared between coroutines. Statement builders are module-level
functions so they can be inspected without a database.
"""

from __future__ import annotations

from collections.abc import Collection, Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import Date, Select, Table, cast, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from tagsense.core.embedding import EmbeddingService
from tagsense.core.exceptions import LookupFailure
from tagsense.core.records import (
    ADD_TAG_ACTIVITY,
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
from tagsense.core.stores import (
    ActivityStore,
    AssociationStore,
    SimilarEntityStore,
    TagStore,
    VectorStore,
)
from tagsense.db.models import (
    Activity,
    Folder,
    Project,
    Template,
    folder_tags,
    project_tags,
    template_tags,
)
from tagsense.db.models import Tag as TagModel
from tagsense.utils import get_logger

logger = get_logger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]

# (kind, association table, entity id column name, entity model)
_ASSOCIATIONS: tuple[tuple[str, Table, str, type], ...] = (
    ("project", project_tags, "project_id", Project),
    ("folder", folder_tags, "folder_id", Folder),
    ("template", template_tags, "template_id", Template),
)
_TAGGABLE_KINDS = ("project", "folder")
_ENTITY_MODELS: dict[str, type[Project] | type[Folder]] = {
    "project": Project,
    "folder": Folder,
}


@contextmanager
def _store_errors(store: str) -> Iterator[None]:
    """Translate database errors into ``LookupFailure``."""
    try:
        yield
    except SQLAlchemyError as e:
        raise LookupFailure(store, str(e)) from e


def _to_tag(row: TagModel) -> Tag:
    return Tag(id=row.id, workspace_id=row.workspace_id, name=row.name, color=row.color)


def _to_vector(value) -> list[float] | None:
    if value is None:
        return None
    return [float(v) for v in value]


# ==================== Statement builders ====================


def build_list_tags_stmt(workspace_id: str, exclude_ids: Collection[str] = ()) -> Select:
    stmt = select(TagModel).where(TagModel.workspace_id == workspace_id)
    if exclude_ids:
        stmt = stmt.where(TagModel.id.not_in(list(exclude_ids)))
    return stmt.order_by(TagModel.name)


def build_get_tags_stmt(workspace_id: str, tag_ids: Collection[str]) -> Select:
    return select(TagModel).where(
        TagModel.workspace_id == workspace_id,
        TagModel.id.in_(list(tag_ids)),
    )


def build_cooccurrence_stmts(
    workspace_id: str, seed_tag_ids: Collection[str]
) -> list[Select]:
    """One group-by-tag count per taggable entity kind.

    An entity counts once for a tag if it also carries any seed tag.
    """
    seeds = list(seed_tag_ids)
    statements: list[Select] = []
    for kind, table, entity_column, model in _ASSOCIATIONS:
        if kind not in _TAGGABLE_KINDS:
            continue
        entity_id = table.c[entity_column]
        seeded_entities = select(entity_id).where(table.c.tag_id.in_(seeds))
        statements.append(
            select(table.c.tag_id, func.count().label("pair_count"))
            .join(model, model.id == entity_id)
            .where(
                model.workspace_id == workspace_id,
                entity_id.in_(seeded_entities),
                table.c.tag_id.not_in(seeds),
            )
            .group_by(table.c.tag_id)
        )
    return statements


def build_usage_stmts(
    workspace_id: str, tag_ids: Collection[str]
) -> list[tuple[str, Select]]:
    """Association counts per tag, one statement per entity kind."""
    ids = list(tag_ids)
    statements: list[tuple[str, Select]] = []
    for kind, table, entity_column, model in _ASSOCIATIONS:
        statements.append(
            (
                kind,
                select(table.c.tag_id, func.count().label("usage_count"))
                .join(model, model.id == table.c[entity_column])
                .where(model.workspace_id == workspace_id, table.c.tag_id.in_(ids))
                .group_by(table.c.tag_id),
            )
        )
    return statements


def build_tag_set_stmts(workspace_id: str) -> list[tuple[str, Select]]:
    statements: list[tuple[str, Select]] = []
    for kind, table, entity_column, model in _ASSOCIATIONS:
        entity_id = table.c[entity_column]
        statements.append(
            (
                kind,
                select(entity_id.label("entity_id"), table.c.tag_id)
                .join(model, model.id == entity_id)
                .where(model.workspace_id == workspace_id),
            )
        )
    return statements


def build_tagging_activity_stmt(
    user_id: str,
    workspace_id: str,
    since: datetime,
    group_by: ActivityGroupKey = "tag",
) -> Select:
    if group_by == "tag":
        key = Activity.details["tagId"].astext
    else:
        key = Activity.entity_id

    return (
        select(key.label("key"), func.count().label("activity_count"))
        .where(
            Activity.type == ADD_TAG_ACTIVITY,
            Activity.user_id == user_id,
            Activity.workspace_id == workspace_id,
            Activity.created_at >= since,
            key.isnot(None),
        )
        .group_by(key)
    )


def build_daily_tagging_stmt(workspace_id: str, since: datetime) -> Select:
    day = cast(Activity.created_at, Date)
    tag_id = Activity.details["tagId"].astext
    tag_name = Activity.details["tagName"].astext
    return (
        select(
            day.label("day"),
            tag_id.label("tag_id"),
            tag_name.label("tag_name"),
            func.count().label("activity_count"),
        )
        .where(
            Activity.type == ADD_TAG_ACTIVITY,
            Activity.workspace_id == workspace_id,
            Activity.created_at >= since,
        )
        .group_by(day, tag_id, tag_name)
    )


def build_tag_distribution_stmt(workspace_id: str) -> Select:
    tag_id = Activity.details["tagId"].astext
    tag_name = Activity.details["tagName"].astext
    return (
        select(
            Activity.entity_type,
            tag_id.label("tag_id"),
            tag_name.label("tag_name"),
            func.count().label("activity_count"),
        )
        .where(
            Activity.type == ADD_TAG_ACTIVITY,
            Activity.workspace_id == workspace_id,
        )
        .group_by(Activity.entity_type, tag_id, tag_name)
    )


def build_similar_entities_stmt(
    entity_type: EntityType,
    workspace_id: str,
    entity_id: str,
    name: str,
    limit: int,
) -> Select:
    model = _ENTITY_MODELS[entity_type]
    return (
        select(model)
        .options(selectinload(model.tags))
        .where(
            model.workspace_id == workspace_id,
            model.id != entity_id,
            model.name.icontains(name, autoescape=True),
        )
        .order_by(model.name)
        .limit(limit)
    )


# ==================== Stores ====================


class _SqlStore:
    store_name = "sql"

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory


class SqlTagStore(_SqlStore, TagStore):
    store_name = "tag_store"

    async def list_tags(
        self, workspace_id: str, exclude_ids: Collection[str] = ()
    ) -> list[Tag]:
        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                result = await session.execute(build_list_tags_stmt(workspace_id, exclude_ids))
                return [_to_tag(row) for row in result.scalars().all()]

    async def get_tags(self, workspace_id: str, tag_ids: Collection[str]) -> list[Tag]:
        if not tag_ids:
            return []
        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                result = await session.execute(build_get_tags_stmt(workspace_id, tag_ids))
                return [_to_tag(row) for row in result.scalars().all()]


class SqlAssociationStore(_SqlStore, AssociationStore):
    store_name = "association_store"

    async def count_cooccurrences(
        self, workspace_id: str, seed_tag_ids: Collection[str]
    ) -> list[CooccurrenceCount]:
        if not seed_tag_ids:
            return []

        counts: dict[str, int] = {}
        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                for stmt in build_cooccurrence_stmts(workspace_id, seed_tag_ids):
                    result = await session.execute(stmt)
                    for row in result.all():
                        counts[row.tag_id] = counts.get(row.tag_id, 0) + int(row.pair_count)

        return [CooccurrenceCount(tag_id=tag_id, pair_count=n) for tag_id, n in counts.items()]

    async def count_usage(
        self, workspace_id: str, tag_ids: Collection[str]
    ) -> list[TagUsage]:
        if not tag_ids:
            return []

        per_kind: dict[str, dict[str, int]] = {}
        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                for kind, stmt in build_usage_stmts(workspace_id, tag_ids):
                    result = await session.execute(stmt)
                    per_kind[kind] = {row.tag_id: int(row.usage_count) for row in result.all()}

        return [
            TagUsage(
                tag_id=tag_id,
                project_count=per_kind.get("project", {}).get(tag_id, 0),
                folder_count=per_kind.get("folder", {}).get(tag_id, 0),
                template_count=per_kind.get("template", {}).get(tag_id, 0),
            )
            for tag_id in tag_ids
        ]

    async def list_tag_sets(self, workspace_id: str) -> list[EntityTagSet]:
        grouped: dict[tuple[str, str], set[str]] = {}
        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                for kind, stmt in build_tag_set_stmts(workspace_id):
                    result = await session.execute(stmt)
                    for row in result.all():
                        grouped.setdefault((kind, row.entity_id), set()).add(row.tag_id)

        return [
            EntityTagSet(entity_id=entity_id, entity_type=kind, tag_ids=frozenset(tags))
            for (kind, entity_id), tags in grouped.items()
        ]


class SqlActivityStore(_SqlStore, ActivityStore):
    store_name = "activity_store"

    async def count_tagging_activity(
        self,
        user_id: str,
        workspace_id: str,
        since: datetime,
        group_by: ActivityGroupKey = "tag",
    ) -> list[ActivityCount]:
        stmt = build_tagging_activity_stmt(user_id, workspace_id, since, group_by)
        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [
                    ActivityCount(key=str(row.key), count=int(row.activity_count))
                    for row in result.all()
                ]

    async def daily_tagging_activity(
        self, workspace_id: str, since: datetime
    ) -> list[DailyTagActivity]:
        stmt = build_daily_tagging_stmt(workspace_id, since)
        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()

        return [
            DailyTagActivity(
                day=row.day,
                tag_id=row.tag_id,
                tag_name=row.tag_name or "",
                count=int(row.activity_count),
            )
            for row in rows
            if row.tag_id
        ]

    async def tag_distribution(self, workspace_id: str) -> list[TagDistribution]:
        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                result = await session.execute(build_tag_distribution_stmt(workspace_id))
                rows = result.all()

        return [
            TagDistribution(
                entity_type=row.entity_type,
                tag_id=row.tag_id,
                tag_name=row.tag_name or "",
                count=int(row.activity_count),
            )
            for row in rows
            if row.tag_id
        ]


class SqlVectorStore(_SqlStore, VectorStore):
    """Reads embeddings stored in the pgvector columns."""

    store_name = "vector_store"

    async def get_entity_vector(
        self, entity_id: str, entity_type: EntityType
    ) -> list[float] | None:
        model = _ENTITY_MODELS.get(entity_type)
        if model is None:
            return None
        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(model.embedding).where(model.id == entity_id)
                )
                return _to_vector(result.scalar_one_or_none())

    async def get_tag_vector(self, tag_id: str) -> list[float] | None:
        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(TagModel.embedding).where(TagModel.id == tag_id)
                )
                return _to_vector(result.scalar_one_or_none())


class SqlSimilarEntityStore(_SqlStore, SimilarEntityStore):
    """Finds same-type entities whose names contain the target's name."""

    store_name = "similar_entity_store"

    async def find_similar_entities(
        self,
        workspace_id: str,
        entity_id: str,
        entity_type: EntityType,
        limit: int = 5,
    ) -> list[SimilarEntity]:
        model = _ENTITY_MODELS.get(entity_type)
        if model is None or limit <= 0:
            return []

        with _store_errors(self.store_name):
            async with self._session_factory() as session:
                name_result = await session.execute(
                    select(model.name).where(
                        model.id == entity_id, model.workspace_id == workspace_id
                    )
                )
                name = name_result.scalar_one_or_none()
                if not name:
                    return []

                result = await session.execute(
                    build_similar_entities_stmt(entity_type, workspace_id, entity_id, name, limit)
                )
                return [
                    SimilarEntity(
                        id=row.id,
                        name=row.name,
                        type=entity_type,
                        tag_ids=frozenset(tag.id for tag in row.tags),
                    )
                    for row in result.scalars().all()
                ]


# ==================== Embedding backfill ====================


async def backfill_embeddings(
    session_factory: SessionFactory,
    service: EmbeddingService,
    workspace_id: str,
    batch_size: int = 32,
) -> dict[str, int]:
    """Embed tags, projects and folders of a workspace that have no vector yet.

    Args:
        session_factory: Session factory for the database
        service: Embedding service
        workspace_id: Workspace to backfill
        batch_size: Texts per embedding API call

    Returns:
        Number of embedded rows per kind
    """
    counts: dict[str, int] = {}

    with _store_errors("embedding_backfill"):
        async with session_factory() as session:
            tag_result = await session.execute(
                select(TagModel).where(
                    TagModel.workspace_id == workspace_id,
                    TagModel.embedding.is_(None),
                )
            )
            tags = tag_result.scalars().all()
            if tags:
                embeddings = await service.embed_batch(
                    [service.build_tag_text(tag.name) for tag in tags],
                    batch_size=batch_size,
                )
                for tag, embedding in zip(tags, embeddings, strict=False):
                    tag.embedding = embedding
                await session.commit()
            counts["tag"] = len(tags)

            for kind in _TAGGABLE_KINDS:
                model = _ENTITY_MODELS[kind]
                result = await session.execute(
                    select(model)
                    .options(selectinload(model.tags))
                    .where(model.workspace_id == workspace_id, model.embedding.is_(None))
                )
                entities = result.scalars().all()
                if entities:
                    texts = [
                        service.build_entity_text(
                            name=entity.name,
                            entity_type=kind,
                            description=getattr(entity, "description", None),
                            tag_names=[tag.name for tag in entity.tags],
                        )
                        for entity in entities
                    ]
                    embeddings = await service.embed_batch(texts, batch_size=batch_size)
                    for entity, embedding in zip(entities, embeddings, strict=False):
                        entity.embedding = embedding
                    await session.commit()
                counts[kind] = len(entities)

    logger.info(
        f"Embedding backfill for workspace {workspace_id}: "
        + ", ".join(f"{kind}={n}" for kind, n in counts.items())
    )
    return counts
