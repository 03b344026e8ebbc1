from datetime import datetime, timezone

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from tagsense.core.exceptions import LookupFailure
from tagsense.db.repositories import (
    _store_errors,
    _to_vector,
    build_cooccurrence_stmts,
    build_daily_tagging_stmt,
    build_get_tags_stmt,
    build_list_tags_stmt,
    build_similar_entities_stmt,
    build_tag_distribution_stmt,
    build_tag_set_stmts,
    build_tagging_activity_stmt,
    build_usage_stmts,
)

SINCE = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


def test_list_tags_excludes_current_tags():
    compiled = _sql(build_list_tags_stmt("ws1", exclude_ids=["t1", "t2"]))

    assert "FROM tags" in compiled
    assert "tags.workspace_id = " in compiled
    assert "tags.id NOT IN" in compiled
    assert "ORDER BY tags.name" in compiled


def test_list_tags_without_exclusions():
    compiled = _sql(build_list_tags_stmt("ws1"))

    assert "NOT IN" not in compiled


def test_get_tags_filters_by_ids():
    compiled = _sql(build_get_tags_stmt("ws1", ["t1"]))

    assert "tags.id IN" in compiled


def test_cooccurrence_covers_projects_and_folders_only():
    statements = build_cooccurrence_stmts("ws1", ["t1"])

    assert len(statements) == 2
    project_sql, folder_sql = (_sql(s) for s in statements)
    assert "FROM project_tags JOIN projects" in project_sql
    assert "FROM folder_tags JOIN folders" in folder_sql
    for compiled in (project_sql, folder_sql):
        assert "count(*) AS pair_count" in compiled
        assert "NOT IN" in compiled
        assert "GROUP BY" in compiled
        assert "template_tags" not in compiled


def test_usage_counts_every_entity_kind():
    statements = build_usage_stmts("ws1", ["t1", "t2"])

    assert [kind for kind, _ in statements] == ["project", "folder", "template"]
    template_sql = _sql(statements[2][1])
    assert "FROM template_tags JOIN templates" in template_sql
    assert "count(*) AS usage_count" in template_sql
    assert "GROUP BY template_tags.tag_id" in template_sql


def test_tag_set_statements_select_entity_and_tag():
    statements = build_tag_set_stmts("ws1")

    assert [kind for kind, _ in statements] == ["project", "folder", "template"]
    assert "folder_tags.folder_id AS entity_id" in _sql(statements[1][1])


def test_tagging_activity_groups_by_applied_tag():
    compiled = _sql(build_tagging_activity_stmt("u1", "ws1", SINCE))

    assert "activities.details ->> " in compiled
    assert "activities.type = " in compiled
    assert "activities.user_id = " in compiled
    assert "activities.created_at >= " in compiled
    assert "GROUP BY" in compiled


def test_tagging_activity_groups_by_entity():
    compiled = _sql(build_tagging_activity_stmt("u1", "ws1", SINCE, group_by="entity"))

    assert "GROUP BY activities.entity_id" in compiled
    assert "->>" not in compiled


def test_daily_tagging_casts_to_date():
    compiled = _sql(build_daily_tagging_stmt("ws1", SINCE))

    assert "CAST(activities.created_at AS DATE)" in compiled
    assert "GROUP BY" in compiled


def test_tag_distribution_groups_by_entity_type_and_tag():
    compiled = _sql(build_tag_distribution_stmt("ws1"))

    assert "activities.entity_type" in compiled
    assert "activities.details ->> " in compiled
    assert "GROUP BY activities.entity_type" in compiled
    assert "created_at" not in compiled


def test_similar_entities_matches_name_case_insensitively():
    compiled = _sql(build_similar_entities_stmt("folder", "ws1", "f1", "assets_100%", 5))

    assert "FROM folders" in compiled
    assert "ILIKE" in compiled
    assert "folders.id != " in compiled
    assert "LIMIT" in compiled


def test_store_errors_translate_database_errors():
    with pytest.raises(LookupFailure) as exc_info:
        with _store_errors("tag_store"):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    assert exc_info.value.store == "tag_store"


def test_store_errors_leave_other_errors_alone():
    with pytest.raises(KeyError):
        with _store_errors("tag_store"):
            raise KeyError("x")


def test_to_vector_converts_to_floats():
    assert _to_vector(None) is None
    assert _to_vector((1, 2)) == [1.0, 2.0]
