"""Database module.

This module provides database connectivity, models and store adapters:
- database: Async PostgreSQL connection management
- models: SQLAlchemy ORM models with pgvector support
- repositories: SQL implementations of the recommendation stores
"""

from .database import (
    AsyncSessionLocal,
    check_db_connection,
    close_db,
    get_session_factory,
    init_db,
)
from .models import (
    Activity,
    Base,
    Folder,
    Project,
    Tag,
    Template,
    User,
    Workspace,
    folder_tags,
    project_tags,
    template_tags,
)
from .repositories import (
    SqlActivityStore,
    SqlAssociationStore,
    SqlSimilarEntityStore,
    SqlTagStore,
    SqlVectorStore,
    backfill_embeddings,
)

__all__ = [
    # Database
    "init_db",
    "close_db",
    "check_db_connection",
    "get_session_factory",
    "AsyncSessionLocal",
    # Models
    "Base",
    "Workspace",
    "User",
    "Tag",
    "Project",
    "Folder",
    "Template",
    "Activity",
    "project_tags",
    "folder_tags",
    "template_tags",
    # Stores
    "SqlTagStore",
    "SqlAssociationStore",
    "SqlActivityStore",
    "SqlVectorStore",
    "SqlSimilarEntityStore",
    "backfill_embeddings",
]
