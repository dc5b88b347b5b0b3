"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, CreatedAtMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), init_database(): Async connection management
  - EmbeddingModel: Embedding row with pgvector column
  - embedding_crud: CRUD singleton for embeddings

Dependencies: sqlalchemy, pgvector, backend.configs
System role: Database adapter providing persistent storage for the embedding index
"""

from backend.boundary.db.base import Base, CreatedAtMixin, UUIDMixin
from backend.boundary.db.connection import (
    get_async_engine,
    get_async_session_factory,
    init_database,
)
from backend.boundary.db.CRUD import BaseCRUD, EmbeddingCRUD, embedding_crud
from backend.boundary.db.models import EmbeddingModel

__all__ = [
    # Base classes
    "Base",
    "CreatedAtMixin",
    "UUIDMixin",
    # Connection
    "get_async_engine",
    "get_async_session_factory",
    "init_database",
    # Models
    "EmbeddingModel",
    # CRUD
    "BaseCRUD",
    "EmbeddingCRUD",
    "embedding_crud",
]
