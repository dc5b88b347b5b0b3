"""
Vector database boundary layer.

Provides index stores for embedding storage and similarity search.
- InMemoryIndexStore: Local development and tests
- PgVectorIndexStore: Production PostgreSQL/pgvector store

Dependencies: sqlalchemy, pgvector
System role: Index store adapters for RAG retrieval
"""

from backend.boundary.vdb.index_store import IndexStore
from backend.boundary.vdb.memory_store import InMemoryIndexStore
from backend.boundary.vdb.pgvector_store import PgVectorIndexStore
from backend.boundary.vdb.vector_store_factory import get_vector_store

__all__ = [
    "IndexStore",
    "InMemoryIndexStore",
    "PgVectorIndexStore",
    "get_vector_store",
]
