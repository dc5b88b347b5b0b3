"""
Index store factory for selecting between in-memory (dev) and pgvector (prod).

Depends on VECTOR_STORE_STORE_TYPE environment variable.
Provides consistent interface regardless of underlying implementation.

Dependencies: backend.boundary.vdb, backend.boundary.db, backend.configs
System role: Index store instantiation and selection
"""

import logging

from backend.boundary.db.connection import get_async_engine, get_async_session_factory
from backend.boundary.vdb.index_store import IndexStore
from backend.boundary.vdb.memory_store import InMemoryIndexStore
from backend.boundary.vdb.pgvector_store import PgVectorIndexStore
from backend.configs.settings import Settings

logger = logging.getLogger(__name__)


def get_vector_store(settings: Settings, dimensions: int) -> IndexStore:
    """
    Factory function to get index store based on configuration.

    Args:
        settings: Application settings
        dimensions: Vector length of the configured embedding provider

    Returns:
        InMemoryIndexStore or PgVectorIndexStore: Configured index store instance

    Raises:
        ValueError: If store_type is invalid
    """
    store_type = settings.vector_store.store_type.lower()

    if store_type == "memory":
        logger.info(
            f"{__name__}:get_vector_store - Creating in-memory index store (local dev mode)"
        )
        return InMemoryIndexStore(dimensions=dimensions)

    elif store_type == "pgvector":
        logger.info(f"{__name__}:get_vector_store - Creating pgvector index store (production mode)")
        engine = get_async_engine(settings.database)
        return PgVectorIndexStore(
            session_factory=get_async_session_factory(engine),
            dimensions=dimensions,
            engine=engine,
        )

    else:
        raise ValueError(
            f"Invalid VECTOR_STORE_STORE_TYPE: {store_type}. "
            f"Must be 'memory' (dev) or 'pgvector' (production)."
        )
