"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from backend.boundary.db.CRUD import embedding_crud

    count = await embedding_crud.count_by_collection(db, collection_id)
"""

from backend.boundary.db.CRUD.base_crud import BaseCRUD
from backend.boundary.db.CRUD.embedding_crud import EmbeddingCRUD, embedding_crud

__all__ = [
    "BaseCRUD",
    "EmbeddingCRUD",
    "embedding_crud",
]
