"""
Embedding CRUD operations.

Adds nearest-neighbour search and per-document aggregates on top of the
generic CRUD operations for EmbeddingModel.

Dependencies: sqlalchemy, pgvector, backend.boundary.db.models.embedding_model
System role: Embedding persistence operations
"""

from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.boundary.db.CRUD.base_crud import BaseCRUD
from backend.boundary.db.models.embedding_model import EmbeddingModel


class EmbeddingCRUD(BaseCRUD[EmbeddingModel]):
    """CRUD operations for EmbeddingModel."""

    def __init__(self) -> None:
        """Initialize EmbeddingCRUD with EmbeddingModel."""
        super().__init__(EmbeddingModel)

    async def nearest(
        self,
        session: AsyncSession,
        collection_id: str,
        query_vector: list[float],
        threshold: float,
        limit: int,
    ) -> Sequence[Any]:
        """
        Find the collection's rows closest to the query vector.

        Similarity is ``1 - cosine_distance``; only rows strictly above the
        threshold are returned, best first, ties ordered by id.

        Returns:
            Rows of (EmbeddingModel, similarity)
        """
        distance = EmbeddingModel.embedding.cosine_distance(query_vector)
        similarity = (1 - distance).label("similarity")
        stmt = (
            select(EmbeddingModel, similarity)
            .where(EmbeddingModel.collection_id == collection_id)
            .where(1 - distance > threshold)
            .order_by(distance, EmbeddingModel.id)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.all()

    async def delete_by_document(self, session: AsyncSession, document_id: str) -> int:
        return await self.delete_where(session, EmbeddingModel.document_id == document_id)

    async def delete_by_collection(self, session: AsyncSession, collection_id: str) -> int:
        return await self.delete_where(session, EmbeddingModel.collection_id == collection_id)

    async def count_by_collection(self, session: AsyncSession, collection_id: str) -> int:
        return await self.count_where(session, EmbeddingModel.collection_id == collection_id)

    async def document_stats(self, session: AsyncSession, collection_id: str) -> Sequence[Any]:
        """
        Aggregate the collection's rows per document.

        Returns:
            Rows of (document_id, count, content_size, last_indexed) ordered by document_id
        """
        stmt = (
            select(
                EmbeddingModel.document_id,
                func.count(EmbeddingModel.id).label("count"),
                func.coalesce(func.sum(func.length(EmbeddingModel.content)), 0).label("content_size"),
                func.max(EmbeddingModel.created_at).label("last_indexed"),
            )
            .where(EmbeddingModel.collection_id == collection_id)
            .group_by(EmbeddingModel.document_id)
            .order_by(EmbeddingModel.document_id)
        )
        result = await session.execute(stmt)
        return result.all()


embedding_crud = EmbeddingCRUD()
