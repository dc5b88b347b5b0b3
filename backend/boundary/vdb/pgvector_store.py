"""
PostgreSQL/pgvector index store for production.

Stores embedding rows in Postgres and ranks them with pgvector's cosine
distance operator. Each call runs in its own session and transaction.

Dependencies: sqlalchemy, pgvector, backend.boundary.db
System role: Production index store (VECTOR_STORE_STORE_TYPE=pgvector)
"""

import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from backend.boundary.db.CRUD.embedding_crud import EmbeddingCRUD, embedding_crud
from backend.core.exceptions import DimensionMismatchError, VectorStoreError
from backend.core.similarity import clamp_similarity
from backend.models.embedding import EmbeddingRecord
from backend.models.rag import CollectionStats, DocumentStats, SimilarityMatch

logger = logging.getLogger(__name__)

# asyncpg raises OSError subclasses when the server cannot be reached
_STORE_ERRORS = (SQLAlchemyError, OSError)


class PgVectorIndexStore:
    """Index store backed by a pgvector ``embeddings`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        dimensions: int,
        crud: EmbeddingCRUD = embedding_crud,
        engine: AsyncEngine | None = None,
    ) -> None:
        """
        Initialize pgvector store.

        Args:
            session_factory: Async session factory bound to the database
            dimensions: Vector length enforced on insert and query
            crud: Embedding CRUD operations
            engine: Engine owned by the store, disposed by aclose
        """
        self._session_factory = session_factory
        self._dimensions = dimensions
        self._crud = crud
        self._engine = engine

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _check_dimensions(self, vector: list[float]) -> None:
        if len(vector) != self._dimensions:
            raise DimensionMismatchError(expected=self._dimensions, actual=len(vector))

    async def insert_embeddings(self, records: list[EmbeddingRecord]) -> list[str]:
        """
        Insert records in a single transaction.

        Raises:
            DimensionMismatchError: If any vector has the wrong length (nothing is inserted)
            VectorStoreError: If the database rejects the insert
        """
        for record in records:
            self._check_dimensions(record.vector)
        if not records:
            return []

        rows = [
            {
                "id": uuid.uuid4(),
                "collection_id": record.collection_id,
                "document_id": record.document_id,
                "content": record.content,
                "chunk_metadata": record.metadata,
                "embedding": record.vector,
            }
            for record in records
        ]

        async with self._session_factory() as session:
            try:
                instances = await self._crud.create_many(session, rows)
                await session.commit()
            except _STORE_ERRORS as e:
                await session.rollback()
                logger.error(
                    f"{__name__}:insert_embeddings - Insert failed",
                    extra={"records": len(records), "error": str(e)},
                )
                raise VectorStoreError(f"Insert failed: {e}", operation="insert") from e

        return [str(instance.id) for instance in instances]

    async def query_nearest(
        self,
        collection_id: str,
        query_vector: list[float],
        threshold: float,
        limit: int,
    ) -> list[SimilarityMatch]:
        """
        Return the collection's best matches above the threshold.

        Raises:
            DimensionMismatchError: If the query vector has the wrong length
            VectorStoreError: If the query fails
        """
        self._check_dimensions(query_vector)

        async with self._session_factory() as session:
            try:
                rows = await self._crud.nearest(session, collection_id, query_vector, threshold, limit)
            except _STORE_ERRORS as e:
                raise VectorStoreError(f"Similarity query failed: {e}", operation="query") from e

        return [
            SimilarityMatch(
                id=str(model.id),
                content=model.content,
                metadata=dict(model.chunk_metadata or {}),
                similarity=clamp_similarity(float(similarity)),
            )
            for model, similarity in rows
        ]

    async def delete_by_document(self, document_id: str) -> int:
        return await self._delete("delete_document", self._crud.delete_by_document, document_id)

    async def delete_by_collection(self, collection_id: str) -> int:
        return await self._delete("delete_collection", self._crud.delete_by_collection, collection_id)

    async def _delete(self, operation: str, delete_fn, key: str) -> int:
        async with self._session_factory() as session:
            try:
                deleted = await delete_fn(session, key)
                await session.commit()
            except _STORE_ERRORS as e:
                await session.rollback()
                raise VectorStoreError(f"Delete failed: {e}", operation=operation) from e

        logger.info(f"{__name__}:{operation} - Deleted {deleted} embeddings", extra={"key": key})
        return deleted

    async def count_by_collection(self, collection_id: str) -> int:
        async with self._session_factory() as session:
            try:
                return await self._crud.count_by_collection(session, collection_id)
            except _STORE_ERRORS as e:
                raise VectorStoreError(f"Count failed: {e}", operation="count") from e

    async def stats_by_collection(self, collection_id: str) -> CollectionStats:
        async with self._session_factory() as session:
            try:
                rows = await self._crud.document_stats(session, collection_id)
            except _STORE_ERRORS as e:
                raise VectorStoreError(f"Stats query failed: {e}", operation="stats") from e

        documents = [
            DocumentStats(
                document_id=document_id,
                count=int(count),
                content_size=int(content_size),
                last_indexed=last_indexed,
            )
            for document_id, count, content_size, last_indexed in rows
        ]
        return CollectionStats(
            total_embeddings=sum(doc.count for doc in documents),
            documents=documents,
            total_content_size=sum(doc.content_size for doc in documents),
        )

    async def aclose(self) -> None:
        """Dispose the owned engine's connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info(f"{__name__}:aclose - Connection pool disposed")
