"""
Index store save task.

Pairs chunks with their vectors by position and inserts the resulting
embedding records into the index store in bounded-size batches. A failed
batch is recorded and skipped; remaining batches still run.

Dependencies: backend.boundary.vdb.index_store
System role: Final stage of the indexing pipeline
"""

import logging

from backend.boundary.vdb.index_store import IndexStore
from backend.core.exceptions import DimensionMismatchError, VectorStoreError
from backend.models.chunk import Chunk
from backend.models.embedding import EmbeddingRecord, InsertResult

logger = logging.getLogger(__name__)


class VectorStoreTask:
    """Insert embedding records into an index store in batches."""

    def __init__(self, store: IndexStore, batch_size: int = 50) -> None:
        """
        Initialize save task.

        Args:
            store: Target index store
            batch_size: Records per insert call

        Raises:
            ValueError: When batch_size is not positive
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._store = store
        self._batch_size = batch_size

    @staticmethod
    def build_records(
        collection_id: str,
        document_id: str,
        chunks: list[Chunk],
        vectors: list[list[float]],
    ) -> list[EmbeddingRecord]:
        """
        Pair chunks and vectors by position.

        Raises:
            ValueError: When the two lists differ in length
        """
        if len(chunks) != len(vectors):
            raise ValueError(
                f"Chunk/vector count mismatch: {len(chunks)} chunks, {len(vectors)} vectors"
            )
        return [
            EmbeddingRecord(
                collection_id=collection_id,
                document_id=document_id,
                content=chunk.content,
                metadata=chunk.metadata.model_dump(exclude_none=True),
                vector=vector,
            )
            for chunk, vector in zip(chunks, vectors)
        ]

    async def save(
        self,
        collection_id: str,
        document_id: str,
        chunks: list[Chunk],
        vectors: list[list[float]],
    ) -> InsertResult:
        """
        Insert records for one document.

        Args:
            collection_id: Owning collection
            document_id: Source document
            chunks: Chunks in document order
            vectors: Vectors aligned with chunks

        Returns:
            InsertResult: Ids of inserted records (input order) and per-batch errors
        """
        records = self.build_records(collection_id, document_id, chunks, vectors)
        result = InsertResult()

        for batch_start in range(0, len(records), self._batch_size):
            batch_number = batch_start // self._batch_size + 1
            batch = records[batch_start:batch_start + self._batch_size]
            try:
                ids = await self._store.insert_embeddings(batch)
            except (VectorStoreError, DimensionMismatchError) as e:
                result.errors.append(f"Insert batch {batch_number}: {e.message}")
                logger.warning(
                    f"{__name__}:save - Insert batch failed, continuing",
                    extra={"batch": batch_number, "document_id": document_id, "error": e.message},
                )
                continue
            result.inserted_ids.extend(ids)

        logger.info(
            f"{__name__}:save - Inserted {len(result.inserted_ids)}/{len(records)} records",
            extra={"collection_id": collection_id, "document_id": document_id},
        )
        return result
