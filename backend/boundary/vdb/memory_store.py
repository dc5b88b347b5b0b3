"""
In-memory index store for local development and tests.

Keeps embedding records in a dict and ranks by exact cosine similarity.
State is lost when the process exits.

Dependencies: backend.core.similarity, backend.models
System role: Local index store (VECTOR_STORE_STORE_TYPE=memory)
"""

import logging
import uuid
from datetime import datetime, timezone

from backend.core.exceptions import DimensionMismatchError
from backend.core.similarity import clamp_similarity, cosine_similarity
from backend.models.embedding import EmbeddingRecord
from backend.models.rag import CollectionStats, DocumentStats, SimilarityMatch

logger = logging.getLogger(__name__)


class InMemoryIndexStore:
    """Dict-backed index store with brute-force nearest-neighbour search."""

    def __init__(self, dimensions: int) -> None:
        """
        Initialize empty store.

        Args:
            dimensions: Vector length enforced on insert
        """
        self._dimensions = dimensions
        self._records: dict[str, EmbeddingRecord] = {}

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def insert_embeddings(self, records: list[EmbeddingRecord]) -> list[str]:
        """
        Insert records atomically.

        Raises:
            DimensionMismatchError: If any vector has the wrong length (nothing is inserted)
        """
        for record in records:
            if len(record.vector) != self._dimensions:
                raise DimensionMismatchError(expected=self._dimensions, actual=len(record.vector))

        now = datetime.now(timezone.utc)
        ids: list[str] = []
        for record in records:
            record_id = str(uuid.uuid4())
            self._records[record_id] = record.model_copy(update={"created_at": now})
            ids.append(record_id)

        logger.debug(f"{__name__}:insert_embeddings - Inserted {len(ids)} records")
        return ids

    async def query_nearest(
        self,
        collection_id: str,
        query_vector: list[float],
        threshold: float,
        limit: int,
    ) -> list[SimilarityMatch]:
        """Rank the collection's records by cosine similarity to the query."""
        if len(query_vector) != self._dimensions:
            raise DimensionMismatchError(expected=self._dimensions, actual=len(query_vector))

        scored: list[tuple[float, str, EmbeddingRecord]] = []
        for record_id, record in self._records.items():
            if record.collection_id != collection_id:
                continue
            similarity = cosine_similarity(record.vector, query_vector)
            if similarity > threshold:
                scored.append((similarity, record_id, record))

        scored.sort(key=lambda item: (-item[0], item[1]))
        return [
            SimilarityMatch(
                id=record_id,
                content=record.content,
                metadata=dict(record.metadata),
                similarity=clamp_similarity(similarity),
            )
            for similarity, record_id, record in scored[:limit]
        ]

    async def delete_by_document(self, document_id: str) -> int:
        return self._delete_where(lambda record: record.document_id == document_id)

    async def delete_by_collection(self, collection_id: str) -> int:
        return self._delete_where(lambda record: record.collection_id == collection_id)

    def _delete_where(self, predicate) -> int:
        doomed = [record_id for record_id, record in self._records.items() if predicate(record)]
        for record_id in doomed:
            del self._records[record_id]
        return len(doomed)

    async def count_by_collection(self, collection_id: str) -> int:
        return sum(1 for record in self._records.values() if record.collection_id == collection_id)

    async def stats_by_collection(self, collection_id: str) -> CollectionStats:
        """Aggregate record count, content size and last insert time per document."""
        by_document: dict[str, DocumentStats] = {}
        for record in self._records.values():
            if record.collection_id != collection_id:
                continue
            stats = by_document.setdefault(
                record.document_id,
                DocumentStats(document_id=record.document_id, count=0, content_size=0),
            )
            stats.count += 1
            stats.content_size += len(record.content)
            if stats.last_indexed is None or (record.created_at and record.created_at > stats.last_indexed):
                stats.last_indexed = record.created_at

        documents = [by_document[key] for key in sorted(by_document)]
        return CollectionStats(
            total_embeddings=sum(doc.count for doc in documents),
            documents=documents,
            total_content_size=sum(doc.content_size for doc in documents),
        )

    async def aclose(self) -> None:
        """Nothing to release; records stay in memory."""
