"""
Index store contract.

Operations the RAG service needs from any embedding index. Implementations
must filter strictly by collection, return matches ranked by descending
similarity with ``similarity > threshold``, and treat deletes of unknown ids
as a no-op returning 0.

Dependencies: backend.models
System role: Storage seam between the RAG service and concrete stores
"""

from typing import Protocol, runtime_checkable

from backend.models.embedding import EmbeddingRecord
from backend.models.rag import CollectionStats, SimilarityMatch


@runtime_checkable
class IndexStore(Protocol):
    """Persistent store of embedding records."""

    @property
    def dimensions(self) -> int:
        """Vector length every stored record must have."""
        ...

    async def insert_embeddings(self, records: list[EmbeddingRecord]) -> list[str]:
        """Insert records as one unit and return their assigned ids in input order."""
        ...

    async def query_nearest(
        self,
        collection_id: str,
        query_vector: list[float],
        threshold: float,
        limit: int,
    ) -> list[SimilarityMatch]:
        ...

    async def delete_by_document(self, document_id: str) -> int:
        ...

    async def delete_by_collection(self, collection_id: str) -> int:
        ...

    async def count_by_collection(self, collection_id: str) -> int:
        ...

    async def stats_by_collection(self, collection_id: str) -> CollectionStats:
        ...

    async def aclose(self) -> None:
        """Release connections held by the store."""
        ...
