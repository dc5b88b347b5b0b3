"""
Embedding domain models.

Persisted embedding records and the ephemeral results produced while
generating vectors.

Dependencies: pydantic
System role: Embedding data structures shared by pipeline and index store
"""

from datetime import datetime

from pydantic import BaseModel, Field

from backend.models.rag import IndexingStats


class EmbeddingRecord(BaseModel):
    """
    One retrievable unit ready for the index store.

    The id is assigned by the store on insert. Records are never updated
    in place; re-indexing deletes and recreates them.
    """

    collection_id: str = Field(description="Owning collection (gem) identifier")
    document_id: str = Field(description="Source document identifier")
    content: str = Field(description="Copy of the chunk text")
    metadata: dict = Field(default_factory=dict, description="Copy of the chunk metadata")
    vector: list[float] = Field(description="Embedding vector")
    created_at: datetime | None = Field(default=None, description="Set by the store on insert")


class EmbeddingBatchResult(BaseModel):
    """Vectors for a chunk list, index-aligned with the input."""

    vectors: list[list[float]]
    stats: IndexingStats


class CostEstimate(BaseModel):
    """Approximate cost of embedding a chunk list (not a billing figure)."""

    total_tokens: int
    cost_estimate: float
    provider: str


class ValidationReport(BaseModel):
    """Outcome of a chunk or embedding validity check."""

    is_valid: bool
    issues: list[str] = Field(default_factory=list)


class InsertResult(BaseModel):
    """Outcome of a batched insert; failed batches are listed in errors."""

    inserted_ids: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
