"""
Retrieval-augmented generation models.

Configuration, search results, indexing statistics and progress payloads
exchanged between the RAG service and its callers.

Dependencies: pydantic, backend.models.chunk
System role: RAG request/response data structures
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from backend.models.chunk import Chunk, ChunkingConfig

if TYPE_CHECKING:
    from backend.configs.settings import Settings


class RAGConfig(BaseModel):
    """Per-call retrieval configuration."""

    embedding_provider: str = Field(
        default="gemini-embedding-004",
        description="Key into the embedding provider registry",
    )
    chunking_config: ChunkingConfig = Field(default_factory=ChunkingConfig)
    similarity_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum cosine similarity for a match",
    )
    max_matches: int = Field(default=5, ge=1, le=100, description="Maximum matches returned")
    include_metadata: bool = Field(default=True, description="Return chunk metadata with matches")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RAGConfig":
        """Build the process-wide default configuration from settings."""
        return cls(
            embedding_provider=settings.embedding.provider,
            similarity_threshold=settings.vector_store.similarity_threshold,
            max_matches=settings.vector_store.max_matches,
        )


class SimilarityMatch(BaseModel):
    """A stored chunk returned by a nearest-neighbour query."""

    id: str
    content: str
    metadata: dict = Field(default_factory=dict)
    similarity: float = Field(ge=0.0, le=1.0)


class RAGSearchResult(BaseModel):
    """Ranked matches for one query."""

    matches: list[SimilarityMatch] = Field(default_factory=list)
    query: str
    threshold: float
    total_matches: int = 0


class RAGSearchStats(BaseModel):
    """Timing and score summary of a search."""

    query_time_ms: float
    total_embeddings_searched: int
    matches_found: int
    similarity_scores: list[float] = Field(default_factory=list)


class AIContext(BaseModel):
    """Context block and citations prepared for a generation step."""

    context: str
    sources: list[str] = Field(default_factory=list)
    search_result: RAGSearchResult
    stats: RAGSearchStats


class IndexingStats(BaseModel):
    """
    Result of an indexing run.

    ``cost_estimate`` is an approximation computed from token estimates,
    including items whose embedding request failed.
    """

    total_chunks: int = 0
    total_embeddings: int = 0
    total_tokens: int = 0
    processing_time_ms: float = 0.0
    cost_estimate: float = 0.0
    errors: list[str] = Field(default_factory=list)


class IndexingPreview(BaseModel):
    """Chunking and cost preview computed without network calls."""

    chunks_preview: list[Chunk] = Field(default_factory=list)
    total_chunks: int
    estimated_tokens: int
    estimated_cost: float
    processing_time_estimate: str
    config_used: ChunkingConfig


class DocumentStats(BaseModel):
    """Aggregate of the embeddings stored for one document."""

    document_id: str
    count: int
    content_size: int
    last_indexed: datetime | None = None


class CollectionStats(BaseModel):
    """Aggregate of the embeddings stored for one collection."""

    total_embeddings: int = 0
    documents: list[DocumentStats] = Field(default_factory=list)
    total_content_size: int = 0


class RAGAvailability(BaseModel):
    """Whether retrieval can be used for a collection right now."""

    available: bool
    has_embeddings: bool
    provider_configured: bool
    collection_id: str


class IndexingState(str, Enum):
    """
    Lifecycle of one indexing run.

    STARTING -> CHUNKING -> EMBEDDING -> SAVING -> COMPLETED, with ERROR
    reachable from any step.
    """

    STARTING = "starting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    SAVING = "saving"
    COMPLETED = "completed"
    ERROR = "error"


class IndexingProgress(BaseModel):
    """Advisory progress event emitted on every state transition."""

    state: IndexingState
    progress: int = Field(ge=0, le=100)
    message: str
    document_id: str
