"""
Shared test fixtures and configuration for entire test suite.

Provides: embedding settings without network pauses, deterministic vector
builders, a scripted embedding backend and an in-memory index store.
Dependencies: pytest
System role: Test infrastructure and fixture management
"""

import math
from typing import Callable

import pytest

from backend.boundary.vdb.memory_store import InMemoryIndexStore
from backend.configs.embedding import EmbeddingSettings
from backend.core.exceptions import EmbeddingProviderError, VectorStoreError
from backend.models.chunk import Chunk, ChunkMetadata

DIMENSIONS = 768


def basis_vector(index: int, dims: int = DIMENSIONS) -> list[float]:
    """Unit vector along one axis."""
    vector = [0.0] * dims
    vector[index] = 1.0
    return vector


def vector_with_similarity(similarity: float, dims: int = DIMENSIONS) -> list[float]:
    """Unit vector whose cosine similarity to basis_vector(0) is ``similarity``."""
    vector = [0.0] * dims
    vector[0] = similarity
    vector[1] = math.sqrt(1 - similarity**2)
    return vector


class ScriptedEmbeddingBackend:
    """
    Embedding backend returning preset vectors per text.

    Texts in ``failures`` raise EmbeddingProviderError; unknown texts get
    ``default``.
    """

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        failures: set[str] | None = None,
    ) -> None:
        self.vectors = vectors or {}
        self.default = default or basis_vector(0)
        self.failures = failures or set()
        self.calls: list[str] = []

    async def embed_one(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.failures:
            raise EmbeddingProviderError("Gemini API error: 500 internal", status_code=500)
        return self.vectors.get(text, self.default)


class FlakyIndexStore(InMemoryIndexStore):
    """In-memory store that fails the configured insert calls (1-based)."""

    def __init__(self, dimensions: int = DIMENSIONS, failing_calls: set[int] | None = None) -> None:
        super().__init__(dimensions)
        self.failing_calls = failing_calls or set()
        self.insert_calls = 0

    async def insert_embeddings(self, records):
        self.insert_calls += 1
        if self.insert_calls in self.failing_calls:
            raise VectorStoreError("connection reset", operation="insert")
        return await super().insert_embeddings(records)


@pytest.fixture
def embedding_settings() -> EmbeddingSettings:
    """Configured embedding settings with pacing disabled."""
    return EmbeddingSettings(
        gemini_api_key="test-key",
        batch_pause_seconds=0,
        item_pause_seconds=0,
    )


@pytest.fixture
def unconfigured_embedding_settings() -> EmbeddingSettings:
    """Embedding settings without credentials."""
    return EmbeddingSettings(gemini_api_key="", batch_pause_seconds=0, item_pause_seconds=0)


@pytest.fixture
def scripted_backend() -> ScriptedEmbeddingBackend:
    """Backend returning basis_vector(0) for every text."""
    return ScriptedEmbeddingBackend()


@pytest.fixture
def memory_store() -> InMemoryIndexStore:
    """Empty in-memory index store sized for the default provider."""
    return InMemoryIndexStore(dimensions=DIMENSIONS)


@pytest.fixture
def make_chunk() -> Callable[..., Chunk]:
    """Factory building a chunk with minimal metadata."""

    def _make(content: str, index: int = 0, source_file: str = "notes.txt") -> Chunk:
        return Chunk(
            content=content,
            metadata=ChunkMetadata(
                chunk_index=index,
                source_file=source_file,
                file_type="txt",
                section=f"Characters 0-{len(content)}",
                tokens=math.ceil(len(content) / 4),
            ),
        )

    return _make


@pytest.fixture
def basis() -> Callable[..., list[float]]:
    """Builder for axis-aligned unit vectors."""
    return basis_vector


@pytest.fixture
def similar_vector() -> Callable[..., list[float]]:
    """Builder for unit vectors at a given similarity to basis(0)."""
    return vector_with_similarity


@pytest.fixture
def backend_factory() -> type[ScriptedEmbeddingBackend]:
    """Scripted embedding backend class."""
    return ScriptedEmbeddingBackend


@pytest.fixture
def flaky_store_factory() -> type[FlakyIndexStore]:
    """In-memory store class whose chosen insert calls fail."""
    return FlakyIndexStore
