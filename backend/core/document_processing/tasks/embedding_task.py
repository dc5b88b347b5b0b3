"""
Embedding generation task.

Turns chunks into vectors through the configured embedding provider, one
request per chunk, in paced batches. Per-item failures become zero-vector
placeholders so the output stays index-aligned with the input chunks.

Dependencies: backend.boundary.embeddings, backend.configs.embedding
System role: Second stage of the indexing pipeline and query embedder
"""

import asyncio
import logging
import math
import time
from typing import Protocol, Sequence

from backend.boundary.embeddings.gemini_client import GeminiEmbeddingClient
from backend.boundary.embeddings.providers import EmbeddingProvider, ProviderSpec
from backend.configs.embedding import EmbeddingSettings
from backend.core.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingError,
    EmbeddingProviderError,
)
from backend.core.similarity import cosine_similarity
from backend.models.chunk import Chunk
from backend.models.embedding import CostEstimate, EmbeddingBatchResult, ValidationReport
from backend.models.rag import IndexingStats

logger = logging.getLogger(__name__)

__all__ = ["EmbeddingBackend", "EmbeddingTask", "cosine_similarity", "validate_embedding"]


class EmbeddingBackend(Protocol):
    """Single-item embedding transport."""

    async def embed_one(self, text: str) -> list[float]: ...


def validate_embedding(vector: Sequence[float], expected_dims: int) -> ValidationReport:
    """Check dimensionality, finiteness and non-zero norm of a vector."""
    issues: list[str] = []
    if len(vector) != expected_dims:
        issues.append(f"Expected {expected_dims} dimensions, got {len(vector)}")

    numeric = all(
        isinstance(value, (int, float)) and not isinstance(value, bool) for value in vector
    )
    if not numeric:
        issues.append("Vector contains non-numeric values")
    elif not all(math.isfinite(value) for value in vector):
        issues.append("Vector contains non-finite values")
    elif not any(value != 0 for value in vector):
        issues.append("Vector has zero norm")

    return ValidationReport(is_valid=not issues, issues=issues)


class EmbeddingTask:
    """Generate embeddings for chunks and queries."""

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        backend: EmbeddingBackend | None = None,
    ) -> None:
        """
        Initialize embedding task.

        Args:
            settings: Embedding settings (defaults read from the environment)
            backend: Optional transport; built from settings when omitted
                and credentials are present

        Raises:
            ConfigurationError: When the configured provider key is unknown
        """
        self._settings = settings or EmbeddingSettings()
        self._provider = EmbeddingProvider.resolve(self._settings.provider)
        self._backend = backend
        if self._backend is None and self._settings.gemini_api_key.get_secret_value():
            self._backend = GeminiEmbeddingClient(
                api_key=self._settings.gemini_api_key.get_secret_value(),
                model=self._provider.spec.model,
                base_url=self._settings.api_base_url,
                timeout_seconds=self._settings.request_timeout_seconds,
                rate_limit_retries=self._settings.rate_limit_retries,
            )

    @property
    def provider(self) -> EmbeddingProvider:
        return self._provider

    @property
    def spec(self) -> ProviderSpec:
        return self._provider.spec

    def is_configured(self) -> bool:
        """True when a transport with credentials is available."""
        return self._backend is not None

    def _require_backend(self) -> EmbeddingBackend:
        if self._backend is None:
            raise ConfigurationError(
                f"{self.spec.name} API key not configured",
                provider=self._provider.key,
            )
        return self._backend

    def _checked(self, vector: list[float]) -> list[float]:
        """Reject wrong-length, non-finite and zero-norm provider output."""
        if len(vector) != self.spec.dimensions:
            raise DimensionMismatchError(expected=self.spec.dimensions, actual=len(vector))
        report = validate_embedding(vector, self.spec.dimensions)
        if not report.is_valid:
            raise EmbeddingProviderError(f"Invalid embedding: {'; '.join(report.issues)}")
        return vector

    async def embed_chunks(self, chunks: list[Chunk]) -> EmbeddingBatchResult:
        """
        Embed chunks in paced batches.

        ``vectors[i]`` always corresponds to ``chunks[i]``. A failed item is
        replaced with a zero vector and reported in ``stats.errors``.

        Args:
            chunks: Chunks to embed

        Returns:
            EmbeddingBatchResult: Index-aligned vectors plus run statistics

        Raises:
            ConfigurationError: When no credentials are configured
        """
        backend = self._require_backend()
        started = time.perf_counter()
        batch_size = self._settings.batch_size
        dimensions = self.spec.dimensions

        vectors: list[list[float]] = []
        errors: list[str] = []

        for batch_start in range(0, len(chunks), batch_size):
            if batch_start > 0:
                await asyncio.sleep(self._settings.batch_pause_seconds)

            batch_number = batch_start // batch_size + 1
            batch = chunks[batch_start:batch_start + batch_size]
            logger.debug(
                f"{__name__}:embed_chunks - Embedding batch {batch_number}",
                extra={"batch_size": len(batch), "provider": self._provider.key},
            )

            for position, chunk in enumerate(batch):
                if position > 0:
                    await asyncio.sleep(self._settings.item_pause_seconds)

                try:
                    vector = self._checked(await backend.embed_one(chunk.content))
                except (EmbeddingError, DimensionMismatchError) as e:
                    errors.append(
                        f"Batch {batch_number}: chunk {chunk.metadata.chunk_index}: {e.message}"
                    )
                    logger.warning(
                        f"{__name__}:embed_chunks - Item failed, using zero vector",
                        extra={"batch": batch_number, "chunk_index": chunk.metadata.chunk_index},
                    )
                    vector = [0.0] * dimensions
                vectors.append(vector)

        estimate = self.estimate_cost(chunks)
        stats = IndexingStats(
            total_chunks=len(chunks),
            total_embeddings=len(chunks) - len(errors),
            total_tokens=estimate.total_tokens,
            processing_time_ms=(time.perf_counter() - started) * 1000,
            cost_estimate=estimate.cost_estimate,
            errors=errors,
        )

        logger.info(
            f"{__name__}:embed_chunks - Embedded {stats.total_embeddings}/{len(chunks)} chunks",
            extra={"errors": len(errors), "provider": self._provider.key},
        )
        return EmbeddingBatchResult(vectors=vectors, stats=stats)

    async def embed_query(self, text: str) -> list[float]:
        """
        Embed a single query text.

        Raises:
            ConfigurationError: When no credentials are configured
            EmbeddingProviderError: When the request fails or the vector is unusable
            DimensionMismatchError: When the provider returns a wrong-length vector
        """
        backend = self._require_backend()
        return self._checked(await backend.embed_one(text))

    def estimate_cost(self, chunks: list[Chunk]) -> CostEstimate:
        """Approximate token count and price for embedding chunks (no network)."""
        total_tokens = sum(chunk.metadata.tokens for chunk in chunks)
        return CostEstimate(
            total_tokens=total_tokens,
            cost_estimate=total_tokens / 1000 * self.spec.cost_per_1k_tokens,
            provider=self.spec.name,
        )

    async def test_connection(self) -> dict:
        """
        Embed a probe text to check credentials and connectivity.

        Never raises; failures are reported in the returned dict.
        """
        try:
            vector = await self.embed_query("test connection")
        except (ConfigurationError, EmbeddingProviderError, DimensionMismatchError) as e:
            return {"success": False, "message": e.message, "provider": self.spec.name}
        return {
            "success": True,
            "message": f"Connected to {self.spec.name} ({len(vector)} dimensions)",
            "provider": self.spec.name,
        }

    async def aclose(self) -> None:
        """Release the transport when it owns network resources."""
        if isinstance(self._backend, GeminiEmbeddingClient):
            await self._backend.aclose()
