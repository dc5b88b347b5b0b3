"""
Test suite for EmbeddingTask and vector utilities.

Uses a scripted in-process backend; no network calls are made.

System role: Verification of the embedding stage
"""

import math
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from backend.boundary.embeddings.gemini_client import GeminiEmbeddingClient
from backend.configs.embedding import EmbeddingSettings
from backend.core.document_processing.tasks.embedding_task import (
    EmbeddingTask,
    cosine_similarity,
    validate_embedding,
)
from backend.core.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingProviderError,
)


class TestEmbeddingTaskInit:
    """Test suite for EmbeddingTask construction."""

    def test_init_should_reject_unknown_provider(self) -> None:
        """Test an unregistered provider key fails fast."""
        with pytest.raises(ConfigurationError, match="Unknown embedding provider"):
            EmbeddingTask(EmbeddingSettings(provider="does-not-exist", gemini_api_key="k"))

    def test_is_configured_should_be_false_without_key(
        self, unconfigured_embedding_settings: EmbeddingSettings
    ) -> None:
        """Test no credentials means not configured."""
        assert EmbeddingTask(unconfigured_embedding_settings).is_configured() is False

    def test_is_configured_should_be_true_with_key(self, embedding_settings: EmbeddingSettings) -> None:
        """Test a key builds the default HTTP backend."""
        task = EmbeddingTask(embedding_settings)

        assert task.is_configured() is True
        assert task.spec.dimensions == 768
        assert task.spec.model == "text-embedding-004"


class TestEmbeddingTaskEmbedChunks:
    """Test suite for EmbeddingTask.embed_chunks."""

    @pytest.mark.asyncio
    async def test_embed_chunks_should_fail_fast_without_credentials(
        self, unconfigured_embedding_settings: EmbeddingSettings, make_chunk
    ) -> None:
        """Test missing credentials raise before any request."""
        task = EmbeddingTask(unconfigured_embedding_settings)

        with pytest.raises(ConfigurationError, match="not configured"):
            await task.embed_chunks([make_chunk("some content here")])

    @pytest.mark.asyncio
    async def test_embed_chunks_should_keep_alignment_when_item_fails(
        self, embedding_settings: EmbeddingSettings, backend_factory, basis, make_chunk
    ) -> None:
        """Test a failed second item becomes a zero vector and one error."""
        # Arrange
        chunks = [make_chunk(f"chunk number {i}", index=i) for i in range(3)]
        backend = backend_factory(default=basis(3), failures={"chunk number 1"})
        task = EmbeddingTask(embedding_settings, backend=backend)

        # Act
        result = await task.embed_chunks(chunks)

        # Assert
        assert len(result.vectors) == 3
        assert result.vectors[0] == basis(3)
        assert result.vectors[1] == [0.0] * 768
        assert result.vectors[2] == basis(3)
        assert len(result.stats.errors) == 1
        assert result.stats.errors[0].startswith("Batch 1: chunk 1:")
        assert result.stats.total_chunks == 3
        assert result.stats.total_embeddings == 2

    @pytest.mark.asyncio
    async def test_embed_chunks_should_report_batch_ordinal(self, backend_factory, make_chunk) -> None:
        """Test the error string names the batch the item belonged to."""
        # Arrange
        settings = EmbeddingSettings(
            gemini_api_key="k", batch_size=2, batch_pause_seconds=0, item_pause_seconds=0
        )
        chunks = [make_chunk(f"chunk number {i}", index=i) for i in range(3)]
        task = EmbeddingTask(settings, backend=backend_factory(failures={"chunk number 2"}))

        # Act
        result = await task.embed_chunks(chunks)

        # Assert
        assert result.stats.errors == ["Batch 2: chunk 2: Gemini API error: 500 internal"]

    @pytest.mark.asyncio
    async def test_embed_chunks_should_replace_wrong_length_vector(
        self, embedding_settings: EmbeddingSettings, backend_factory, make_chunk
    ) -> None:
        """Test a vector of the wrong dimension is treated as a failed item."""
        task = EmbeddingTask(embedding_settings, backend=backend_factory(default=[1.0, 2.0]))

        result = await task.embed_chunks([make_chunk("short vector please")])

        assert result.vectors == [[0.0] * 768]
        assert "dimension mismatch" in result.stats.errors[0]

    @pytest.mark.asyncio
    async def test_embed_chunks_should_replace_non_finite_and_zero_vectors(
        self, embedding_settings: EmbeddingSettings, backend_factory, basis, make_chunk
    ) -> None:
        """Test unusable vectors fail only their own item."""
        # Arrange
        chunks = [make_chunk(f"chunk number {i}", index=i) for i in range(3)]
        backend = backend_factory(
            vectors={
                "chunk number 0": [math.nan] * 768,
                "chunk number 1": [0.0] * 768,
            },
            default=basis(2),
        )
        task = EmbeddingTask(embedding_settings, backend=backend)

        # Act
        result = await task.embed_chunks(chunks)

        # Assert
        assert result.vectors[0] == [0.0] * 768
        assert result.vectors[1] == [0.0] * 768
        assert result.vectors[2] == basis(2)
        assert result.stats.total_embeddings == 1
        assert result.stats.errors[0].startswith("Batch 1: chunk 0: Invalid embedding")
        assert "non-finite" in result.stats.errors[0]
        assert "zero norm" in result.stats.errors[1]

    @pytest.mark.asyncio
    async def test_embed_chunks_should_isolate_nan_response_from_gemini(
        self, embedding_settings: EmbeddingSettings, make_chunk
    ) -> None:
        """Test a NaN body from the HTTP client becomes a placeholder plus an error."""
        # Arrange
        def handler(request: httpx.Request) -> httpx.Response:
            values = ", ".join(["NaN"] * 768)
            body = '{"embedding": {"values": [%s]}}' % values
            return httpx.Response(200, content=body.encode(), headers={"content-type": "application/json"})

        client = GeminiEmbeddingClient(
            api_key="test-key",
            model="text-embedding-004",
            base_url="https://gemini.test/v1beta",
            transport=httpx.MockTransport(handler),
        )
        task = EmbeddingTask(embedding_settings, backend=client)

        # Act
        result = await task.embed_chunks([make_chunk("some content here")])
        await client.aclose()

        # Assert
        assert result.vectors == [[0.0] * 768]
        assert result.stats.total_embeddings == 0
        assert len(result.stats.errors) == 1

    @pytest.mark.asyncio
    async def test_embed_chunks_should_pause_between_items_and_batches(
        self, backend_factory, make_chunk
    ) -> None:
        """Test item pauses inside a batch and a batch pause between batches."""
        # Arrange
        settings = EmbeddingSettings(
            gemini_api_key="k", batch_size=2, batch_pause_seconds=0.1, item_pause_seconds=0.05
        )
        chunks = [make_chunk(f"chunk number {i}", index=i) for i in range(3)]
        task = EmbeddingTask(settings, backend=backend_factory())

        # Act
        with patch(
            "backend.core.document_processing.tasks.embedding_task.asyncio.sleep",
            new_callable=AsyncMock,
        ) as mock_sleep:
            await task.embed_chunks(chunks)

        # Assert
        assert [call.args[0] for call in mock_sleep.await_args_list] == [0.05, 0.1]

    @pytest.mark.asyncio
    async def test_embed_chunks_should_price_all_items(
        self, embedding_settings: EmbeddingSettings, backend_factory, make_chunk
    ) -> None:
        """Test cost uses every chunk's token estimate, failed ones included."""
        # Arrange
        chunks = [make_chunk("a" * 400, index=0), make_chunk("b" * 400, index=1)]
        task = EmbeddingTask(embedding_settings, backend=backend_factory(failures={"b" * 400}))

        # Act
        result = await task.embed_chunks(chunks)

        # Assert
        assert result.stats.total_tokens == 200
        assert result.stats.cost_estimate == pytest.approx(200 / 1000 * 0.00001)

    @pytest.mark.asyncio
    async def test_embed_chunks_should_handle_empty_input(
        self, embedding_settings: EmbeddingSettings, backend_factory
    ) -> None:
        """Test no chunks yields no vectors and no errors."""
        backend = backend_factory()
        result = await EmbeddingTask(embedding_settings, backend=backend).embed_chunks([])

        assert result.vectors == []
        assert result.stats.errors == []
        assert backend.calls == []


class TestEmbeddingTaskEmbedQuery:
    """Test suite for EmbeddingTask.embed_query."""

    @pytest.mark.asyncio
    async def test_embed_query_should_return_vector(
        self, embedding_settings: EmbeddingSettings, backend_factory, basis
    ) -> None:
        """Test the provider vector is returned unchanged."""
        task = EmbeddingTask(embedding_settings, backend=backend_factory(vectors={"q": basis(5)}))

        assert await task.embed_query("q") == basis(5)

    @pytest.mark.asyncio
    async def test_embed_query_should_propagate_failure(
        self, embedding_settings: EmbeddingSettings, backend_factory
    ) -> None:
        """Test a failed query embedding raises instead of using a placeholder."""
        task = EmbeddingTask(embedding_settings, backend=backend_factory(failures={"q"}))

        with pytest.raises(EmbeddingProviderError):
            await task.embed_query("q")

    @pytest.mark.asyncio
    async def test_embed_query_should_reject_wrong_dimension(
        self, embedding_settings: EmbeddingSettings, backend_factory
    ) -> None:
        """Test a wrong-length query vector raises DimensionMismatchError."""
        task = EmbeddingTask(embedding_settings, backend=backend_factory(default=[0.5] * 10))

        with pytest.raises(DimensionMismatchError):
            await task.embed_query("q")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "vector",
        [[0.0] * 768, [math.nan] * 768, [math.inf] + [0.0] * 767],
        ids=["zero", "nan", "inf"],
    )
    async def test_embed_query_should_reject_unusable_vector(
        self, embedding_settings: EmbeddingSettings, backend_factory, vector: list[float]
    ) -> None:
        """Test a zero-norm or non-finite query vector raises instead of searching."""
        task = EmbeddingTask(embedding_settings, backend=backend_factory(default=vector))

        with pytest.raises(EmbeddingProviderError, match="Invalid embedding"):
            await task.embed_query("q")

    @pytest.mark.asyncio
    async def test_test_connection_should_report_success_and_failure(
        self, embedding_settings: EmbeddingSettings, backend_factory
    ) -> None:
        """Test connection probe never raises."""
        ok = await EmbeddingTask(embedding_settings, backend=backend_factory()).test_connection()
        failed = await EmbeddingTask(
            embedding_settings, backend=backend_factory(failures={"test connection"})
        ).test_connection()

        assert ok["success"] is True
        assert ok["provider"] == "Google Gemini"
        assert failed["success"] is False
        assert "500" in failed["message"]


class TestVectorUtilities:
    """Test suite for cosine_similarity, validate_embedding and estimate_cost."""

    def test_cosine_similarity_should_score_identical_and_orthogonal(self) -> None:
        """Test similarity bounds for simple vectors."""
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_cosine_similarity_should_return_zero_for_zero_vector(self) -> None:
        """Test zero-norm input yields 0 instead of dividing by zero."""
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_cosine_similarity_should_reject_length_mismatch(self) -> None:
        """Test unequal lengths raise DimensionMismatchError."""
        with pytest.raises(DimensionMismatchError, match="expected 2, got 3"):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

    def test_validate_embedding_should_flag_each_problem(self, basis) -> None:
        """Test dimension, finiteness and zero-norm checks."""
        assert validate_embedding(basis(0), 768).is_valid
        assert not validate_embedding([1.0, 0.0], 768).is_valid
        assert not validate_embedding([math.nan] + [0.0] * 767, 768).is_valid
        assert not validate_embedding([0.0] * 768, 768).is_valid

    def test_estimate_cost_should_not_call_backend(
        self, embedding_settings: EmbeddingSettings, backend_factory, make_chunk
    ) -> None:
        """Test estimation is offline and sums token estimates."""
        backend = backend_factory()
        task = EmbeddingTask(embedding_settings, backend=backend)

        estimate = task.estimate_cost([make_chunk("a" * 4000), make_chunk("b" * 4000)])

        assert estimate.total_tokens == 2000
        assert estimate.cost_estimate == pytest.approx(0.00002)
        assert estimate.provider == "Google Gemini"
        assert backend.calls == []
