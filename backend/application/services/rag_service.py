"""
RAG service orchestrator.

Coordinates indexing (chunk, embed, save), re-indexing, similarity search
and context assembly for generation. Also exposes availability checks,
collection statistics and previews that perform no network calls.

Dependencies: backend.core.document_processing, backend.boundary.vdb
System role: Retrieval orchestration layer
"""

import asyncio
import logging
import math
import time
from typing import Callable

from backend.boundary.vdb.index_store import IndexStore
from backend.core.document_processing.tasks.chunking_task import ChunkingTask, FormatHint
from backend.core.document_processing.tasks.embedding_task import EmbeddingTask
from backend.core.document_processing.tasks.vector_store_task import VectorStoreTask
from backend.core.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    EmptyContentError,
    RAGException,
    RetrievalError,
    ValidationError,
    VectorStoreError,
)
from backend.models.rag import (
    AIContext,
    CollectionStats,
    IndexingPreview,
    IndexingProgress,
    IndexingState,
    IndexingStats,
    RAGAvailability,
    RAGConfig,
    RAGSearchResult,
    RAGSearchStats,
)
from backend.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[IndexingProgress], None]

# Observed throughput used by the preview estimate
_PREVIEW_CHUNKS_PER_BATCH = 50
_PREVIEW_SECONDS_PER_BATCH = 2


def estimate_processing_time(chunk_count: int) -> str:
    """Human-readable indexing duration estimate (about 2 s per 50 chunks)."""
    seconds = math.ceil(chunk_count / _PREVIEW_CHUNKS_PER_BATCH) * _PREVIEW_SECONDS_PER_BATCH
    if seconds < 60:
        return f"{seconds} seconds"
    return f"{math.ceil(seconds / 60)} minutes"


class RAGService:
    """
    Retrieval orchestrator.

    Indexing is not transactional: a document is searchable batch by batch
    as records land, and re-indexing deletes before recreating. Concurrent
    indexing of the same document must be serialized by the caller.
    """

    def __init__(
        self,
        chunker: ChunkingTask,
        embedder: EmbeddingTask,
        store: IndexStore,
        insert_batch_size: int = 50,
        default_config: RAGConfig | None = None,
    ) -> None:
        """
        Initialize RAG service.

        Args:
            chunker: Chunking stage
            embedder: Embedding stage (also embeds queries)
            store: Index store holding embedding records
            insert_batch_size: Records per insert call
            default_config: Configuration used when a call passes none
        """
        self._chunker = chunker
        self._embedder = embedder
        self._store = store
        self._saver = VectorStoreTask(store, batch_size=insert_batch_size)
        self._default_config = default_config or RAGConfig()
        self._background_tasks: set[asyncio.Task] = set()

    @property
    def default_config(self) -> RAGConfig:
        return self._default_config

    def _resolve_config(self, config: RAGConfig | None) -> RAGConfig:
        config = config or self._default_config
        if config.embedding_provider != self._embedder.provider.key:
            raise ConfigurationError(
                f"Embedding provider {config.embedding_provider} is not configured "
                f"(active: {self._embedder.provider.key})",
                provider=config.embedding_provider,
            )
        return config

    @staticmethod
    def _emit(
        on_progress: ProgressCallback | None,
        document_id: str,
        state: IndexingState,
        progress: int,
        message: str,
    ) -> None:
        if on_progress is not None:
            on_progress(
                IndexingProgress(
                    state=state,
                    progress=progress,
                    message=message,
                    document_id=document_id,
                )
            )

    async def index_document(
        self,
        collection_id: str,
        document_id: str,
        text: str,
        source_name: str,
        format_hint: "str | FormatHint | None" = None,
        config: RAGConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> IndexingStats:
        """
        Chunk, embed and store one document.

        Flow:
        1. Chunk the text (zero chunks is fatal)
        2. Embed chunks in batches (item failures become zero vectors)
        3. Insert records for embedded chunks in batches (batch failures are recorded)
        4. Return stats; total_embeddings counts inserted records only

        Args:
            collection_id: Owning collection
            document_id: Document identifier
            text: Extracted document text
            source_name: Original file name
            format_hint: File type used to pick the chunking strategy
            config: Optional per-call configuration
            on_progress: Optional observer of state transitions

        Returns:
            IndexingStats: Run statistics with non-fatal errors listed

        Raises:
            EmptyContentError: If no chunk survives chunking
            ConfigurationError: If the embedding provider is not configured
        """
        started = time.perf_counter()
        self._emit(on_progress, document_id, IndexingState.STARTING, 0, "Starting indexing")

        try:
            config = self._resolve_config(config)

            self._emit(on_progress, document_id, IndexingState.CHUNKING, 10, "Chunking content")
            chunks = self._chunker.chunk(text, format_hint, source_name, config.chunking_config)
            if not chunks:
                raise EmptyContentError(
                    f"No chunks produced from {source_name}",
                    document_id=document_id,
                )

            self._emit(
                on_progress,
                document_id,
                IndexingState.EMBEDDING,
                30,
                f"Generating embeddings for {len(chunks)} chunks",
            )
            embedded = await self._embedder.embed_chunks(chunks)

            self._emit(on_progress, document_id, IndexingState.SAVING, 70, "Saving embeddings")
            # Zero-vector placeholders of failed items are not persisted
            kept = [(chunk, vector) for chunk, vector in zip(chunks, embedded.vectors) if any(vector)]
            inserted = await self._saver.save(
                collection_id,
                document_id,
                [chunk for chunk, _ in kept],
                [vector for _, vector in kept],
            )

        except RAGException as e:
            self._emit(on_progress, document_id, IndexingState.ERROR, 0, e.message)
            logger.error(
                f"{__name__}:index_document - Indexing failed",
                extra={"document_id": document_id, "error": str(e)},
            )
            raise
        except Exception as e:
            self._emit(on_progress, document_id, IndexingState.ERROR, 0, f"Indexing failed: {e}")
            log_exception_with_context(
                logger,
                f"{__name__}:index_document - Unexpected indexing failure",
                e,
                collection_id=collection_id,
                document_id=document_id,
            )
            raise

        stats = IndexingStats(
            total_chunks=len(chunks),
            total_embeddings=len(inserted.inserted_ids),
            total_tokens=embedded.stats.total_tokens,
            processing_time_ms=(time.perf_counter() - started) * 1000,
            cost_estimate=embedded.stats.cost_estimate,
            errors=embedded.stats.errors + inserted.errors,
        )

        self._emit(
            on_progress,
            document_id,
            IndexingState.COMPLETED,
            100,
            f"Indexed {stats.total_embeddings} of {stats.total_chunks} chunks",
        )
        logger.info(
            f"{__name__}:index_document - Document indexed",
            extra={
                "collection_id": collection_id,
                "document_id": document_id,
                "chunks": stats.total_chunks,
                "embeddings": stats.total_embeddings,
                "errors": len(stats.errors),
            },
        )
        return stats

    async def reindex_document(
        self,
        collection_id: str,
        document_id: str,
        text: str,
        source_name: str,
        format_hint: "str | FormatHint | None" = None,
        config: RAGConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> IndexingStats:
        """
        Delete a document's embeddings, then index it again.

        Not atomic: if indexing fails after the delete, the document has no
        embeddings until the call is retried.
        """
        deleted = await self._store.delete_by_document(document_id)
        logger.info(
            f"{__name__}:reindex_document - Removed previous embeddings",
            extra={"document_id": document_id, "deleted": deleted},
        )
        return await self.index_document(
            collection_id,
            document_id,
            text,
            source_name,
            format_hint=format_hint,
            config=config,
            on_progress=on_progress,
        )

    def schedule_indexing(
        self,
        collection_id: str,
        document_id: str,
        text: str,
        source_name: str,
        format_hint: "str | FormatHint | None" = None,
        config: RAGConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> asyncio.Task:
        """
        Start indexing in the background and return immediately.

        Failures are logged, not raised; await the returned task to observe
        the stats. Must be called from a running event loop.
        """
        task = asyncio.create_task(
            self._index_in_background(
                collection_id, document_id, text, source_name, format_hint, config, on_progress
            ),
            name=f"index-{document_id}",
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _index_in_background(
        self,
        collection_id: str,
        document_id: str,
        text: str,
        source_name: str,
        format_hint: "str | FormatHint | None",
        config: RAGConfig | None,
        on_progress: ProgressCallback | None,
    ) -> IndexingStats | None:
        try:
            return await self.index_document(
                collection_id,
                document_id,
                text,
                source_name,
                format_hint=format_hint,
                config=config,
                on_progress=on_progress,
            )
        except Exception as e:
            log_exception_with_context(
                logger,
                f"{__name__}:_index_in_background - Background indexing failed",
                e,
                collection_id=collection_id,
                document_id=document_id,
            )
            return None

    async def search_similar(
        self,
        collection_id: str,
        query: str,
        config: RAGConfig | None = None,
    ) -> RAGSearchResult:
        """
        Find the collection's chunks most similar to the query.

        Zero matches is a valid result.

        Raises:
            ValidationError: If the query is blank
            ConfigurationError: If the embedding provider is not configured
            EmbeddingProviderError: If the query cannot be embedded
            RetrievalError: If the store query fails
        """
        config = self._resolve_config(config)
        if not query or not query.strip():
            raise ValidationError("Query cannot be empty", field="query")

        query_vector = await self._embedder.embed_query(query)
        try:
            matches = await self._store.query_nearest(
                collection_id,
                query_vector,
                config.similarity_threshold,
                config.max_matches,
            )
        except (VectorStoreError, DimensionMismatchError) as e:
            raise RetrievalError(
                f"Search failed: {e.message}",
                collection_id=collection_id,
            ) from e
        if not config.include_metadata:
            matches = [match.model_copy(update={"metadata": {}}) for match in matches]

        logger.debug(
            f"{__name__}:search_similar - {len(matches)} matches",
            extra={"collection_id": collection_id, "threshold": config.similarity_threshold},
        )
        return RAGSearchResult(
            matches=matches,
            query=query,
            threshold=config.similarity_threshold,
            total_matches=len(matches),
        )

    async def search_for_ai(
        self,
        collection_id: str,
        query: str,
        config: RAGConfig | None = None,
    ) -> AIContext:
        """
        Search and format matches as a numbered context block with citations.

        ``context`` is empty when nothing matched; callers treat that as
        "no grounding available".
        """
        started = time.perf_counter()
        result = await self.search_similar(collection_id, query, config)

        context = "\n\n".join(
            f"[Source {number}] {match.content}"
            for number, match in enumerate(result.matches, start=1)
        )
        sources = []
        for number, match in enumerate(result.matches, start=1):
            source_file = match.metadata.get("source_file") or "Unknown file"
            section = match.metadata.get("section")
            sources.append(f"Source {number}: {source_file}" + (f" ({section})" if section else ""))

        stats = RAGSearchStats(
            query_time_ms=(time.perf_counter() - started) * 1000,
            total_embeddings_searched=result.total_matches,
            matches_found=len(result.matches),
            similarity_scores=[match.similarity for match in result.matches],
        )
        logger.info(
            f"{__name__}:search_for_ai - Context prepared",
            extra={"context_chars": len(context), "sources": len(sources)},
        )
        return AIContext(context=context, sources=sources, search_result=result, stats=stats)

    async def has_embeddings(self, collection_id: str) -> bool:
        """True if the collection has at least one record; False on any error."""
        try:
            return await self._store.count_by_collection(collection_id) > 0
        except Exception as e:
            logger.warning(
                f"{__name__}:has_embeddings - Count failed, assuming no embeddings",
                extra={"collection_id": collection_id, "error": str(e)},
            )
            return False

    async def check_availability(self, collection_id: str) -> RAGAvailability:
        """Report whether retrieval can be used for the collection."""
        provider_configured = self._embedder.is_configured()
        has_embeddings = await self.has_embeddings(collection_id)
        return RAGAvailability(
            available=provider_configured and has_embeddings,
            has_embeddings=has_embeddings,
            provider_configured=provider_configured,
            collection_id=collection_id,
        )

    async def get_collection_stats(self, collection_id: str) -> CollectionStats:
        """Per-document aggregates; an empty result when the store is unreachable."""
        try:
            return await self._store.stats_by_collection(collection_id)
        except Exception as e:
            logger.warning(
                f"{__name__}:get_collection_stats - Stats lookup failed",
                extra={"collection_id": collection_id, "error": str(e)},
            )
            return CollectionStats()

    async def remove_document_embeddings(self, document_id: str) -> int:
        """Delete a document's records; returns 0 if it had none."""
        deleted = await self._store.delete_by_document(document_id)
        logger.info(
            f"{__name__}:remove_document_embeddings - Deleted {deleted} embeddings",
            extra={"document_id": document_id},
        )
        return deleted

    async def remove_collection_embeddings(self, collection_id: str) -> int:
        """Delete every record of a collection; returns 0 if it had none."""
        deleted = await self._store.delete_by_collection(collection_id)
        logger.info(
            f"{__name__}:remove_collection_embeddings - Deleted {deleted} embeddings",
            extra={"collection_id": collection_id},
        )
        return deleted

    async def aclose(self) -> None:
        """Close the embedding transport and the index store."""
        try:
            await self._embedder.aclose()
        finally:
            await self._store.aclose()

    def preview_indexing(
        self,
        text: str,
        source_name: str,
        format_hint: "str | FormatHint | None" = None,
        config: RAGConfig | None = None,
    ) -> IndexingPreview:
        """
        Chunk and price a document without any network call.

        Args:
            text: Extracted document text
            source_name: Original file name
            format_hint: File type used to pick the chunking strategy
            config: Optional per-call configuration

        Returns:
            IndexingPreview: First three chunks plus totals and estimates
        """
        config = config or self._default_config
        chunks = self._chunker.chunk(text, format_hint, source_name, config.chunking_config)
        estimate = self._embedder.estimate_cost(chunks)
        return IndexingPreview(
            chunks_preview=chunks[:3],
            total_chunks=len(chunks),
            estimated_tokens=estimate.total_tokens,
            estimated_cost=estimate.cost_estimate,
            processing_time_estimate=estimate_processing_time(len(chunks)),
            config_used=config.chunking_config,
        )
