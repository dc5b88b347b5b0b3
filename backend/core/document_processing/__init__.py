"""
Document processing pipeline for indexing.

Chunking, embedding and saving stages used by the RAG service.

Dependencies: httpx, tenacity, pydantic
System role: Document indexing pipeline stages
"""

from .tasks import ChunkingTask, EmbeddingTask, FormatHint, VectorStoreTask

__all__ = [
    "ChunkingTask",
    "EmbeddingTask",
    "FormatHint",
    "VectorStoreTask",
]
