"""
Task modules for the indexing pipeline.

Exports: ChunkingTask, FormatHint, EmbeddingTask, VectorStoreTask
"""

from .chunking_task import ChunkingTask, FormatHint, estimate_tokens
from .embedding_task import EmbeddingTask, cosine_similarity, validate_embedding
from .vector_store_task import VectorStoreTask

__all__ = [
    "ChunkingTask",
    "FormatHint",
    "estimate_tokens",
    "EmbeddingTask",
    "cosine_similarity",
    "validate_embedding",
    "VectorStoreTask",
]
