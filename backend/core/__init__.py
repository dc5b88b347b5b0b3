"""
Core business logic module.

Contains the exception hierarchy, vector math and the document processing
pipeline stages. Pipeline classes are imported from their own modules.
"""

from backend.core.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    DocumentProcessingError,
    EmbeddingError,
    EmbeddingProviderError,
    EmptyContentError,
    RAGException,
    RetrievalError,
    ValidationError,
    VectorStoreError,
)

__all__ = [
    "RAGException",
    "ConfigurationError",
    "ValidationError",
    "DocumentProcessingError",
    "EmptyContentError",
    "EmbeddingError",
    "EmbeddingProviderError",
    "DimensionMismatchError",
    "VectorStoreError",
    "RetrievalError",
]
