"""
Exception hierarchy for the RAG subsystem.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class RAGException(Exception):
    """Base exception for all RAG subsystem errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging

        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(RAGException):
    """Raised when a provider is unknown or its credentials are missing."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize configuration error.

        Args:
            message: Error message
            provider: Provider key that is misconfigured
            details: Additional context
        """
        details = details or {}
        if provider:
            details["provider"] = provider
        super().__init__(message, details)


class ValidationError(RAGException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class DocumentProcessingError(RAGException):
    """Base exception for document indexing errors."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize document processing error.

        Args:
            message: Error message
            document_id: ID of the document that failed
            details: Additional context
        """
        details = details or {}
        if document_id:
            details["document_id"] = document_id
        super().__init__(message, details)


class EmptyContentError(DocumentProcessingError):
    """Raised when a document yields no chunk above the size floor."""

    pass


class EmbeddingError(DocumentProcessingError):
    """Raised when embedding generation fails."""

    pass


class EmbeddingProviderError(EmbeddingError):
    """Raised when a single provider request fails (status, body or transport)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize provider error.

        Args:
            message: Error message
            status_code: HTTP status returned by the provider, if any
            details: Additional context
        """
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        self.status_code = status_code
        super().__init__(message, details=details)


class DimensionMismatchError(RAGException):
    """Raised when vector lengths disagree with each other or with the provider."""

    def __init__(self, expected: int, actual: int, details: dict[str, Any] | None = None) -> None:
        """
        Initialize dimension mismatch error.

        Args:
            expected: Expected vector length
            actual: Observed vector length
            details: Additional context
        """
        details = details or {}
        details.update({"expected": expected, "actual": actual})
        self.expected = expected
        self.actual = actual
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}", details)


class VectorStoreError(RAGException):
    """Raised when index store operations fail."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize vector store error.

        Args:
            message: Error message
            operation: Operation that failed (insert, query, delete, count)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class RetrievalError(RAGException):
    """Raised when retrieval operations fail."""

    def __init__(
        self,
        message: str,
        collection_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize retrieval error.

        Args:
            message: Error message
            collection_id: Collection the search was scoped to
            details: Additional context
        """
        details = details or {}
        if collection_id:
            details["collection_id"] = collection_id
        super().__init__(message, details)
