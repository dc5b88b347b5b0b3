"""Embedding provider boundary: registry and HTTP adapters."""

from backend.boundary.embeddings.gemini_client import GeminiEmbeddingClient
from backend.boundary.embeddings.providers import EmbeddingProvider, ProviderSpec

__all__ = ["EmbeddingProvider", "GeminiEmbeddingClient", "ProviderSpec"]
