"""
Embedding provider registry.

Static catalogue of supported embedding providers with their model name,
vector dimension, token limit and pricing.

Dependencies: backend.core.exceptions
System role: Single source of truth for embedding dimensions and cost
"""

from dataclasses import dataclass
from enum import Enum

from backend.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of one embedding provider."""

    name: str
    model: str
    dimensions: int
    max_tokens: int
    cost_per_1k_tokens: float


class EmbeddingProvider(Enum):
    """Registry of supported embedding providers keyed by provider id."""

    GEMINI_EMBEDDING_004 = (
        "gemini-embedding-004",
        ProviderSpec(
            name="Google Gemini",
            model="text-embedding-004",
            dimensions=768,
            max_tokens=2048,
            cost_per_1k_tokens=0.00001,
        ),
    )

    def __init__(self, key: str, spec: ProviderSpec) -> None:
        self.key = key
        self.spec = spec

    @classmethod
    def resolve(cls, key: str) -> "EmbeddingProvider":
        """
        Look up a provider by its registry key.

        Raises:
            ConfigurationError: If the key is not registered
        """
        for provider in cls:
            if provider.key == key:
                return provider
        raise ConfigurationError(
            f"Unknown embedding provider: {key}",
            provider=key,
            details={"available": [provider.key for provider in cls]},
        )
