"""
Vector store configuration settings.

Selects the index store implementation and holds retrieval defaults.

Dependencies: pydantic, pydantic_settings
System role: Vector index configuration for RAG retrieval
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class VectorStoreSettings(BaseSettings):
    """Vector store configuration (in-memory for dev, pgvector for prod)."""

    store_type: str = Field(
        default="memory",
        description="Index store type: 'memory' for local dev, 'pgvector' for production",
    )
    insert_batch_size: int = Field(
        default=50,
        ge=1,
        description="Records per insert request (store request-size limit)",
    )

    similarity_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum similarity score for retrieval (0.0-1.0)",
    )
    max_matches: int = Field(default=5, ge=1, le=100, description="Maximum matches per query")

    class Config:
        """Pydantic config."""

        env_prefix = "VECTOR_STORE_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
