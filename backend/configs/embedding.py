"""
Embedding provider configuration settings.

Manages credentials, endpoint and pacing for the remote embedding provider.

Dependencies: pydantic, pydantic_settings
System role: Embedding client configuration for indexing and queries
"""

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingSettings(BaseSettings):
    """Embedding provider configuration (Google Gemini)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="EMBEDDING_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    provider: str = Field(
        default="gemini-embedding-004",
        description="Key into the embedding provider registry",
    )
    gemini_api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("EMBEDDING_GEMINI_API_KEY", "GEMINI_API_KEY"),
        description="Google Gemini API key (empty means not configured)",
    )
    api_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Gemini REST API",
    )

    batch_size: int = Field(default=100, ge=1, description="Chunks per embedding batch")
    batch_pause_seconds: float = Field(
        default=0.1,
        ge=0.0,
        description="Pause between successive batches (rate limiting)",
    )
    item_pause_seconds: float = Field(
        default=0.05,
        ge=0.0,
        description="Pause between successive requests inside a batch",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout applied to every provider request",
    )
    rate_limit_retries: int = Field(
        default=3,
        ge=0,
        description="Extra attempts for a request rejected with HTTP 429",
    )
