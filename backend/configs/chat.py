"""
Chat generation configuration settings.

Settings for the chat-completion model used after retrieval.

Dependencies: pydantic_settings
System role: Generation boundary configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChatSettings(BaseSettings):
    """Chat model configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CHAT_",
        case_sensitive=False,
        extra="ignore",
    )

    model: str = Field(default="gemini-2.0-flash", description="Chat model identifier")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    max_output_tokens: int = Field(default=1000, ge=1, description="Maximum tokens per reply")
    history_window: int = Field(
        default=10,
        ge=0,
        description="Number of previous messages sent with each request",
    )
    rag_enabled: bool = Field(default=True, description="Augment prompts with retrieved context")
