"""
Chat domain models.

Conversation messages and the reply returned by the generation boundary.

Dependencies: pydantic
System role: Generation boundary contracts
"""

from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """Single message of a conversation history."""

    role: Literal["user", "assistant"] = Field(description="Message role: 'user' or 'assistant'")
    content: str = Field(description="Message content")


class RAGContextInfo(BaseModel):
    """Retrieval details attached to a grounded reply."""

    sources: list[str] = Field(default_factory=list)
    matches_found: int = 0
    similarity_scores: list[float] = Field(default_factory=list)
    query_time_ms: float = 0.0


class ChatReply(BaseModel):
    """Model reply; rag_context is None when the prompt was not augmented."""

    content: str
    model: str
    rag_context: RAGContextInfo | None = None
