"""
Application services layer.

Exports:
  - RAGService: Indexing and retrieval orchestration
  - ChatService: Grounded generation boundary
"""

from backend.application.services.chat_service import ChatService
from backend.application.services.rag_service import RAGService

__all__ = ["ChatService", "RAGService"]
