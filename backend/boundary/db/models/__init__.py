"""
Database models package.

Exports:
  - EmbeddingModel: Embedding row with pgvector column

Dependencies: sqlalchemy, pgvector, backend.boundary.db.base
System role: Database model definitions for the embedding index
"""

from backend.boundary.db.models.embedding_model import EMBEDDING_DIMENSIONS, EmbeddingModel

__all__ = ["EMBEDDING_DIMENSIONS", "EmbeddingModel"]
