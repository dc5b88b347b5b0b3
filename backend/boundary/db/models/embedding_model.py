"""
Embedding ORM model.

One row per stored chunk: its text, metadata and pgvector embedding,
scoped to a collection and a source document.

Dependencies: sqlalchemy, pgvector, backend.boundary.db.base
System role: Persistent embedding index (pgvector store)
"""

from pgvector.sqlalchemy import Vector
from sqlalchemy import Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from backend.boundary.db.base import Base, CreatedAtMixin, UUIDMixin
from backend.boundary.embeddings.providers import EmbeddingProvider

EMBEDDING_DIMENSIONS = EmbeddingProvider.GEMINI_EMBEDDING_004.spec.dimensions


class EmbeddingModel(Base, UUIDMixin, CreatedAtMixin):
    """
    Embedding ORM model.

    Rows are append-only: re-indexing deletes a document's rows and
    inserts new ones.

    Attributes:
        id: UUID primary key (auto-generated)
        collection_id: Owning collection, every query filters on it
        document_id: Source document, used for delete-by-document
        content: Chunk text
        chunk_metadata: Chunk metadata (stored in the "metadata" column)
        embedding: Vector of EMBEDDING_DIMENSIONS floats
        created_at: Insert timestamp (UTC)
    """

    __tablename__ = "embeddings"

    collection_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        doc="Owning collection identifier",
    )

    document_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        doc="Source document identifier",
    )

    content: Mapped[str] = mapped_column(Text, nullable=False, doc="Chunk text")

    chunk_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
        doc="Chunk metadata (source file, section, lines, tokens)",
    )

    embedding: Mapped[list[float]] = mapped_column(
        Vector(EMBEDDING_DIMENSIONS),
        nullable=False,
        doc="Embedding vector",
    )

    __table_args__ = (
        Index(
            "ix_embeddings_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<EmbeddingModel(id={self.id}, collection_id={self.collection_id}, "
            f"document_id={self.document_id})>"
        )
