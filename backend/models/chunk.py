"""
Chunk domain model.

Represents a bounded segment of one document's text plus the settings
used to produce it. Chunks are immutable once created.

Dependencies: pydantic
System role: Document chunk data structure
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChunkMetadata(BaseModel):
    """Positional and provenance metadata for a chunk."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int = Field(ge=0, description="Ordinal position within the document")
    source_file: str = Field(description="Originating file name")
    file_type: str = Field(description="Format tag (csv, json, txt, pdf, ...)")
    section: str | None = Field(default=None, description="Human-readable range label")
    line_start: int | None = Field(default=None, description="First line or row covered")
    line_end: int | None = Field(default=None, description="Last line or row covered")
    page_number: int | None = Field(default=None, description="Page number if known")
    columns: list[str] | None = Field(default=None, description="Header columns for tabular chunks")
    tokens: int = Field(ge=0, description="Estimated token count")


class Chunk(BaseModel):
    """Document chunk model."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(min_length=1, description="Chunk text content")
    metadata: ChunkMetadata = Field(description="Chunk metadata (index, section, tokens)")


class ChunkingConfig(BaseModel):
    """Chunking parameters shared by every strategy."""

    chunk_size: int = Field(default=1000, gt=0, description="Target maximum characters per chunk")
    chunk_overlap: int = Field(default=200, ge=0, description="Characters carried into the next chunk")
    min_chunk_size: int = Field(default=100, ge=0, description="Chunks shorter than this are dropped")
    respect_sentences: bool = Field(
        default=True,
        description="Start overlap tails after a sentence boundary when possible",
    )
    respect_paragraphs: bool = Field(
        default=True,
        description="Split free text on blank lines (paragraphs) instead of single lines",
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> "ChunkingConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        if self.min_chunk_size > self.chunk_size:
            raise ValueError("min_chunk_size cannot exceed chunk_size")
        return self


class ChunkingPreview(BaseModel):
    """Chunking summary used before committing to an indexing run."""

    total_chunks: int
    estimated_tokens: int
    sample_chunks: list[Chunk] = Field(default_factory=list)
    config_used: ChunkingConfig
