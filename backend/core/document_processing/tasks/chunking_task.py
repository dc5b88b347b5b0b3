"""
Format-aware text chunking task.

Splits one document's text into overlapping, bounded-size chunks using a
strategy chosen from the format hint: tabular rows, structured records or
free text. Free text is the fallback for every format.

Dependencies: backend.models.chunk
System role: First stage of the indexing pipeline (pure, no I/O)
"""

import csv
import json
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from backend.models.chunk import Chunk, ChunkingConfig, ChunkingPreview, ChunkMetadata
from backend.models.embedding import ValidationReport

logger = logging.getLogger(__name__)

_PARAGRAPH_SEPARATOR = re.compile(r"\n\s*\n")
_LINE_SEPARATOR = re.compile(r"\n")
_SENTENCE_END = re.compile(r"[.!?]\s")

CANDIDATE_DELIMITERS = (",", ";", "\t")
MIN_ROWS_PER_CHUNK = 5

# Limits used by validate_chunk
_MIN_VALID_LENGTH = 10
_MAX_VALID_LENGTH = 10_000
_MAX_VALID_TOKENS = 8_000


def estimate_tokens(text: str) -> int:
    """Approximate token count (1 token ~ 4 characters)."""
    return math.ceil(len(text) / 4)


class FormatHint(str, Enum):
    """Chunking strategy variants, valued by their file-type tag."""

    TABULAR = "csv"
    STRUCTURED_RECORD = "json"
    FREE_TEXT = "txt"

    @classmethod
    def from_value(cls, value: "str | FormatHint | None") -> "FormatHint":
        """
        Resolve a caller-supplied format string.

        Unknown or empty values resolve to FREE_TEXT.
        """
        if isinstance(value, FormatHint):
            return value
        normalized = (value or "").strip().lower().lstrip(".")
        if normalized in ("csv", "tsv"):
            return cls.TABULAR
        if normalized == "json":
            return cls.STRUCTURED_RECORD
        return cls.FREE_TEXT

    @classmethod
    def from_filename(cls, filename: str) -> "FormatHint":
        """Resolve the strategy from a file name's extension."""
        return cls.from_value(Path(filename).suffix)


@dataclass
class _Segment:
    """A piece of text and its [start, end) offsets in the source."""

    text: str
    start: int
    end: int


class ChunkingTask:
    """Split document text into chunks with a format-specific strategy."""

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        """
        Initialize chunking task with default configuration.

        Args:
            config: Default chunking configuration (per-call config overrides it)
        """
        self._config = config or ChunkingConfig()
        self._strategies: dict[FormatHint, Callable[..., list[Chunk]]] = {
            FormatHint.TABULAR: self._chunk_tabular,
            FormatHint.STRUCTURED_RECORD: self._chunk_structured,
            FormatHint.FREE_TEXT: self._chunk_free_text,
        }

    @property
    def config(self) -> ChunkingConfig:
        """Default chunking configuration."""
        return self._config

    def chunk(
        self,
        content: str,
        format_hint: "str | FormatHint | None",
        source_name: str,
        config: ChunkingConfig | None = None,
    ) -> list[Chunk]:
        """
        Split content into ordered chunks.

        Deterministic: identical inputs always produce identical chunks.
        Chunks shorter than ``min_chunk_size`` are dropped.

        Args:
            content: Raw document text
            format_hint: File type ("csv", "json", "txt", "pdf", ...) or FormatHint
            source_name: Originating file name, copied into metadata
            config: Optional per-call configuration

        Returns:
            list[Chunk]: Chunks with chunk_index starting at 0
        """
        config = config or self._config
        if not content or not content.strip():
            return []

        strategy = FormatHint.from_value(format_hint)
        file_type = self._file_type_tag(format_hint, strategy)
        chunks = self._strategies[strategy](content, source_name, file_type, config)

        logger.debug(
            f"{__name__}:chunk - {len(chunks)} chunks from {source_name}",
            extra={"strategy": strategy.value, "content_length": len(content)},
        )
        return chunks

    def preview(
        self,
        content: str,
        format_hint: "str | FormatHint | None",
        source_name: str,
        config: ChunkingConfig | None = None,
    ) -> ChunkingPreview:
        """Chunk content and summarize the first three chunks."""
        config = config or self._config
        chunks = self.chunk(content, format_hint, source_name, config)
        return ChunkingPreview(
            total_chunks=len(chunks),
            estimated_tokens=sum(chunk.metadata.tokens for chunk in chunks),
            sample_chunks=chunks[:3],
            config_used=config,
        )

    @staticmethod
    def validate_chunk(chunk: Chunk) -> ValidationReport:
        """
        Check a chunk against the hard content limits.

        Args:
            chunk: Chunk to inspect

        Returns:
            ValidationReport: is_valid plus every issue found
        """
        issues: list[str] = []
        if not chunk.content.strip():
            issues.append("Empty content")
        if len(chunk.content) < _MIN_VALID_LENGTH:
            issues.append(f"Content too short (< {_MIN_VALID_LENGTH} characters)")
        if len(chunk.content) > _MAX_VALID_LENGTH:
            issues.append(f"Content too long (> {_MAX_VALID_LENGTH} characters)")
        if chunk.metadata.tokens > _MAX_VALID_TOKENS:
            issues.append(f"Too many estimated tokens (> {_MAX_VALID_TOKENS})")
        return ValidationReport(is_valid=not issues, issues=issues)

    @staticmethod
    def detect_delimiter(header: str) -> str:
        """Pick the candidate delimiter that yields the most header columns."""
        best, best_count = CANDIDATE_DELIMITERS[0], 0
        for delimiter in CANDIDATE_DELIMITERS:
            count = len(next(csv.reader([header], delimiter=delimiter), []))
            if count > best_count:
                best, best_count = delimiter, count
        return best

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _chunk_tabular(
        self,
        content: str,
        source_name: str,
        file_type: str,
        config: ChunkingConfig,
    ) -> list[Chunk]:
        """Group data rows under a repeated header line."""
        lines = [line for line in content.splitlines() if line.strip()]
        if len(lines) < 2:
            return []

        header, rows = lines[0], lines[1:]
        delimiter = self.detect_delimiter(header)
        columns = [column.strip() for column in next(csv.reader([header], delimiter=delimiter))]

        average_line_length = sum(len(line) + 1 for line in lines) / len(lines)
        rows_per_chunk = max(int(config.chunk_size // average_line_length), MIN_ROWS_PER_CHUNK)

        def render(start: int, end: int) -> str:
            return header + "\n" + "\n".join(rows[start:end])

        chunks: list[Chunk] = []
        for start, end, text in self._group_ranges(len(rows), rows_per_chunk, render, config):
            chunks.append(
                self._make_chunk(
                    text,
                    index=len(chunks),
                    source_name=source_name,
                    file_type=file_type,
                    section=f"Rows {start + 1}-{end}",
                    line_start=start + 1,
                    line_end=end,
                    columns=columns,
                )
            )
        return chunks

    def _chunk_structured(
        self,
        content: str,
        source_name: str,
        file_type: str,
        config: ChunkingConfig,
    ) -> list[Chunk]:
        """Group consecutive array items; other shapes fall back to free text."""
        try:
            data = json.loads(content)
        except ValueError:
            logger.debug(f"{__name__}:_chunk_structured - invalid JSON in {source_name}, using free text")
            return self._chunk_free_text(content, source_name, file_type, config)

        if not isinstance(data, list):
            serialized = json.dumps(data, indent=2, ensure_ascii=False)
            return self._chunk_free_text(serialized, source_name, file_type, config)
        if not data:
            return []

        average_item_length = len(content) / len(data)
        items_per_chunk = max(int(config.chunk_size // average_item_length), 1)

        def render(start: int, end: int) -> str:
            return json.dumps(data[start:end], indent=2, ensure_ascii=False)

        chunks: list[Chunk] = []
        for start, end, text in self._group_ranges(len(data), items_per_chunk, render, config):
            chunks.append(
                self._make_chunk(
                    text,
                    index=len(chunks),
                    source_name=source_name,
                    file_type=file_type,
                    section=f"Items {start}-{end - 1}",
                )
            )
        return chunks

    def _chunk_free_text(
        self,
        content: str,
        source_name: str,
        file_type: str,
        config: ChunkingConfig,
    ) -> list[Chunk]:
        """
        Accumulate paragraphs into chunks with an overlap tail.

        The size limit is soft: a paragraph larger than chunk_size is kept
        whole in its chunk.
        """
        separator = _PARAGRAPH_SEPARATOR if config.respect_paragraphs else _LINE_SEPARATOR
        joiner = "\n\n" if config.respect_paragraphs else "\n"

        chunks: list[Chunk] = []
        parts: list[_Segment] = []

        for unit in self._split_units(content, separator):
            running = joiner.join(part.text for part in parts)
            if (
                parts
                and len(running) + len(unit.text) > config.chunk_size
                and len(running) >= config.min_chunk_size
            ):
                chunks.append(self._text_chunk(running, parts, content, len(chunks), source_name, file_type))
                parts = self._overlap_parts(parts, running, joiner, config)
            parts.append(unit)

        running = joiner.join(part.text for part in parts)
        if parts and len(running.strip()) >= config.min_chunk_size:
            chunks.append(self._text_chunk(running, parts, content, len(chunks), source_name, file_type))

        return chunks

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _file_type_tag(format_hint: "str | FormatHint | None", strategy: FormatHint) -> str:
        if isinstance(format_hint, FormatHint) or not format_hint or not format_hint.strip():
            return strategy.value
        return format_hint.strip().lower().lstrip(".")

    @staticmethod
    def _group_ranges(
        count: int,
        per_chunk: int,
        render: Callable[[int, int], str],
        config: ChunkingConfig,
    ) -> list[tuple[int, int, str]]:
        """
        Split ``count`` items into contiguous [start, end) groups.

        Groups grow past ``per_chunk`` until they reach min_chunk_size, and a
        final group below the floor is merged into the previous one, so the
        groups always cover every item without gaps.
        """
        groups: list[tuple[int, int, str]] = []
        start = 0
        while start < count:
            end = min(start + per_chunk, count)
            text = render(start, end)
            while end < count and len(text.strip()) < config.min_chunk_size:
                end += 1
                text = render(start, end)
            groups.append((start, end, text))
            start = end

        if len(groups) > 1 and len(groups[-1][2].strip()) < config.min_chunk_size:
            first, _, _ = groups[-2]
            groups[-2:] = [(first, count, render(first, count))]

        return [group for group in groups if len(group[2].strip()) >= config.min_chunk_size]

    @staticmethod
    def _split_units(content: str, separator: re.Pattern) -> list[_Segment]:
        """Split content on separator, keeping stripped non-empty units with source offsets."""
        units: list[_Segment] = []
        position = 0
        bounds = [(match.start(), match.end()) for match in separator.finditer(content)]
        bounds.append((len(content), len(content)))
        for sep_start, sep_end in bounds:
            raw = content[position:sep_start]
            stripped = raw.strip()
            if stripped:
                offset = position + len(raw) - len(raw.lstrip())
                units.append(_Segment(stripped, offset, offset + len(stripped)))
            position = sep_end
        return units

    @staticmethod
    def _overlap_tail(text: str, overlap: int, respect_sentences: bool) -> str:
        """Return the end of text to repeat at the start of the next chunk."""
        if overlap <= 0:
            return ""
        if overlap >= len(text):
            return text

        window = text[-overlap:]
        if respect_sentences:
            match = _SENTENCE_END.search(window)
            if match and match.start() > 0:
                return window[match.end():]
        return window

    def _overlap_parts(
        self,
        parts: list[_Segment],
        running: str,
        joiner: str,
        config: ChunkingConfig,
    ) -> list[_Segment]:
        tail = self._overlap_tail(running, config.chunk_overlap, config.respect_sentences).strip()
        if not tail:
            return []
        tail_offset = len(running) - len(tail)
        return [_Segment(tail, self._source_position(parts, joiner, tail_offset), parts[-1].end)]

    @staticmethod
    def _source_position(parts: list[_Segment], joiner: str, offset: int) -> int:
        """Map an offset in the joined running text back to a source offset."""
        cursor = 0
        for part in parts:
            part_end = cursor + len(part.text)
            if offset < part_end:
                return min(part.start + max(offset - cursor, 0), part.end)
            cursor = part_end + len(joiner)
        return parts[-1].end

    def _text_chunk(
        self,
        running: str,
        parts: list[_Segment],
        source: str,
        index: int,
        source_name: str,
        file_type: str,
    ) -> Chunk:
        start, end = parts[0].start, parts[-1].end
        return self._make_chunk(
            running.strip(),
            index=index,
            source_name=source_name,
            file_type=file_type,
            section=f"Characters {start}-{end}",
            line_start=source.count("\n", 0, start) + 1,
            line_end=source.count("\n", 0, max(end - 1, start)) + 1,
        )

    @staticmethod
    def _make_chunk(
        content: str,
        index: int,
        source_name: str,
        file_type: str,
        section: str,
        line_start: int | None = None,
        line_end: int | None = None,
        columns: list[str] | None = None,
    ) -> Chunk:
        return Chunk(
            content=content,
            metadata=ChunkMetadata(
                chunk_index=index,
                source_file=source_name,
                file_type=file_type,
                section=section,
                line_start=line_start,
                line_end=line_end,
                columns=columns,
                tokens=estimate_tokens(content),
            ),
        )
