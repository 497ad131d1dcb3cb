"""Recursive Character Text Splitter implementation.

This module provides a recursive character-based text splitter that tries
separators from coarsest to finest (paragraphs, lines, sentences, words,
characters) and then merges the pieces into overlapping chunks.

Design Principles:
    - Recursive splitting: Try multiple separators in order
    - Lossless: Separators stay attached to their piece, nothing is stripped,
      so dropping each chunk's overlap and concatenating gives back the input
    - Bounded: No chunk is longer than chunk_size; runs without any
      separator are sliced by character as a last resort
"""

from typing import Any

from libs.splitter.base_splitter import (
    BaseSplitter,
    SplitResult,
    SplitterConfigurationError,
)
from core.trace.trace_context import TraceContext
from observability.logger import get_logger

logger = get_logger(__name__)


class RecursiveSplitter(BaseSplitter):
    """Recursive Character Text Splitter.

    Attributes:
        chunk_size: Maximum size of each chunk in characters
        chunk_overlap: Characters of the previous chunk repeated at the
            start of the next one
        separators: List of separators to try (in order of priority)
    """

    DEFAULT_CHUNK_SIZE = 1000
    DEFAULT_CHUNK_OVERLAP = 200

    def __init__(
        self,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
        separators: list[str] | tuple[str, ...] | None = None,
    ) -> None:
        """Initialize the RecursiveSplitter.

        Args:
            chunk_size: Maximum chunk size in characters. Defaults to 1000.
            chunk_overlap: Overlap between chunks. Defaults to 200.
            separators: Custom list of separators (in priority order).

        Raises:
            SplitterConfigurationError: If configuration is invalid.
        """
        chunk_size = chunk_size if chunk_size is not None else self.DEFAULT_CHUNK_SIZE
        chunk_overlap = (
            chunk_overlap if chunk_overlap is not None else self.DEFAULT_CHUNK_OVERLAP
        )
        self._validate(chunk_size, chunk_overlap)

        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._separators = list(separators) if separators else self._default_separators()

    @property
    def provider_name(self) -> str:
        """Return the name of this provider.

        Returns:
            Provider identifier: 'recursive'
        """
        return "recursive"

    @staticmethod
    def _validate(chunk_size: int, chunk_overlap: int) -> None:
        if chunk_size <= 0:
            raise SplitterConfigurationError(
                f"chunk_size must be positive, got {chunk_size}",
                provider="recursive"
            )
        if chunk_overlap < 0:
            raise SplitterConfigurationError(
                f"chunk_overlap must be non-negative, got {chunk_overlap}",
                provider="recursive"
            )
        if chunk_overlap >= chunk_size:
            raise SplitterConfigurationError(
                f"chunk_overlap ({chunk_overlap}) must be less than "
                f"chunk_size ({chunk_size})",
                provider="recursive"
            )

    def _default_separators(self) -> list[str]:
        """Get default separators ordered by priority.

        Returns:
            Paragraph break, line break, sentence end, space, and the empty
            string meaning "split anywhere".
        """
        return [
            "\n\n",  # Paragraphs
            "\n",  # Lines
            ". ",  # Sentence endings
            " ",  # Words
            "",  # Characters (fallback)
        ]

    @staticmethod
    def _split_keep_separator(text: str, separator: str) -> list[str]:
        """Split text on separator, attaching the separator to the left piece.

        The pieces concatenate back to text exactly.
        """
        parts = text.split(separator)
        pieces = [part + separator for part in parts[:-1]] + [parts[-1]]
        return [piece for piece in pieces if piece]

    @staticmethod
    def _slice(text: str, chunk_size: int) -> list[str]:
        """Last resort: fixed-width character slices."""
        return [text[i:i + chunk_size] for i in range(0, len(text), chunk_size)]

    def _split_pieces(
        self,
        text: str,
        separators: list[str],
        chunk_size: int,
    ) -> list[str]:
        """Recursively split text into pieces no longer than chunk_size.

        Args:
            text: Text to split.
            separators: Remaining separators, coarsest first.
            chunk_size: Maximum piece size.

        Returns:
            Ordered pieces whose concatenation equals text.
        """
        if len(text) <= chunk_size:
            return [text]

        # Use the coarsest separator that actually occurs in the text
        for position, separator in enumerate(separators):
            if separator == "":
                return self._slice(text, chunk_size)
            if separator in text:
                finer = separators[position + 1:]
                break
        else:
            return self._slice(text, chunk_size)

        pieces: list[str] = []
        for piece in self._split_keep_separator(text, separator):
            if len(piece) <= chunk_size:
                pieces.append(piece)
            else:
                pieces.extend(self._split_pieces(piece, finer, chunk_size))
        return pieces

    @staticmethod
    def _merge_pieces(
        text: str,
        pieces: list[str],
        chunk_size: int,
        chunk_overlap: int,
    ) -> tuple[list[str], list[int], list[int]]:
        """Merge adjacent pieces into chunks with character overlap.

        Each chunk after the first starts with up to chunk_overlap characters
        taken from the end of the previous chunk. The overlap shrinks when the
        chunk's first piece would otherwise push it past chunk_size.

        Returns:
            Tuple of (chunks, offsets, overlaps).
        """
        chunks: list[str] = []
        offsets: list[int] = []
        overlaps: list[int] = []

        position = 0
        index = 0
        while index < len(pieces):
            if chunks:
                overlap = min(chunk_overlap, len(chunks[-1]))
                overlap = min(overlap, chunk_size - len(pieces[index]))
            else:
                overlap = 0

            start = position - overlap
            length = overlap
            while index < len(pieces) and length + len(pieces[index]) <= chunk_size:
                length += len(pieces[index])
                position += len(pieces[index])
                index += 1

            chunks.append(text[start:position])
            offsets.append(start)
            overlaps.append(overlap)

        return chunks, offsets, overlaps

    def split_text(
        self,
        text: str,
        trace: TraceContext | None = None,
        **kwargs: Any
    ) -> SplitResult:
        """Split a single text into chunks.

        Args:
            text: The text to split.
            trace: Tracing context for observability.
            **kwargs: Additional arguments.
                - chunk_size: Override chunk size
                - chunk_overlap: Override chunk overlap
                - separators: Override separators

        Returns:
            SplitResult with chunks, offsets and overlaps. Empty input
            yields an empty result.

        Raises:
            SplitterConfigurationError: If an override is invalid.
        """
        if not text:
            return SplitResult(chunks=[], metadata={"chunk_count": 0})

        chunk_size = kwargs.get("chunk_size")
        if chunk_size is None:
            chunk_size = self._chunk_size
        chunk_overlap = kwargs.get("chunk_overlap")
        if chunk_overlap is None:
            chunk_overlap = self._chunk_overlap
        separators = list(kwargs.get("separators") or self._separators)
        self._validate(chunk_size, chunk_overlap)

        logger.info(
            f"Recursive splitter: text_length={len(text)}, "
            f"chunk_size={chunk_size}, overlap={chunk_overlap}"
        )

        pieces = self._split_pieces(text, separators, chunk_size)
        chunks, offsets, overlaps = self._merge_pieces(
            text, pieces, chunk_size, chunk_overlap
        )

        logger.info(f"Recursive splitter: produced {len(chunks)} chunks")

        if trace:
            trace.record_stage(
                "text_splitting",
                {
                    "provider": self.provider_name,
                    "text_length": len(text),
                    "chunk_size": chunk_size,
                    "chunk_overlap": chunk_overlap,
                    "chunk_count": len(chunks),
                }
            )

        return SplitResult(
            chunks=chunks,
            offsets=offsets,
            overlaps=overlaps,
            metadata={
                "chunk_count": len(chunks),
                "chunk_size": chunk_size,
                "chunk_overlap": chunk_overlap,
            }
        )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"RecursiveSplitter("
            f"provider={self.provider_name}, "
            f"chunk_size={self._chunk_size}, "
            f"chunk_overlap={self._chunk_overlap})"
        )
