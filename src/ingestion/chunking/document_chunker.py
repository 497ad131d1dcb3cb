"""Document Chunker - Adapter between libs.splitter and the answering pipeline.

This module provides the DocumentChunker class that transforms Document objects
into Chunk objects carrying offsets, overlap and stable IDs.

Design Principles:
    - Adapter Pattern: Wraps libs.splitter for pipeline use
    - Deterministic: Chunk IDs are stable across runs
    - Metadata Inheritance: Chunks inherit document metadata
    - Traceable: Chunks reference their parent document and offsets

Core Responsibilities:
    1. Generate stable Chunk IDs: `{doc_id}_{index:04d}_{hash_8chars}`
    2. Inherit Document.metadata to each Chunk
    3. Record sequence_index, start_offset and overlap
    4. Convert the splitter's SplitResult to List[Chunk]
"""

import hashlib
from typing import Any

from core.settings import RetrievalConfig
from core.trace.trace_context import TraceContext
from core.types import Chunk, Document
from libs.splitter.base_splitter import BaseSplitter
from libs.splitter.recursive_splitter import RecursiveSplitter
from observability.logger import get_logger

logger = get_logger(__name__)


class DocumentChunker:
    """Adapter that converts Document objects to Chunk objects.

    Example:
        >>> chunker = DocumentChunker()
        >>> doc = Document(id="doc1", text="Long text...", metadata={})
        >>> chunks = chunker.split_document(doc, RetrievalConfig(chunk_size=500))
    """

    def __init__(self, splitter: BaseSplitter | None = None) -> None:
        """Initialize the DocumentChunker.

        Args:
            splitter: Optional splitter instance. Defaults to RecursiveSplitter;
                size, overlap and separators come from the config passed to
                split_document().
        """
        self._splitter = splitter or RecursiveSplitter()
        logger.debug(f"DocumentChunker using splitter: {self._splitter.provider_name}")

    @property
    def splitter(self) -> BaseSplitter:
        """Get the underlying splitter instance."""
        return self._splitter

    def split_document(
        self,
        document: Document,
        config: RetrievalConfig | None = None,
        trace: TraceContext | None = None,
    ) -> list[Chunk]:
        """Split a Document into Chunks with metadata and IDs.

        Args:
            document: The Document to split.
            config: Chunking parameters (chunk_size, chunk_overlap, separators).
            trace: Optional trace context.

        Returns:
            Chunks in document order. Empty text gives an empty list.

        Raises:
            SplitterConfigurationError: If the chunking parameters are invalid.
        """
        config = config or RetrievalConfig()
        logger.info(f"Chunking document: {document.id}")

        result = self._splitter.split_text(
            document.text,
            trace=trace,
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
            separators=list(config.separators),
        )

        chunks: list[Chunk] = []
        for index, (text_chunk, offset, overlap) in enumerate(
            zip(result.chunks, result.offsets, result.overlaps)
        ):
            chunks.append(
                Chunk(
                    id=self._generate_chunk_id(document.id, index, text_chunk),
                    text=text_chunk,
                    source_doc_id=document.id,
                    start_offset=offset,
                    sequence_index=index,
                    overlap=overlap,
                    metadata=self._inherit_metadata(document, index),
                )
            )

        logger.info(f"Created {len(chunks)} chunks for document {document.id}")
        return chunks

    def _generate_chunk_id(
        self,
        doc_id: str,
        index: int,
        text_chunk: str,
    ) -> str:
        """Generate a deterministic chunk ID.

        Format: `{doc_id}_{index:04d}_{hash_8chars}`
        """
        content_hash = hashlib.md5(text_chunk.encode("utf-8")).hexdigest()[:8]
        return f"{doc_id}_{index:04d}_{content_hash}"

    def _inherit_metadata(
        self,
        document: Document,
        chunk_index: int,
    ) -> dict[str, Any]:
        """Copy document metadata and add chunk-specific fields."""
        inherited: dict[str, Any] = dict(document.metadata)
        inherited["chunk_index"] = chunk_index
        inherited["source_ref"] = document.id
        return inherited
