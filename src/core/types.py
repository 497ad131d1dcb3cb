"""Core data types for the retrieval-augmented answering pipeline.

This module defines the shared data structures used across
the entire RAG pipeline: from knowledge snapshot to answer.

Design Principles:
    - Serializable: All types can be converted to dict/JSON
    - Immutable: Core types use frozen dataclasses
    - Extensible: metadata allows incremental field addition
"""

import hashlib
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Document:
    """Raw knowledge document.

    Owned by the knowledge-base loader; read-only to the pipeline.

    Attributes:
        id: Unique identifier for the document
        text: Raw text content of the document
        metadata: Document-level metadata (title, topics, last_updated, ...)
    """
    id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "text": self.text,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            text=data["text"],
            metadata=data.get("metadata", {}),
        )


@dataclass(frozen=True)
class KnowledgeBase:
    """Versioned, immutable knowledge snapshot.

    A new corpus produces a new snapshot; snapshots are never mutated.
    The version is a content hash, so two snapshots with the same text
    share an index generation.

    Attributes:
        document: The knowledge document
        version: Content hash of the document text
    """
    document: Document
    version: str

    @classmethod
    def from_text(
        cls,
        text: str,
        doc_id: str = "knowledge_base",
        metadata: dict[str, Any] | None = None,
    ) -> "KnowledgeBase":
        """Build a snapshot from raw text."""
        return cls.from_document(Document(id=doc_id, text=text, metadata=metadata or {}))

    @classmethod
    def from_document(cls, document: Document) -> "KnowledgeBase":
        """Build a snapshot from a loaded Document."""
        digest = hashlib.sha256(document.text.encode("utf-8")).hexdigest()[:16]
        return cls(document=document, version=digest)

    @property
    def text(self) -> str:
        return self.document.text


@dataclass(frozen=True)
class Chunk:
    """Contiguous span of a Document's text; the unit of retrieval.

    Identity is (source_doc_id, sequence_index). The text always equals
    document.text[start_offset:start_offset + len(text)], and its first
    ``overlap`` characters repeat the tail of the previous chunk.

    Attributes:
        id: Stable identifier derived from doc id, index and content
        text: Text content of this chunk
        source_doc_id: ID of the Document this chunk belongs to
        start_offset: Character offset where the chunk starts in the document
        sequence_index: Position of the chunk within its document (0-based)
        overlap: Number of leading characters carried over from the previous chunk
        metadata: Chunk-level metadata (inherits from Document + chunk info)
    """
    id: str
    text: str
    source_doc_id: str
    start_offset: int
    sequence_index: int
    overlap: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def end_offset(self) -> int:
        """Character offset just past the end of the chunk."""
        return self.start_offset + len(self.text)

    @property
    def new_text(self) -> str:
        """The chunk text without its leading overlap."""
        return self.text[self.overlap:]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "text": self.text,
            "source_doc_id": self.source_doc_id,
            "start_offset": self.start_offset,
            "sequence_index": self.sequence_index,
            "overlap": self.overlap,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Chunk":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            text=data["text"],
            source_doc_id=data["source_doc_id"],
            start_offset=data["start_offset"],
            sequence_index=data["sequence_index"],
            overlap=data.get("overlap", 0),
            metadata=data.get("metadata", {}),
        )


@dataclass(frozen=True)
class IndexEntry:
    """A Chunk paired with its embedding vector.

    Attributes:
        chunk: The indexed chunk
        vector: Embedding of chunk.text (never mutated after creation)
    """
    chunk: Chunk
    vector: tuple[float, ...]

    @property
    def key(self) -> tuple[str, int]:
        """Identity of the entry: (source_doc_id, sequence_index)."""
        return (self.chunk.source_doc_id, self.chunk.sequence_index)


@dataclass(frozen=True)
class RetrievalResult:
    """An IndexEntry scored against one query.

    Attributes:
        entry: The matched index entry
        score: Cosine similarity to the query vector
        rank: 1-based rank, 1 = most relevant
    """
    entry: IndexEntry
    score: float
    rank: int

    @property
    def chunk(self) -> Chunk:
        return self.entry.chunk

    @property
    def text(self) -> str:
        return self.entry.chunk.text


@dataclass(frozen=True)
class AnswerResult:
    """Final answer for one query.

    Attributes:
        answer: Trimmed answer text
        query: The query that was answered
        metadata: Optional run metadata (counts, lengths, timing, config echo)
    """
    answer: str
    query: str
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the caller-facing response shape."""
        result: dict[str, Any] = {"answer": self.answer}
        if self.metadata is not None:
            result["metadata"] = self.metadata
        return result


@dataclass(frozen=True)
class BatchOutcome:
    """Per-query outcome of a batch run.

    Attributes:
        query: The query for this slot
        index: 1-based position of the query in the batch
        status: 'success' or 'error'
        answer: Answer text on success
        error: User-safe error message on failure
    """
    query: Any
    index: int
    status: str
    answer: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "query": self.query,
            "index": self.index,
            "status": self.status,
            "answer": self.answer,
            "error": self.error,
        }
