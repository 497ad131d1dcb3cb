"""Dense Encoder - Generate index entries for chunks.

This module provides the DenseEncoder class that pairs each chunk with
its embedding vector, ready to be loaded into a vector index.

Design Principles:
    - Batch Processing: Chunks are embedded in batches of batch_size
    - Order-Preserving: Entry i always carries the vector of chunk i
    - Traceable: Supports optional trace context for observability

Example:
    >>> encoder = DenseEncoder(FakeEmbedding(), batch_size=100)
    >>> entries = encoder.encode(chunks)
"""

from typing import Any

from core.errors import RagError, wrap_service_failure
from core.trace.trace_context import TraceContext
from core.types import Chunk, IndexEntry
from libs.embedding.base_embedding import BaseEmbedding
from observability.logger import get_logger

logger = get_logger(__name__)


class DenseEncoder:
    """Dense embedding encoder for document chunks.

    Attributes:
        embedding: The embedding model used for encoding
        batch_size: Maximum chunks per embedding call
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        batch_size: int = 100,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._embedding = embedding
        self._batch_size = batch_size

        logger.debug(
            f"DenseEncoder initialized: provider={embedding.provider_name}, "
            f"batch_size={batch_size}"
        )

    @property
    def embedding(self) -> BaseEmbedding:
        return self._embedding

    @property
    def provider_name(self) -> str:
        return self._embedding.provider_name

    def encode(
        self,
        chunks: list[Chunk],
        trace: TraceContext | None = None,
        **kwargs: Any,
    ) -> list[IndexEntry]:
        """Encode chunks into IndexEntries.

        Args:
            chunks: Chunks to encode, in sequence order.
            trace: Optional trace context for observability.
            **kwargs: Passed to the embedding call (e.g. timeout).

        Returns:
            One IndexEntry per chunk, in the same order.

        Raises:
            EmbeddingServiceError: If any batch fails (untyped provider errors
                are wrapped). No partial result is returned.
        """
        if not chunks:
            logger.info("No chunks to encode")
            return []

        logger.info(
            f"Encoding {len(chunks)} chunks with {self.provider_name} "
            f"(batch_size={self._batch_size})"
        )

        entries: list[IndexEntry] = []
        total_tokens: dict[str, int] = {}
        batch_count = 0

        for i in range(0, len(chunks), self._batch_size):
            batch_chunks = chunks[i : i + self._batch_size]
            try:
                result = self._embedding.embed(
                    [chunk.text for chunk in batch_chunks], trace=trace, **kwargs
                )
            except RagError:
                raise
            except Exception as e:
                raise wrap_service_failure(e, "embedding") from e

            for chunk, vector in zip(batch_chunks, result.vectors):
                entries.append(IndexEntry(chunk=chunk, vector=tuple(vector)))

            if result.usage:
                for key, value in result.usage.items():
                    total_tokens[key] = total_tokens.get(key, 0) + value

            batch_count += 1
            logger.debug(f"Batch {batch_count}: encoded {len(batch_chunks)} chunks")

        logger.info(f"Encoded {len(entries)} chunks in {batch_count} batches")

        if trace:
            trace.record_stage(
                "dense_encoding",
                {
                    "entry_count": len(entries),
                    "batch_count": batch_count,
                    "provider": self.provider_name,
                    "tokens": total_tokens or None,
                },
            )

        return entries

    def __repr__(self) -> str:
        return f"DenseEncoder(provider={self.provider_name}, batch_size={self._batch_size})"
