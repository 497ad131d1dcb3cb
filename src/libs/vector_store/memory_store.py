"""In-memory vector index with brute-force cosine similarity.

The whole knowledge base is small enough to keep in memory, so each
search is a single matrix-vector product over L2-normalized rows.
"""

from typing import Sequence

import numpy as np

from core.errors import InternalRetrievalError
from core.types import IndexEntry, RetrievalResult
from libs.vector_store.base_vector_store import BaseVectorStore
from observability.logger import get_logger

logger = get_logger(__name__)


class InMemoryVectorStore(BaseVectorStore):
    """Read-only in-memory index.

    Rows of the matrix are unit-normalized at build time, so the cosine
    similarity with a query is a dot product with the normalized query.
    Zero vectors score 0 against everything.
    """

    def __init__(self, entries: tuple[IndexEntry, ...], matrix: np.ndarray) -> None:
        self._entries = entries
        self._matrix = matrix
        self._matrix.setflags(write=False)
        self._sequence = np.array(
            [entry.chunk.sequence_index for entry in entries], dtype=np.int64
        )

    @property
    def provider_name(self) -> str:
        return "memory"

    @classmethod
    def from_entries(cls, entries: Sequence[IndexEntry]) -> "InMemoryVectorStore":
        entries = tuple(entries)
        cls.validate_entries(entries)

        if not entries:
            return cls(entries, np.zeros((0, 0), dtype=np.float64))

        matrix = np.array([entry.vector for entry in entries], dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        matrix = matrix / norms

        logger.info(
            f"Built in-memory index: entries={len(entries)}, dimensions={matrix.shape[1]}"
        )
        return cls(entries, matrix)

    @property
    def entries(self) -> tuple[IndexEntry, ...]:
        return self._entries

    @property
    def dimensions(self) -> int:
        return int(self._matrix.shape[1]) if self._entries else 0

    def count(self) -> int:
        return len(self._entries)

    def similarities(self, query_vector: Sequence[float]) -> np.ndarray:
        """Cosine similarity of the query against every entry, in entry order."""
        query = np.asarray(query_vector, dtype=np.float64)
        if query.ndim != 1 or query.shape[0] != self.dimensions:
            raise InternalRetrievalError(
                f"Query vector has dimension {query.shape}, index expects {self.dimensions}"
            )

        norm = np.linalg.norm(query)
        if norm == 0:
            return np.zeros(len(self._entries), dtype=np.float64)
        return self._matrix @ (query / norm)

    def search(self, query_vector: Sequence[float], top_k: int) -> list[RetrievalResult]:
        self.validate_top_k(top_k)
        if not self._entries:
            return []

        scores = self.similarities(query_vector)

        # lexsort: last key is primary -> score descending, then sequence ascending
        order = np.lexsort((self._sequence, -scores))[:top_k]

        return [
            RetrievalResult(
                entry=self._entries[i],
                score=float(scores[i]),
                rank=rank,
            )
            for rank, i in enumerate(order, start=1)
        ]

    def __repr__(self) -> str:
        return f"InMemoryVectorStore(entries={self.count()}, dimensions={self.dimensions})"
