"""Index Manager - build-once, query-many index generations.

An index generation is keyed by the knowledge snapshot version and the
chunking parameters. Queries against the same key reuse the built index;
a new key triggers a copy-on-build: the new index is built completely
outside the lock and only then published, so concurrent queries keep
reading whichever generation they already hold.

Design Principles:
    - Immutable Generations: A published index is never modified
    - Lock-Light: The lock guards only the generation table, never a build
    - Bounded: At most max_generations indexes are kept alive
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass

from core.settings import RetrievalConfig
from core.trace.trace_context import TraceContext
from core.types import KnowledgeBase
from ingestion.chunking.document_chunker import DocumentChunker
from ingestion.embedding.dense_encoder import DenseEncoder
from libs.vector_store.base_vector_store import BaseVectorStore
from observability.logger import get_logger

logger = get_logger(__name__)

IndexKey = tuple[str, str, int, int, tuple[str, ...]]


@dataclass(frozen=True)
class IndexGeneration:
    """A fully built, read-only index for one knowledge snapshot.

    Attributes:
        key: (knowledge version, embedding model, chunk_size, chunk_overlap, separators)
        store: The vector index
        knowledge_version: Version of the snapshot the index was built from
        chunk_count: Number of chunks in the index
        build_seconds: Time spent chunking, embedding and indexing
    """
    key: IndexKey
    store: BaseVectorStore
    knowledge_version: str
    chunk_count: int
    build_seconds: float


class IndexManager:
    """Builds and caches index generations.

    Example:
        >>> manager = IndexManager(DocumentChunker(), DenseEncoder(embedding))
        >>> generation = manager.get_or_build(kb, RetrievalConfig())
        >>> generation.store.search(query_vector, top_k=4)
    """

    def __init__(
        self,
        chunker: DocumentChunker,
        encoder: DenseEncoder,
        vector_store_class: type[BaseVectorStore],
        max_generations: int = 4,
    ) -> None:
        if max_generations < 1:
            raise ValueError(f"max_generations must be >= 1, got {max_generations}")
        self._chunker = chunker
        self._encoder = encoder
        self._vector_store_class = vector_store_class
        self._max_generations = max_generations
        self._generations: OrderedDict[IndexKey, IndexGeneration] = OrderedDict()
        self._lock = threading.Lock()
        self._build_count = 0

    @property
    def build_count(self) -> int:
        """Number of index builds performed (cache misses)."""
        return self._build_count

    @property
    def generation_count(self) -> int:
        with self._lock:
            return len(self._generations)

    def key_for(self, knowledge: KnowledgeBase, config: RetrievalConfig) -> IndexKey:
        return (
            knowledge.version,
            self._encoder.embedding.model_name,
            config.chunk_size,
            config.chunk_overlap,
            tuple(config.separators),
        )

    def peek(self, knowledge: KnowledgeBase, config: RetrievalConfig) -> IndexGeneration | None:
        """Return the cached generation for this key without building."""
        with self._lock:
            return self._generations.get(self.key_for(knowledge, config))

    def get_or_build(
        self,
        knowledge: KnowledgeBase,
        config: RetrievalConfig,
        trace: TraceContext | None = None,
    ) -> IndexGeneration:
        """Return the index for (knowledge, chunking config), building it if needed.

        Raises:
            EmbeddingServiceError: If embedding the chunks fails; nothing is cached
            InputValidationError: If the chunking parameters are invalid
        """
        key = self.key_for(knowledge, config)

        with self._lock:
            cached = self._generations.get(key)
            if cached is not None:
                self._generations.move_to_end(key)

        if cached is not None:
            logger.debug(f"Reusing index generation {knowledge.version}")
            if trace:
                trace.record_stage("index", {"cache_hit": True, "chunk_count": cached.chunk_count})
            return cached

        generation = self._build(key, knowledge, config, trace)

        with self._lock:
            self._generations[key] = generation
            self._generations.move_to_end(key)
            while len(self._generations) > self._max_generations:
                evicted, _ = self._generations.popitem(last=False)
                logger.info(f"Evicted index generation: version={evicted[0]}")
            self._build_count += 1

        return generation

    def _build(
        self,
        key: IndexKey,
        knowledge: KnowledgeBase,
        config: RetrievalConfig,
        trace: TraceContext | None,
    ) -> IndexGeneration:
        start = time.perf_counter()
        logger.info(
            f"Building index: version={knowledge.version}, "
            f"chunk_size={config.chunk_size}, chunk_overlap={config.chunk_overlap}"
        )

        chunks = self._chunker.split_document(knowledge.document, config, trace=trace)
        entries = self._encoder.encode(chunks, trace=trace, timeout=config.timeout)
        store = self._vector_store_class.from_entries(entries)

        elapsed = time.perf_counter() - start
        logger.info(f"Index built: chunks={len(chunks)}, seconds={elapsed:.3f}")

        if trace:
            trace.record_stage(
                "index",
                {"cache_hit": False, "chunk_count": len(chunks), "build_seconds": elapsed},
            )

        return IndexGeneration(
            key=key,
            store=store,
            knowledge_version=knowledge.version,
            chunk_count=len(chunks),
            build_seconds=elapsed,
        )

    def clear(self) -> None:
        with self._lock:
            self._generations.clear()
