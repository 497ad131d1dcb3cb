"""RAG Pipeline - orchestrates one question from knowledge text to answer.

Each query moves through a fixed sequence of states, recorded on its
TraceContext:

    validating -> embedding -> retrieving -> assembling -> generating -> done

Any failure moves the query to ``failed``. Validation and configuration
errors are raised before any service call. Service errors carry a
ServiceErrorKind tag from the client that raised them and are translated
into fixed user-safe messages only at the caller-facing boundary
(respond / answer_batch); the raw service text is logged, never returned.

Design Principles:
    - Build Once: The index for a knowledge snapshot is reused across queries
    - Explicit Config: One merge of per-call overrides at pipeline entry
    - Non-Leaking: Callers of respond() never see raw service errors

Usage:
    pipeline = RagPipeline.from_settings(settings, knowledge=kb)
    result = pipeline.answer(kb, "What is INSAT-3D?", {"topK": 3})
    print(result.answer)
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Sequence, TypeVar

from core.errors import (
    KNOWLEDGE_BASE_UNAVAILABLE_MESSAGE,
    ConfigurationError,
    InputValidationError,
    RagError,
    ServiceError,
    status_for,
    user_message_for,
    wrap_service_failure,
)
from core.query_engine.context_assembler import ContextAssembler
from core.query_engine.index_manager import IndexGeneration, IndexManager
from core.settings import (
    ADVANCED_RETRIEVAL_DEFAULTS,
    RetrievalConfig,
    Settings,
    merge_retrieval_config,
    validate_retrieval_config,
)
from core.trace.trace_context import PipelineStage, TraceContext
from core.types import AnswerResult, BatchOutcome, KnowledgeBase, RetrievalResult
from ingestion.chunking.document_chunker import DocumentChunker
from ingestion.embedding.dense_encoder import DenseEncoder
from libs.embedding.base_embedding import BaseEmbedding
from libs.embedding.embedding_factory import EmbeddingFactory
from libs.llm.base_llm import BaseLLM
from libs.llm.llm_factory import LLMFactory
from libs.splitter.base_splitter import BaseSplitter
from libs.vector_store.base_vector_store import BaseVectorStore
from libs.vector_store.memory_store import InMemoryVectorStore
from libs.vector_store.vector_store_factory import VectorStoreFactory
from observability.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

KnowledgeInput = KnowledgeBase | str
ConfigInput = RetrievalConfig | Mapping[str, Any] | None

PREVIEW_LENGTH = 200

HEALTH_PROBE_TEXT = "MOSDAC is a satellite data center."
HEALTH_PROBE_QUERY = "What is MOSDAC?"
HEALTH_PROBE_CONFIG = {"chunk_size": 100, "chunk_overlap": 0, "top_k": 1, "max_tokens": 50}


class RagPipeline:
    """Retrieval-augmented answering over a single knowledge snapshot.

    The pipeline is safe to share between threads: per-query state lives
    in the TraceContext, and index generations are immutable.

    Attributes:
        embedding: Embedding client used for chunks and queries
        llm: Generation client
        config: Default RetrievalConfig applied when a call passes no override
        knowledge: Snapshot served by respond() when none is passed
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        llm: BaseLLM,
        config: RetrievalConfig | None = None,
        knowledge: KnowledgeBase | None = None,
        splitter: BaseSplitter | None = None,
        assembler: ContextAssembler | None = None,
        vector_store_class: type[BaseVectorStore] = InMemoryVectorStore,
        batch_size: int = 100,
        max_generations: int = 4,
    ) -> None:
        self._embedding = embedding
        self._llm = llm
        self._config = validate_retrieval_config(config or RetrievalConfig())
        self._knowledge = knowledge

        if assembler is None:
            if self._config.prompt_path:
                assembler = ContextAssembler.from_file(self._config.prompt_path)
            else:
                assembler = ContextAssembler()
        self._assembler = assembler

        chunker = DocumentChunker(splitter)
        encoder = DenseEncoder(embedding, batch_size=batch_size)
        self._index_manager = IndexManager(
            chunker, encoder, vector_store_class, max_generations=max_generations
        )
        # Health probes get their own index so they never evict the served one
        self._probe_index_manager = IndexManager(
            chunker, encoder, vector_store_class, max_generations=1
        )

        logger.info(
            f"RagPipeline ready: embedding={embedding.provider_name}, "
            f"llm={llm.provider_name}, model={llm.model_name}"
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        knowledge: KnowledgeBase | None = None,
        **kwargs: Any,
    ) -> "RagPipeline":
        """Create a pipeline with providers resolved from settings.

        Raises:
            ConfigurationError: If a provider credential or model is missing
        """
        embedding = kwargs.pop("embedding", None) or EmbeddingFactory.create(settings)
        llm = kwargs.pop("llm", None) or LLMFactory.create(settings)
        kwargs.setdefault("vector_store_class", VectorStoreFactory.create(settings))
        kwargs.setdefault("batch_size", settings.embedding.batch_size)
        return cls(
            embedding,
            llm,
            config=settings.retrieval,
            knowledge=knowledge,
            **kwargs,
        )

    @property
    def embedding(self) -> BaseEmbedding:
        return self._embedding

    @property
    def llm(self) -> BaseLLM:
        return self._llm

    @property
    def config(self) -> RetrievalConfig:
        return self._config

    @property
    def assembler(self) -> ContextAssembler:
        return self._assembler

    @property
    def index_manager(self) -> IndexManager:
        return self._index_manager

    @property
    def knowledge(self) -> KnowledgeBase | None:
        return self._knowledge

    def set_knowledge(self, knowledge: KnowledgeBase | None) -> None:
        """Serve a new snapshot; queries already running keep the old one."""
        self._knowledge = knowledge
        logger.info(
            f"Serving knowledge snapshot: {knowledge.version if knowledge else None}"
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def answer(
        self,
        knowledge: KnowledgeInput,
        query: str,
        config: ConfigInput = None,
        include_metadata: bool = False,
        trace: TraceContext | None = None,
    ) -> AnswerResult:
        """Answer one question from the given knowledge.

        Args:
            knowledge: Snapshot or raw knowledge text
            query: The user question
            config: Overrides merged onto the pipeline defaults
            include_metadata: Attach run metadata to the result
            trace: Optional trace context; one is created if omitted

        Returns:
            AnswerResult with the trimmed answer text

        Raises:
            InputValidationError: Empty knowledge/query or invalid config
            EmbeddingServiceError: Embedding chunks or the query failed
            GenerationServiceError: The generation call failed or came back empty
        """
        return self._run(
            knowledge,
            query,
            config,
            base=self._config,
            include_metadata=include_metadata,
            trace=trace,
            index_manager=self._index_manager,
        )

    def answer_advanced(
        self,
        knowledge: KnowledgeInput,
        query: str,
        config: ConfigInput = None,
        trace: TraceContext | None = None,
    ) -> AnswerResult:
        """Answer with advanced defaults and full metadata.

        Defaults: chunk_size 800, chunk_overlap 150, top_k 5,
        temperature 0.3, max_tokens 1500.
        """
        base = replace(
            ADVANCED_RETRIEVAL_DEFAULTS,
            timeout=self._config.timeout,
            separators=self._config.separators,
            batch_concurrency=self._config.batch_concurrency,
        )
        return self._run(
            knowledge,
            query,
            config,
            base=base,
            include_metadata=True,
            trace=trace,
            index_manager=self._index_manager,
        )

    def answer_batch(
        self,
        knowledge: KnowledgeInput,
        queries: Sequence[str],
        config: ConfigInput = None,
    ) -> list[BatchOutcome]:
        """Answer several questions; one failure never aborts the rest.

        Outcomes are returned in input order with 1-based indexes. With
        batch_concurrency > 1 the queries run on a bounded thread pool.

        Raises:
            InputValidationError: If queries is not a non-empty list, or the
                config is invalid (every slot would fail the same way)
        """
        if isinstance(queries, (str, bytes)) or not isinstance(queries, Sequence) or not queries:
            raise InputValidationError("Queries must be a non-empty list")

        merged = merge_retrieval_config(self._config, config)
        logger.info(
            f"Batch of {len(queries)} queries, concurrency={merged.batch_concurrency}"
        )

        def run_one(position: int, query: str) -> BatchOutcome:
            try:
                result = self.answer(knowledge, query, merged)
            except Exception as e:
                # Per-slot isolation: record and continue
                if not isinstance(e, RagError):
                    logger.exception(f"Unexpected error in batch slot {position}")
                return BatchOutcome(
                    query=query,
                    index=position,
                    status="error",
                    error=user_message_for(e),
                )
            return BatchOutcome(
                query=query, index=position, status="success", answer=result.answer
            )

        slots = list(enumerate(queries, start=1))
        workers = min(merged.batch_concurrency, len(slots))
        if workers <= 1:
            outcomes = [run_one(position, query) for position, query in slots]
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="rag-batch") as pool:
                outcomes = list(pool.map(lambda slot: run_one(*slot), slots))

        succeeded = sum(1 for outcome in outcomes if outcome.ok)
        logger.info(f"Batch complete: {succeeded}/{len(outcomes)} succeeded")
        return outcomes

    def respond(
        self,
        query: str,
        config: ConfigInput = None,
        knowledge: KnowledgeInput | None = None,
        include_metadata: bool = False,
    ) -> dict[str, Any]:
        """Caller-facing answer: always returns {'answer', 'status', 'metadata'?}.

        Failures never raise; the answer field carries a fixed user-safe
        message and status carries the error category.
        """
        knowledge = knowledge if knowledge is not None else self._knowledge
        if knowledge is None:
            logger.error("No knowledge base loaded")
            return {
                "answer": KNOWLEDGE_BASE_UNAVAILABLE_MESSAGE,
                "status": "knowledge_base_error",
            }

        try:
            result = self.answer(knowledge, query, config, include_metadata=include_metadata)
        except Exception as e:
            if not isinstance(e, RagError):
                logger.exception("Unexpected error while answering")
            return {"answer": user_message_for(e), "status": status_for(e)}

        response = result.to_dict()
        response["status"] = "success"
        return response

    def check_health(self) -> dict[str, Any]:
        """Report knowledge base, provider and connectivity status.

        The connectivity probe answers a fixed question over a tiny corpus
        on a separate index, so the served index is untouched.
        """
        start = time.perf_counter()
        knowledge = self._knowledge

        knowledge_status: dict[str, Any] = {"available": knowledge is not None}
        if knowledge is not None:
            knowledge_status.update(
                {
                    "version": knowledge.version,
                    "length": len(knowledge.text),
                    "topics": knowledge.document.metadata.get("topics", []),
                    "last_updated": knowledge.document.metadata.get("last_updated"),
                }
            )

        probe: dict[str, Any] = {"checked_at": _utc_now()}
        try:
            result = self._run(
                HEALTH_PROBE_TEXT,
                HEALTH_PROBE_QUERY,
                HEALTH_PROBE_CONFIG,
                base=self._config,
                include_metadata=False,
                trace=None,
                index_manager=self._probe_index_manager,
            )
        except Exception as e:
            if not isinstance(e, RagError):
                logger.exception("Unexpected error during health probe")
            probe.update(
                {
                    "accessible": False,
                    "status": status_for(e),
                    "message": user_message_for(e),
                }
            )
        else:
            probe.update(
                {
                    "accessible": True,
                    "status": "success",
                    "message": "Services accessible and responding",
                    "response_length": len(result.answer),
                }
            )

        issues: list[str] = []
        if not knowledge_status["available"]:
            issues.append("Knowledge base not loaded")
        if not probe["accessible"]:
            issues.append("AI services not accessible")

        return {
            "healthy": not issues,
            "issues": issues,
            "knowledge_base": knowledge_status,
            "embedding": {
                "provider": self._embedding.provider_name,
                "model": self._embedding.model_name,
                "api_key": self._embedding.api_key_masked,
            },
            "llm": {
                "provider": self._llm.provider_name,
                "model": self._llm.model_name,
                "api_key": self._llm.api_key_masked,
            },
            "connectivity": probe,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        }

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def _run(
        self,
        knowledge: KnowledgeInput,
        query: str,
        config: ConfigInput,
        base: RetrievalConfig,
        include_metadata: bool,
        trace: TraceContext | None,
        index_manager: IndexManager,
    ) -> AnswerResult:
        trace = trace or TraceContext()
        start = time.perf_counter()

        try:
            snapshot = self._validate_knowledge(knowledge)
            self._validate_query(query)
            merged = merge_retrieval_config(base, config)
            assembler = self._assembler_for(merged)

            trace.enter(PipelineStage.EMBEDDING)
            # Chunk embedding failures are tagged inside the encoder; chunking
            # and store errors propagate as they are
            generation = index_manager.get_or_build(snapshot, merged, trace)
            query_vector = self._call_service(
                "embedding",
                lambda: self._embedding.embed_single(query, trace=trace, timeout=merged.timeout),
            )

            trace.enter(PipelineStage.RETRIEVING)
            results = generation.store.search(query_vector, merged.top_k)

            trace.enter(PipelineStage.ASSEMBLING)
            context = assembler.build_context(results)
            prompt = assembler.assemble(results, query)

            trace.enter(PipelineStage.GENERATING)
            text = self._call_service(
                "generation",
                lambda: self._llm.generate(
                    prompt,
                    temperature=merged.temperature,
                    max_tokens=merged.max_tokens,
                    trace=trace,
                    timeout=merged.timeout,
                ),
            )
            trace.enter(PipelineStage.DONE)
        except Exception as e:
            trace.fail(e)
            if isinstance(e, RagError):
                self._log_failure(e, trace)
            raise

        answer = text.strip()
        logger.info(
            f"Answered query: trace_id={trace.trace_id}, chunks={len(results)}, "
            f"answer_length={len(answer)}"
        )

        metadata = None
        if include_metadata:
            metadata = self._build_metadata(
                query, merged, generation, results, context, trace, start
            )
        return AnswerResult(answer=answer, query=query, metadata=metadata)

    def _assembler_for(self, config: RetrievalConfig) -> ContextAssembler:
        """Use the per-call prompt template when one differs from the default."""
        if not config.prompt_path or config.prompt_path == self._config.prompt_path:
            return self._assembler
        try:
            return ContextAssembler.from_file(config.prompt_path)
        except ConfigurationError as e:
            raise InputValidationError(f"Invalid prompt template: {e}") from e

    @staticmethod
    def _validate_knowledge(knowledge: KnowledgeInput) -> KnowledgeBase:
        if isinstance(knowledge, KnowledgeBase):
            text = knowledge.text
        else:
            text = knowledge
        if not isinstance(text, str) or not text.strip():
            raise InputValidationError("Input text must be a non-empty string")
        if isinstance(knowledge, KnowledgeBase):
            return knowledge
        return KnowledgeBase.from_text(text)

    @staticmethod
    def _validate_query(query: str) -> None:
        if not isinstance(query, str) or not query.strip():
            raise InputValidationError("User query must be a non-empty string")

    @staticmethod
    def _call_service(stage: str, call: Callable[[], T]) -> T:
        """Run a service call, tagging untyped failures for the stage."""
        try:
            return call()
        except RagError:
            raise
        except Exception as e:
            raise wrap_service_failure(e, stage) from e

    @staticmethod
    def _log_failure(error: RagError, trace: TraceContext) -> None:
        failure = trace.get_stage("failure") or {}
        if isinstance(error, ServiceError):
            logger.error(
                f"Query failed in {failure.get('failed_in')}: trace_id={trace.trace_id}, "
                f"provider={error.provider}, kind={error.kind.value}, "
                f"code={error.code}, error={error}, details={error.details}"
            )
        else:
            logger.warning(
                f"Query failed in {failure.get('failed_in')}: trace_id={trace.trace_id}, "
                f"{type(error).__name__}: {error}"
            )

    def _build_metadata(
        self,
        query: str,
        config: RetrievalConfig,
        generation: IndexGeneration,
        results: list[RetrievalResult],
        context: str,
        trace: TraceContext,
        start: float,
    ) -> dict[str, Any]:
        return {
            "chunks_retrieved": len(results),
            "total_chunks": generation.chunk_count,
            "context_length": len(context),
            "query_length": len(query),
            "processing_time_ms": round((time.perf_counter() - start) * 1000, 2),
            "timestamp": _utc_now(),
            "model": self._llm.model_name,
            "embedding_model": self._embedding.model_name,
            "index_version": generation.knowledge_version,
            "trace_id": trace.trace_id,
            "config": config.to_dict(),
            "retrieved_chunks": [
                {
                    "index": result.rank,
                    "content": _preview(result.text),
                    "length": len(result.text),
                    "score": round(result.score, 4),
                }
                for result in results
            ],
        }


def _preview(text: str) -> str:
    if len(text) <= PREVIEW_LENGTH:
        return text
    return text[:PREVIEW_LENGTH] + "..."


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
