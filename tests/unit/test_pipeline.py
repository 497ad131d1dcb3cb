"""Unit tests for RagPipeline.

The embedding side uses the deterministic FakeEmbedding so retrieval is
real; the generation side is a MockLLM that records prompts and can be
told to fail with a given error.
"""

import threading
from typing import Any

import pytest

from core.errors import (
    CONFIGURATION_ERROR_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    KNOWLEDGE_BASE_UNAVAILABLE_MESSAGE,
    ConfigurationError,
    EmbeddingServiceError,
    GenerationServiceError,
    InputValidationError,
    InternalRetrievalError,
    ServiceErrorKind,
)
from core.query_engine.context_assembler import ContextAssembler
from core.query_engine.pipeline import RagPipeline
from core.settings import EmbeddingConfig, LLMConfig, RetrievalConfig, Settings
from core.trace.trace_context import PipelineStage, TraceContext
from core.types import KnowledgeBase
from libs.embedding.base_embedding import EmbeddingResult
from libs.embedding.local_embedding import FakeEmbedding
from libs.llm.base_llm import BaseLLM, ChatMessage, LLMResponse
from libs.vector_store.memory_store import InMemoryVectorStore


class MockEmbedding(FakeEmbedding):
    """FakeEmbedding that counts calls and can raise on demand."""

    def __init__(self) -> None:
        super().__init__(dimensions=256)
        self.calls = 0
        self.error: Exception | None = None
        self._lock = threading.Lock()

    def embed(self, texts: list[str], trace: Any = None, **kwargs: Any) -> EmbeddingResult:
        with self._lock:
            self.calls += 1
        if self.error is not None:
            raise self.error
        return super().embed(texts, trace=trace, **kwargs)


class MockLLM(BaseLLM):
    """Records prompts; replies from a callable or raises a configured error."""

    def __init__(self, reply: str = "  INSAT-3D is a meteorological satellite.  ") -> None:
        self._model = "mock-model"
        self.reply = reply
        self.error: Exception | None = None
        self.fail_when: str | None = None
        self.prompts: list[str] = []
        self.kwargs: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    @property
    def provider_name(self) -> str:
        return "mock"

    def chat(self, messages: list[ChatMessage], trace: Any = None, **kwargs: Any) -> LLMResponse:
        prompt = messages[-1].content
        with self._lock:
            self.prompts.append(prompt)
            self.kwargs.append(kwargs)
        if self.error is not None and (self.fail_when is None or self.fail_when in prompt):
            raise self.error
        return LLMResponse(content=self.reply)


@pytest.fixture
def embedding() -> MockEmbedding:
    return MockEmbedding()


@pytest.fixture
def llm() -> MockLLM:
    return MockLLM()


@pytest.fixture
def knowledge(knowledge_text) -> KnowledgeBase:
    return KnowledgeBase.from_text(knowledge_text, metadata={"topics": ["satellites"], "last_updated": "2024-06-01"})


@pytest.fixture
def pipeline(embedding, llm, knowledge) -> RagPipeline:
    return RagPipeline(embedding, llm, knowledge=knowledge)


SMALL = {"chunkSize": 120, "chunkOverlap": 20, "topK": 2}


class TestAnswer:
    def test_answer_is_trimmed(self, pipeline, knowledge):
        result = pipeline.answer(knowledge, "What is INSAT-3D?")
        assert result.answer == "INSAT-3D is a meteorological satellite."
        assert result.query == "What is INSAT-3D?"
        assert result.metadata is None

    def test_prompt_grounded_in_retrieved_context(self, pipeline, knowledge, llm):
        pipeline.answer(knowledge, "What is INSAT-3D?", SMALL)
        prompt = llm.prompts[0]

        assert "[Context 1]" in prompt
        assert "[Context 2]" in prompt
        assert "[Context 3]" not in prompt
        assert "INSAT-3D is a meteorological satellite." in prompt
        assert "User Question: What is INSAT-3D?" in prompt

    def test_raw_text_knowledge(self, pipeline, knowledge_text, llm):
        pipeline.answer(knowledge_text, "What is INSAT-3D?")
        assert "INSAT-3D" in llm.prompts[0]

    def test_sampling_parameters_forwarded(self, pipeline, knowledge, llm):
        pipeline.answer(knowledge, "q?", {"temperature": 0.2, "maxTokens": 64, "timeout": 9.0})
        assert llm.kwargs[0] == {"temperature": 0.2, "max_tokens": 64, "timeout": 9.0}

    def test_defaults_applied(self, pipeline, knowledge):
        result = pipeline.answer(knowledge, "What is MOSDAC?", include_metadata=True)
        assert result.metadata["config"] == {
            "chunk_size": 1000,
            "chunk_overlap": 200,
            "top_k": 4,
            "temperature": 0.7,
            "max_tokens": 1000,
        }

    def test_index_built_once_per_snapshot(self, pipeline, knowledge, embedding):
        pipeline.answer(knowledge, "first?", SMALL)
        after_first = embedding.calls
        pipeline.answer(knowledge, "second?", SMALL)

        # second query embeds only the question
        assert embedding.calls == after_first + 1
        assert pipeline.index_manager.build_count == 1

    def test_top_k_larger_than_corpus(self, pipeline, llm):
        result = pipeline.answer("Only one short chunk.", "q?", {"topK": 10}, include_metadata=True)
        assert result.metadata["chunks_retrieved"] == 1
        assert result.metadata["total_chunks"] == 1

    def test_trace_reaches_done(self, pipeline, knowledge):
        trace = TraceContext()
        pipeline.answer(knowledge, "What is INSAT-3D?", trace=trace)

        assert trace.state == PipelineStage.DONE
        assert [h["state"] for h in trace.history] == [
            "validating",
            "embedding",
            "retrieving",
            "assembling",
            "generating",
        ]


class TestValidation:
    @pytest.mark.parametrize("knowledge", ["", "   \n", None, 42])
    def test_empty_knowledge(self, pipeline, embedding, llm, knowledge):
        with pytest.raises(InputValidationError) as exc_info:
            pipeline.answer(knowledge, "What is INSAT-3D?")

        assert str(exc_info.value) == "Input text must be a non-empty string"
        assert embedding.calls == 0
        assert llm.prompts == []

    def test_empty_snapshot(self, pipeline, embedding):
        with pytest.raises(InputValidationError):
            pipeline.answer(KnowledgeBase.from_text(""), "q?")
        assert embedding.calls == 0

    @pytest.mark.parametrize("query", ["", "  ", None, ["q"]])
    def test_empty_query(self, pipeline, knowledge, embedding, query):
        with pytest.raises(InputValidationError) as exc_info:
            pipeline.answer(knowledge, query)

        assert str(exc_info.value) == "User query must be a non-empty string"
        assert embedding.calls == 0

    @pytest.mark.parametrize(
        "config",
        [{"topK": 0}, {"topK": -3}, {"chunkSize": 100, "chunkOverlap": 100}, {"temperature": 2}],
    )
    def test_invalid_config(self, pipeline, knowledge, embedding, config):
        with pytest.raises(InputValidationError):
            pipeline.answer(knowledge, "q?", config)
        assert embedding.calls == 0

    def test_failed_trace(self, pipeline, knowledge):
        trace = TraceContext()
        with pytest.raises(InputValidationError):
            pipeline.answer(knowledge, "", trace=trace)
        assert trace.state == PipelineStage.FAILED
        assert trace.get_stage("failure")["failed_in"] == "validating"


class TestServiceFailures:
    def test_embedding_failure_propagates_tagged(self, pipeline, knowledge, embedding, llm):
        embedding.error = EmbeddingServiceError("429", kind=ServiceErrorKind.QUOTA)
        with pytest.raises(EmbeddingServiceError) as exc_info:
            pipeline.answer(knowledge, "q?")

        assert exc_info.value.kind == ServiceErrorKind.QUOTA
        assert llm.prompts == []

    def test_untagged_embedding_failure_is_wrapped(self, pipeline, knowledge, embedding):
        embedding.error = RuntimeError("connection reset by peer")
        with pytest.raises(EmbeddingServiceError) as exc_info:
            pipeline.answer(knowledge, "q?")
        assert exc_info.value.kind == ServiceErrorKind.UNAVAILABLE

    def test_untagged_generation_failure_is_wrapped(self, pipeline, knowledge, llm):
        llm.error = RuntimeError("You exceeded your current quota")
        with pytest.raises(GenerationServiceError) as exc_info:
            pipeline.answer(knowledge, "q?")
        assert exc_info.value.kind == ServiceErrorKind.QUOTA

    def test_index_build_bug_is_not_relabeled(self, embedding, llm, knowledge):
        class BrokenStore(InMemoryVectorStore):
            @classmethod
            def from_entries(cls, entries):
                raise KeyError("vector")

        pipeline = RagPipeline(embedding, llm, vector_store_class=BrokenStore)
        trace = TraceContext()

        with pytest.raises(KeyError):
            pipeline.answer(knowledge, "q?", trace=trace)

        assert trace.state == PipelineStage.FAILED
        assert pipeline.respond("q?", knowledge=knowledge)["status"] == "system_error"
        assert llm.prompts == []

    def test_store_error_keeps_its_type(self, embedding, llm, knowledge):
        class DuplicateStore(InMemoryVectorStore):
            @classmethod
            def from_entries(cls, entries):
                raise InternalRetrievalError("Duplicate index entry")

        pipeline = RagPipeline(embedding, llm, vector_store_class=DuplicateStore)
        with pytest.raises(InternalRetrievalError):
            pipeline.answer(knowledge, "q?")

    def test_empty_generation(self, pipeline, knowledge, llm):
        llm.reply = "   "
        with pytest.raises(GenerationServiceError) as exc_info:
            pipeline.answer(knowledge, "q?")
        assert exc_info.value.kind == ServiceErrorKind.EMPTY_RESPONSE

    def test_failed_index_build_is_retried(self, pipeline, knowledge, embedding):
        embedding.error = EmbeddingServiceError("down", kind=ServiceErrorKind.UNAVAILABLE)
        with pytest.raises(EmbeddingServiceError):
            pipeline.answer(knowledge, "q?")

        embedding.error = None
        assert pipeline.answer(knowledge, "q?").answer
        assert pipeline.index_manager.build_count == 1


class TestMetadata:
    def test_metadata_fields(self, pipeline, knowledge):
        result = pipeline.answer(knowledge, "What is INSAT-3D?", SMALL, include_metadata=True)
        metadata = result.metadata

        assert metadata["chunks_retrieved"] == 2
        assert metadata["total_chunks"] > 2
        assert metadata["query_length"] == len("What is INSAT-3D?")
        assert metadata["context_length"] > 0
        assert metadata["processing_time_ms"] >= 0
        assert metadata["model"] == "mock-model"
        assert metadata["embedding_model"] == "feature-hashing"
        assert metadata["index_version"] == knowledge.version
        assert metadata["timestamp"].endswith("+00:00")
        assert metadata["config"]["top_k"] == 2

        chunks = metadata["retrieved_chunks"]
        assert [c["index"] for c in chunks] == [1, 2]
        assert chunks[0]["score"] >= chunks[1]["score"]
        assert all(c["length"] <= 120 for c in chunks)

    def test_preview_truncated(self, pipeline):
        text = "x" * 300 + "y" * 200
        result = pipeline.answer(
            text, "x" * 300, {"chunkSize": 300, "chunkOverlap": 0, "topK": 1}, include_metadata=True
        )
        chunk = result.metadata["retrieved_chunks"][0]

        assert chunk["length"] == 300
        assert chunk["content"] == "x" * 200 + "..."

    def test_short_preview_not_truncated(self, pipeline):
        result = pipeline.answer("Short text.", "q?", include_metadata=True)
        assert result.metadata["retrieved_chunks"][0]["content"] == "Short text."


class TestAnswerAdvanced:
    def test_advanced_defaults(self, pipeline, knowledge, llm):
        result = pipeline.answer_advanced(knowledge, "What is INSAT-3D?")

        assert result.metadata["config"] == {
            "chunk_size": 800,
            "chunk_overlap": 150,
            "top_k": 5,
            "temperature": 0.3,
            "max_tokens": 1500,
        }
        assert llm.kwargs[0]["temperature"] == 0.3
        assert llm.kwargs[0]["max_tokens"] == 1500

    def test_advanced_overrides(self, pipeline, knowledge):
        result = pipeline.answer_advanced(knowledge, "q?", {"topK": 1})
        assert result.metadata["config"]["top_k"] == 1
        assert result.metadata["config"]["chunk_size"] == 800

    def test_advanced_keeps_pipeline_timeout(self, embedding, llm, knowledge):
        pipeline = RagPipeline(embedding, llm, config=RetrievalConfig(timeout=7.0))
        pipeline.answer_advanced(knowledge, "q?")
        assert llm.kwargs[0]["timeout"] == 7.0


class TestAnswerBatch:
    def test_outcomes_in_order(self, pipeline, knowledge):
        outcomes = pipeline.answer_batch(knowledge, ["What is MOSDAC?", "What is INSAT-3D?"])

        assert [o.index for o in outcomes] == [1, 2]
        assert [o.query for o in outcomes] == ["What is MOSDAC?", "What is INSAT-3D?"]
        assert all(o.ok for o in outcomes)
        assert outcomes[0].answer == "INSAT-3D is a meteorological satellite."

    def test_bad_slot_does_not_abort_batch(self, pipeline, knowledge):
        outcomes = pipeline.answer_batch(knowledge, ["What is MOSDAC?", "", "What is INSAT-3D?"])

        assert [o.status for o in outcomes] == ["success", "error", "success"]
        assert outcomes[1].error == "User query must be a non-empty string"
        assert outcomes[1].answer is None

    def test_service_failure_in_one_slot(self, pipeline, knowledge, llm):
        llm.error = GenerationServiceError("quota", kind=ServiceErrorKind.QUOTA)
        llm.fail_when = "User Question: second"
        outcomes = pipeline.answer_batch(knowledge, ["first", "second", "third"])

        assert [o.status for o in outcomes] == ["success", "error", "success"]
        assert outcomes[1].error == "Error: AI service quota exceeded"

    def test_unexpected_error_gets_generic_message(self, pipeline, knowledge, llm):
        llm.error = GenerationServiceError("???", kind=ServiceErrorKind.UNKNOWN)
        outcomes = pipeline.answer_batch(knowledge, ["only"])
        assert outcomes[0].error == GENERIC_ERROR_MESSAGE

    @pytest.mark.parametrize("queries", [[], "What is MOSDAC?", None, 5])
    def test_invalid_queries(self, pipeline, knowledge, queries):
        with pytest.raises(InputValidationError) as exc_info:
            pipeline.answer_batch(knowledge, queries)
        assert str(exc_info.value) == "Queries must be a non-empty list"

    def test_invalid_config_rejects_batch(self, pipeline, knowledge, embedding):
        with pytest.raises(InputValidationError):
            pipeline.answer_batch(knowledge, ["q"], {"topK": 0})
        assert embedding.calls == 0

    def test_concurrent_batch_preserves_order(self, embedding, llm, knowledge):
        pipeline = RagPipeline(embedding, llm, config=RetrievalConfig(batch_concurrency=4))
        queries = [f"question {i}?" for i in range(10)]
        outcomes = pipeline.answer_batch(knowledge, queries)

        assert [o.query for o in outcomes] == queries
        assert [o.index for o in outcomes] == list(range(1, 11))
        assert all(o.ok for o in outcomes)
        assert pipeline.index_manager.generation_count == 1

    def test_empty_knowledge_fails_every_slot(self, pipeline):
        outcomes = pipeline.answer_batch("", ["a", "b"])
        assert all(o.error == "Input text must be a non-empty string" for o in outcomes)


class TestRespond:
    def test_success_shape(self, pipeline):
        response = pipeline.respond("What is INSAT-3D?")
        assert response == {"answer": "INSAT-3D is a meteorological satellite.", "status": "success"}

    def test_with_metadata(self, pipeline):
        response = pipeline.respond("What is INSAT-3D?", include_metadata=True)
        assert response["status"] == "success"
        assert "retrieved_chunks" in response["metadata"]

    def test_no_knowledge_loaded(self, embedding, llm):
        response = RagPipeline(embedding, llm).respond("What is MOSDAC?")
        assert response == {
            "answer": KNOWLEDGE_BASE_UNAVAILABLE_MESSAGE,
            "status": "knowledge_base_error",
        }
        assert embedding.calls == 0

    def test_quota_error_hides_raw_text(self, pipeline, llm):
        llm.error = GenerationServiceError(
            "429 quota exceeded for project secret-123", kind=ServiceErrorKind.QUOTA
        )
        response = pipeline.respond("q?")

        assert response == {"answer": "Error: AI service quota exceeded", "status": "quota_error"}

    def test_embedding_outage_is_rag_error(self, pipeline, embedding):
        embedding.error = EmbeddingServiceError("reset", kind=ServiceErrorKind.UNAVAILABLE)
        response = pipeline.respond("q?")
        assert response == {
            "answer": "Error: Knowledge retrieval system unavailable",
            "status": "rag_error",
        }

    def test_validation_error(self, pipeline):
        assert pipeline.respond("  ") == {
            "answer": "User query must be a non-empty string",
            "status": "validation_error",
        }

    def test_set_knowledge(self, pipeline):
        pipeline.set_knowledge(KnowledgeBase.from_text("SCATSAT-1 measures ocean winds."))
        pipeline.respond("What does SCATSAT-1 do?")
        assert pipeline.knowledge.text == "SCATSAT-1 measures ocean winds."

    def test_explicit_knowledge_wins(self, pipeline, llm):
        pipeline.respond("q?", knowledge="Explicit corpus text.")
        assert "Explicit corpus text." in llm.prompts[0]


class TestCheckHealth:
    def test_healthy(self, pipeline):
        report = pipeline.check_health()

        assert report["healthy"] is True
        assert report["issues"] == []
        assert report["knowledge_base"]["available"] is True
        assert report["knowledge_base"]["topics"] == ["satellites"]
        assert report["knowledge_base"]["last_updated"] == "2024-06-01"
        assert report["embedding"] == {"provider": "fake", "model": "feature-hashing", "api_key": "NOT_SET"}
        assert report["llm"]["model"] == "mock-model"
        assert report["connectivity"]["accessible"] is True
        assert report["connectivity"]["response_length"] > 0

    def test_probe_does_not_touch_served_index(self, pipeline, knowledge):
        pipeline.answer(knowledge, "q?")
        pipeline.check_health()
        assert pipeline.index_manager.generation_count == 1
        assert pipeline.index_manager.build_count == 1

    def test_probe_limits_generation(self, pipeline, llm):
        pipeline.check_health()
        assert llm.kwargs[0]["max_tokens"] == 50
        assert "User Question: What is MOSDAC?" in llm.prompts[0]

    def test_unhealthy_when_services_fail(self, pipeline, llm):
        llm.error = GenerationServiceError("bad key", kind=ServiceErrorKind.AUTH)
        report = pipeline.check_health()

        assert report["healthy"] is False
        assert report["issues"] == ["AI services not accessible"]
        assert report["connectivity"]["status"] == "auth_error"
        assert report["connectivity"]["message"] == "Error: Invalid AI service API key configuration"

    def test_unhealthy_without_knowledge(self, embedding, llm):
        report = RagPipeline(embedding, llm).check_health()
        assert report["healthy"] is False
        assert "Knowledge base not loaded" in report["issues"]
        assert report["knowledge_base"] == {"available": False}


class TestConstruction:
    def test_invalid_default_config(self, embedding, llm):
        with pytest.raises(InputValidationError):
            RagPipeline(embedding, llm, config=RetrievalConfig(top_k=0))

    def test_prompt_path(self, embedding, llm, tmp_path):
        path = tmp_path / "prompt.txt"
        path.write_text("CTX {context} Q {question}", encoding="utf-8")
        pipeline = RagPipeline(embedding, llm, config=RetrievalConfig(prompt_path=str(path)))

        pipeline.answer("Some knowledge.", "q?")
        assert llm.prompts[0] == "CTX [Context 1]\nSome knowledge. Q q?"

    def test_per_call_prompt_path(self, pipeline, llm, tmp_path):
        path = tmp_path / "prompt.txt"
        path.write_text("CTX {context} Q {question}", encoding="utf-8")

        pipeline.answer("Some knowledge.", "q?", {"promptPath": str(path)})
        pipeline.answer("Some knowledge.", "q?")

        assert llm.prompts[0] == "CTX [Context 1]\nSome knowledge. Q q?"
        assert "User Question: q?" in llm.prompts[1]

    def test_per_call_prompt_path_in_batch(self, pipeline, llm, tmp_path):
        path = tmp_path / "prompt.txt"
        path.write_text("{context}||{question}", encoding="utf-8")

        outcomes = pipeline.answer_batch("Body.", ["a?", "b?"], {"prompt_path": str(path)})

        assert all(outcome.ok for outcome in outcomes)
        assert sorted(llm.prompts) == ["[Context 1]\nBody.||a?", "[Context 1]\nBody.||b?"]

    @pytest.mark.parametrize("template", [None, "no placeholders here"])
    def test_bad_per_call_prompt_path(self, pipeline, embedding, llm, tmp_path, template):
        path = tmp_path / "prompt.txt"
        if template is not None:
            path.write_text(template, encoding="utf-8")

        with pytest.raises(InputValidationError, match="Invalid prompt template"):
            pipeline.answer("Body.", "q?", {"promptPath": str(path)})

        assert embedding.calls == 0
        assert llm.prompts == []

    def test_custom_assembler(self, embedding, llm):
        pipeline = RagPipeline(embedding, llm, assembler=ContextAssembler("{context}|{question}"))
        pipeline.answer("Body.", "q?")
        assert llm.prompts[0] == "[Context 1]\nBody.|q?"

    def test_from_settings_with_fake_embedding(self, llm, knowledge):
        settings = Settings(
            llm=LLMConfig(provider="openai", model="gpt-4o-mini"),
            embedding=EmbeddingConfig(provider="fake", batch_size=10),
        )
        pipeline = RagPipeline.from_settings(settings, knowledge=knowledge, llm=llm)

        assert isinstance(pipeline.embedding, FakeEmbedding)
        assert pipeline.llm is llm
        assert pipeline.config == settings.retrieval

    def test_from_settings_missing_key(self):
        settings = Settings(
            llm=LLMConfig(provider="gemini", model="gemini-1.5-flash"),
            embedding=EmbeddingConfig(provider="fake"),
        )
        with pytest.raises(ConfigurationError) as exc_info:
            RagPipeline.from_settings(settings)
        assert exc_info.value.provider == "gemini"

    def test_configuration_message(self):
        from core.errors import user_message_for

        assert user_message_for(ConfigurationError("x")) == CONFIGURATION_ERROR_MESSAGE
