"""Tests for core data types.

Covers serialization, immutability and derived properties of the
knowledge snapshot, chunk and result types.
"""

from dataclasses import FrozenInstanceError

import pytest

from core.types import (
    AnswerResult,
    BatchOutcome,
    Chunk,
    Document,
    IndexEntry,
    KnowledgeBase,
    RetrievalResult,
)


def _chunk(text: str = "hello", index: int = 0, offset: int = 0, overlap: int = 0) -> Chunk:
    return Chunk(
        id=f"doc_{index:04d}",
        text=text,
        source_doc_id="doc",
        start_offset=offset,
        sequence_index=index,
        overlap=overlap,
    )


class TestDocument:
    def test_round_trip_dict(self) -> None:
        doc = Document(id="kb", text="Some text", metadata={"topics": ["a"]})
        assert Document.from_dict(doc.to_dict()) == doc

    def test_frozen(self) -> None:
        doc = Document(id="kb", text="x")
        with pytest.raises(FrozenInstanceError):
            doc.text = "y"  # type: ignore[misc]


class TestKnowledgeBase:
    def test_version_is_content_hash(self) -> None:
        a = KnowledgeBase.from_text("INSAT-3D is a meteorological satellite.")
        b = KnowledgeBase.from_text("INSAT-3D is a meteorological satellite.")
        c = KnowledgeBase.from_text("Oceansat-2 carries a scatterometer.")

        assert a.version == b.version
        assert a.version != c.version
        assert len(a.version) == 16

    def test_from_text_defaults(self) -> None:
        kb = KnowledgeBase.from_text("text", metadata={"topics": ["x"]})
        assert kb.document.id == "knowledge_base"
        assert kb.text == "text"
        assert kb.document.metadata == {"topics": ["x"]}

    def test_version_ignores_metadata(self) -> None:
        a = KnowledgeBase.from_text("same", metadata={"last_updated": "2024-01-01"})
        b = KnowledgeBase.from_text("same", metadata={"last_updated": "2024-06-01"})
        assert a.version == b.version


class TestChunk:
    def test_offsets_and_new_text(self) -> None:
        chunk = _chunk(text="abcdef", offset=10, overlap=2)
        assert chunk.end_offset == 16
        assert chunk.new_text == "cdef"

    def test_round_trip_dict(self) -> None:
        chunk = _chunk(text="abc", index=3, offset=7, overlap=1)
        assert Chunk.from_dict(chunk.to_dict()) == chunk

    def test_from_dict_defaults(self) -> None:
        chunk = Chunk.from_dict(
            {"id": "c", "text": "t", "source_doc_id": "d", "start_offset": 0, "sequence_index": 0}
        )
        assert chunk.overlap == 0
        assert chunk.metadata == {}


class TestResults:
    def test_index_entry_key(self) -> None:
        entry = IndexEntry(chunk=_chunk(index=5), vector=(1.0, 0.0))
        assert entry.key == ("doc", 5)

    def test_retrieval_result_shortcuts(self) -> None:
        entry = IndexEntry(chunk=_chunk(text="ctx"), vector=(1.0,))
        result = RetrievalResult(entry=entry, score=0.5, rank=1)
        assert result.text == "ctx"
        assert result.chunk is entry.chunk

    def test_answer_result_without_metadata(self) -> None:
        assert AnswerResult(answer="A", query="Q").to_dict() == {"answer": "A"}

    def test_answer_result_with_metadata(self) -> None:
        result = AnswerResult(answer="A", query="Q", metadata={"total_chunks": 2})
        assert result.to_dict() == {"answer": "A", "metadata": {"total_chunks": 2}}

    def test_batch_outcome(self) -> None:
        ok = BatchOutcome(query="q", index=1, status="success", answer="a")
        failed = BatchOutcome(query="", index=2, status="error", error="bad")

        assert ok.ok
        assert not failed.ok
        assert failed.to_dict() == {
            "query": "",
            "index": 2,
            "status": "error",
            "answer": None,
            "error": "bad",
        }
