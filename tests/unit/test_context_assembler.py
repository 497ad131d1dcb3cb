"""Tests for ContextAssembler prompt construction."""

import pytest

from core.errors import ConfigurationError
from core.types import Chunk, IndexEntry, RetrievalResult
from core.query_engine.context_assembler import (
    DEFAULT_PROMPT_TEMPLATE,
    ContextAssembler,
    context_label,
    load_prompt_template,
)


def result(text: str, rank: int, index: int | None = None) -> RetrievalResult:
    index = rank - 1 if index is None else index
    chunk = Chunk(
        id=f"kb_{index:04d}",
        text=text,
        source_doc_id="kb",
        start_offset=0,
        sequence_index=index,
    )
    return RetrievalResult(entry=IndexEntry(chunk=chunk, vector=(1.0,)), score=1.0 / rank, rank=rank)


class TestBuildContext:
    def test_labels_in_rank_order(self):
        context = ContextAssembler().build_context(
            [result("second", 2), result("first", 1), result("third", 3)]
        )
        assert context == "[Context 1]\nfirst\n\n[Context 2]\nsecond\n\n[Context 3]\nthird"

    def test_empty_results(self):
        assert ContextAssembler().build_context([]) == ""

    def test_context_label(self):
        assert context_label(4) == "[Context 4]"


class TestAssemble:
    def test_default_template_shape(self):
        prompt = ContextAssembler().assemble(
            [result("INSAT-3D is a meteorological satellite.", 1)], "What is INSAT-3D?"
        )

        assert prompt.startswith("You are MOSDAC AI Help Bot")
        assert "Context Information:\n[Context 1]\nINSAT-3D is a meteorological satellite." in prompt
        assert "User Question: What is INSAT-3D?" in prompt
        assert prompt.rstrip().endswith("Answer:")
        assert prompt.index("[Context 1]") < prompt.index("User Question:")

    def test_query_inserted_verbatim(self):
        query = "  What about {context} and {0}?  "
        prompt = ContextAssembler("C:{context}|Q:{question}").assemble([result("x", 1)], query)
        assert prompt == f"C:[Context 1]\nx|Q:{query}"

    def test_braces_in_context_are_literal(self):
        prompt = ContextAssembler("{context}\n{question}").assemble(
            [result("json {\"a\": {question}}", 1)], "q"
        )
        assert prompt == "[Context 1]\njson {\"a\": {question}}\nq"

    def test_no_results_still_has_question(self):
        prompt = ContextAssembler().assemble([], "Anything?")
        assert "User Question: Anything?" in prompt


class TestTemplateValidation:
    @pytest.mark.parametrize(
        "template",
        ["no placeholders", "only {context}", "only {question}", "{question} before {context}"],
    )
    def test_invalid_templates(self, template):
        with pytest.raises(ConfigurationError):
            ContextAssembler(template)

    def test_template_property(self):
        assert ContextAssembler().template == DEFAULT_PROMPT_TEMPLATE

    def test_from_file(self, tmp_path):
        path = tmp_path / "prompt.txt"
        path.write_text("Docs:\n{context}\nQ: {question}\nA:", encoding="utf-8")

        assembler = ContextAssembler.from_file(path)
        assert assembler.assemble([result("d", 1)], "q") == "Docs:\n[Context 1]\nd\nQ: q\nA:"

    def test_load_missing_template(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_prompt_template(tmp_path / "missing.txt")
