"""Context Assembler - turns ranked retrieval results into a generation prompt.

The prompt has a fixed shape: a persona instruction, the retrieved chunks
as numbered context blocks in rank order, grounding instructions, then
the user question. The wording lives in a template; the shape does not
change with it.

Usage:
    assembler = ContextAssembler()
    prompt = assembler.assemble(results, "What is INSAT-3D?")
"""

from pathlib import Path
from typing import Sequence

from core.errors import ConfigurationError
from core.types import RetrievalResult
from observability.logger import get_logger

logger = get_logger(__name__)

CONTEXT_PLACEHOLDER = "{context}"
QUESTION_PLACEHOLDER = "{question}"

DEFAULT_PROMPT_TEMPLATE = """You are MOSDAC AI Help Bot, a helpful assistant specializing in space technology, satellite data, and remote sensing. You work for MOSDAC (Meteorological and Oceanographic Satellite Data Archival Centre).

Context Information:
{context}

User Question: {question}

Instructions:
- Answer the question using the information provided in the context above
- Focus on MOSDAC services, satellite data, remote sensing, and space technology
- If the context doesn't contain enough information to answer the question, provide general knowledge about MOSDAC and suggest contacting MOSDAC directly
- Be specific and cite relevant parts of the context when possible
- Keep your answer helpful, professional, and informative
- If multiple perspectives exist in the context, present them clearly

Answer:"""


def context_label(position: int) -> str:
    """Label of the context block at a 1-based position."""
    return f"[Context {position}]"


def load_prompt_template(path: str | Path) -> str:
    """Read a prompt template from disk.

    Raises:
        ConfigurationError: If the file cannot be read
    """
    path = Path(path)
    try:
        template = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read prompt template {path}: {e}") from e

    logger.info(f"Loaded prompt template from {path}")
    return template


class ContextAssembler:
    """Builds the generation prompt from retrieval results.

    Attributes:
        template: Prompt template with {context} and {question} placeholders
    """

    def __init__(self, template: str | None = None) -> None:
        template = template if template is not None else DEFAULT_PROMPT_TEMPLATE
        missing = [
            p for p in (CONTEXT_PLACEHOLDER, QUESTION_PLACEHOLDER) if p not in template
        ]
        if missing:
            raise ConfigurationError(
                f"Prompt template is missing placeholder(s): {', '.join(missing)}"
            )
        # context must come before the question
        if template.index(CONTEXT_PLACEHOLDER) > template.index(QUESTION_PLACEHOLDER):
            raise ConfigurationError(
                "Prompt template must place {context} before {question}"
            )
        self._template = template

    @classmethod
    def from_file(cls, path: str | Path) -> "ContextAssembler":
        return cls(load_prompt_template(path))

    @property
    def template(self) -> str:
        return self._template

    def build_context(self, results: Sequence[RetrievalResult]) -> str:
        """Join retrieved chunks into labeled blocks, most relevant first."""
        ordered = sorted(results, key=lambda r: r.rank)
        return "\n\n".join(
            f"{context_label(position)}\n{result.text}"
            for position, result in enumerate(ordered, start=1)
        )

    def assemble(self, results: Sequence[RetrievalResult], query: str) -> str:
        """Build the full prompt for one query.

        Args:
            results: Ranked retrieval results (may be empty)
            query: The user question, inserted verbatim

        Returns:
            Prompt string ready for the generation client
        """
        context = self.build_context(results)
        # Not str.format(): knowledge text and queries may contain braces
        head, _, rest = self._template.partition(CONTEXT_PLACEHOLDER)
        middle, _, tail = rest.partition(QUESTION_PLACEHOLDER)
        return f"{head}{context}{middle}{query}{tail}"
