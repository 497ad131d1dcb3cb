"""Core Query Engine - question answering over a knowledge snapshot.

This module provides the context assembler, the index manager and the
RagPipeline orchestrator.
"""

from core.query_engine.context_assembler import (
    DEFAULT_PROMPT_TEMPLATE,
    ContextAssembler,
    load_prompt_template,
)
from core.query_engine.index_manager import IndexGeneration, IndexManager
from core.query_engine.pipeline import RagPipeline

__all__ = [
    "DEFAULT_PROMPT_TEMPLATE",
    "ContextAssembler",
    "load_prompt_template",
    "IndexGeneration",
    "IndexManager",
    "RagPipeline",
]
