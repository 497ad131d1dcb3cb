# Embedding - Embedding client interfaces

from libs.embedding.base_embedding import (
    BaseEmbedding,
    EmbeddingResult,
    EmbeddingConfigurationError,
    UnknownEmbeddingProviderError,
)

from libs.embedding.gemini_embedding import GeminiEmbedding
from libs.embedding.local_embedding import FakeEmbedding
from libs.embedding.openai_embedding import OpenAIEmbedding

__all__ = [
    # Base
    "BaseEmbedding",
    "EmbeddingResult",
    "EmbeddingConfigurationError",
    "UnknownEmbeddingProviderError",
    # Providers
    "FakeEmbedding",
    "GeminiEmbedding",
    "OpenAIEmbedding",
]
