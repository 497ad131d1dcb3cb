"""Local embedding for offline runs and tests.

FakeEmbedding needs no network or model download. It hashes word tokens
into a fixed number of buckets (the "hashing trick"), so texts that share
words get similar vectors and cosine retrieval behaves sensibly on small
corpora.
"""

import hashlib
import math
import re
from typing import Any

from core.trace.trace_context import TraceContext
from libs.embedding.base_embedding import BaseEmbedding, EmbeddingResult
from observability.logger import get_logger

logger = get_logger(__name__)

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")


class FakeEmbedding(BaseEmbedding):
    """Deterministic feature-hashing embedding.

    Vectors are stable across processes (hashlib, not hash()), and
    L2-normalized. Text with no tokens maps to a fixed unit vector so every
    input gets a usable embedding.

    Attributes:
        dimensions: Dimensions of the embeddings
    """

    DEFAULT_DIMENSIONS = 384

    def __init__(
        self,
        dimensions: int | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the Fake Embedding.

        Args:
            dimensions: Embedding dimensions. Defaults to 384.
            **kwargs: Remote-provider settings (api_key, model, ...) are accepted
                and ignored so the factory can pass them uniformly.
        """
        self._dimensions = dimensions or self.DEFAULT_DIMENSIONS
        self._model = "feature-hashing"

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _bucket(self, token: str) -> tuple[int, float]:
        digest = hashlib.md5(token.encode("utf-8")).digest()
        index = int.from_bytes(digest[:4], "big") % self._dimensions
        sign = 1.0 if digest[4] % 2 == 0 else -1.0
        return index, sign

    def _vectorize(self, text: str) -> list[float]:
        vector = [0.0] * self._dimensions
        tokens = _TOKEN_PATTERN.findall(text.lower())
        for token in tokens:
            index, sign = self._bucket(token)
            vector[index] += sign

        norm = math.sqrt(sum(x * x for x in vector))
        if norm == 0:
            vector[0] = 1.0
            return vector
        return [x / norm for x in vector]

    def embed(
        self,
        texts: list[str],
        trace: TraceContext | None = None,
        **kwargs: Any
    ) -> EmbeddingResult:
        if not texts:
            return EmbeddingResult(vectors=[])

        logger.debug(
            f"Fake embedding request: text_count={len(texts)}, "
            f"dimensions={self._dimensions}"
        )
        return EmbeddingResult(vectors=[self._vectorize(text) for text in texts])

    def __repr__(self) -> str:
        return f"FakeEmbedding(provider={self.provider_name}, dimensions={self.dimensions})"
