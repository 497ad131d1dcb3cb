# Embedding - Dense encoding of chunks into index entries
from ingestion.embedding.dense_encoder import DenseEncoder

__all__ = ["DenseEncoder"]
