# Ingestion - Knowledge text to index entries
"""Chunking and dense encoding of the knowledge base."""
from ingestion.chunking import DocumentChunker
from ingestion.embedding import DenseEncoder

__all__ = ["DocumentChunker", "DenseEncoder"]
