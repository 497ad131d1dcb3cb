"""Document Chunking Module.

Classes:
    DocumentChunker: Adapter that converts Document to List[Chunk]
"""

from ingestion.chunking.document_chunker import DocumentChunker

__all__ = [
    "DocumentChunker",
]
