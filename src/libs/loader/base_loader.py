"""Base Loader interface for knowledge base files.

This module defines the abstract base class for all knowledge loaders.
Each loader reads one file format and produces a standardized Document,
which load_knowledge() wraps into a versioned KnowledgeBase snapshot.

Design Principles:
    - Abstract Interface: BaseLoader defines the contract
    - Opaque Content: Loaders do not chunk or interpret the text
    - Metadata Enrichment: Each loader should extract relevant metadata
"""

from abc import ABC, abstractmethod
from pathlib import Path

from core.errors import RagError
from core.types import Document, KnowledgeBase


class LoaderError(RagError):
    """Base exception for loader operations."""

    pass


class LoadError(LoaderError):
    """Failed to load document."""

    pass


class UnsupportedFormatError(LoaderError):
    """File format not supported by this loader."""

    pass


class BaseLoader(ABC):
    """Abstract base class for knowledge loaders.

    All loaders should inherit from this class and implement the `load`
    method. Loaders are responsible for:
    1. Reading file content from the specified path
    2. Extracting relevant metadata (source_path, topics, last_updated)
    3. Producing a standardized Document object

    Attributes:
        supported_extensions: List of file extensions this loader supports.
    """

    # Override in subclasses
    supported_extensions: list[str] = []

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this loader provider.

        Returns:
            Provider identifier (e.g., 'json', 'text')
        """
        pass

    @abstractmethod
    def load(self, path: str | Path) -> Document:
        """Load a document from the specified path.

        Args:
            path: Path to the file to load.

        Returns:
            Document object containing text content and metadata.

        Raises:
            LoadError: If the file cannot be read or parsed.
            UnsupportedFormatError: If the file format is not supported.
        """
        pass

    def load_knowledge(self, path: str | Path) -> KnowledgeBase:
        """Load a file as an immutable, versioned knowledge snapshot."""
        return KnowledgeBase.from_document(self.load(path))

    def can_load(self, path: str | Path) -> bool:
        """Check if this loader can handle the given file.

        Args:
            path: Path to check.

        Returns:
            True if the file extension is supported.
        """
        path = Path(path)
        ext = path.suffix.lower()
        return ext in self.supported_extensions

    def _check_path(self, path: str | Path) -> Path:
        path = Path(path)
        if not self.can_load(path):
            raise UnsupportedFormatError(
                f"{self.provider_name} loader does not support '{path.suffix}' files: {path}"
            )
        if not path.is_file():
            raise LoadError(f"Knowledge file not found: {path}")
        return path
