"""Knowledge file loaders.

JsonKnowledgeLoader reads the knowledge export format:

    {
        "content": "MOSDAC (Meteorological and Oceanographic ...",
        "metadata": {"topics": ["satellites", ...], "lastUpdated": "2024-06-01"}
    }

TextLoader reads plain text or Markdown files as-is.
"""

import json
from pathlib import Path
from typing import Any

from core.types import Document, KnowledgeBase
from libs.loader.base_loader import BaseLoader, LoadError, UnsupportedFormatError
from observability.logger import get_logger

logger = get_logger(__name__)


class JsonKnowledgeLoader(BaseLoader):
    """Loader for JSON knowledge exports."""

    supported_extensions = [".json"]

    @property
    def provider_name(self) -> str:
        return "json"

    def load(self, path: str | Path) -> Document:
        path = self._check_path(path)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError(f"Cannot read knowledge file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise LoadError(f"Invalid JSON in knowledge file {path}: {e}") from e

        if not isinstance(data, dict):
            raise LoadError(f"Knowledge file must contain a JSON object: {path}")

        content = data.get("content")
        if not isinstance(content, str):
            raise LoadError(f"Knowledge file has no 'content' string: {path}")

        metadata = self._extract_metadata(data.get("metadata") or {}, path)
        logger.info(
            f"Loaded knowledge base: path={path}, length={len(content)}, "
            f"topics={len(metadata['topics'])}"
        )
        return Document(id=path.stem, text=content, metadata=metadata)

    @staticmethod
    def _extract_metadata(raw: Any, path: Path) -> dict[str, Any]:
        if not isinstance(raw, dict):
            raise LoadError(f"Knowledge 'metadata' must be an object: {path}")

        topics = raw.get("topics") or []
        if not isinstance(topics, list):
            topics = [topics]

        metadata = {
            k: v for k, v in raw.items() if k not in ("topics", "lastUpdated", "last_updated")
        }
        metadata.update(
            {
                "source_path": str(path),
                "topics": [str(t) for t in topics],
                "last_updated": raw.get("lastUpdated", raw.get("last_updated")),
            }
        )
        return metadata


class TextLoader(BaseLoader):
    """Loader for plain text and Markdown knowledge files."""

    supported_extensions = [".txt", ".md"]

    @property
    def provider_name(self) -> str:
        return "text"

    def load(self, path: str | Path) -> Document:
        path = self._check_path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError(f"Cannot read knowledge file {path}: {e}") from e

        logger.info(f"Loaded knowledge base: path={path}, length={len(text)}")
        return Document(
            id=path.stem,
            text=text,
            metadata={"source_path": str(path), "topics": [], "last_updated": None},
        )


_LOADERS: list[BaseLoader] = [JsonKnowledgeLoader(), TextLoader()]


def load_knowledge_base(path: str | Path) -> KnowledgeBase:
    """Load a knowledge file with the loader matching its extension.

    Raises:
        UnsupportedFormatError: No loader handles the extension
        LoadError: The file is missing or malformed
    """
    for loader in _LOADERS:
        if loader.can_load(path):
            return loader.load_knowledge(path)
    raise UnsupportedFormatError(f"No knowledge loader for file: {path}")
