# Loader - Knowledge base file loaders

from libs.loader.base_loader import (
    BaseLoader,
    LoaderError,
    LoadError,
    UnsupportedFormatError,
)

from libs.loader.knowledge_loader import (
    JsonKnowledgeLoader,
    TextLoader,
    load_knowledge_base,
)

__all__ = [
    # Base
    "BaseLoader",
    "LoaderError",
    "LoadError",
    "UnsupportedFormatError",
    # Implementations
    "JsonKnowledgeLoader",
    "TextLoader",
    "load_knowledge_base",
]
