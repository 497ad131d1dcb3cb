# Splitter - Text splitting interfaces

from libs.splitter.base_splitter import (
    BaseSplitter,
    SplitResult,
    SplitterError,
    SplitterConfigurationError,
)

from libs.splitter.recursive_splitter import (
    RecursiveSplitter,
)

__all__ = [
    # Base
    "BaseSplitter",
    "SplitResult",
    "SplitterError",
    "SplitterConfigurationError",
    # Implementations
    "RecursiveSplitter",
]
