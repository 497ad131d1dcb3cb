"""Configuration management for the knowledge QA pipeline.

This module provides the Settings dataclass and loading/validation functions.
All configuration values are read from config/settings.yaml.

It also owns RetrievalConfig, the per-call pipeline configuration, and
merge_retrieval_config, the single function that applies per-call
overrides on top of documented defaults.

Design Principles:
    - Config-Driven: All values sourced from settings.yaml
    - Fail-Fast: Missing required fields cause immediate failure
    - Clear Errors: Error messages include field paths (e.g., 'embedding.provider')
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from core.errors import InputValidationError
from observability.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")


@dataclass
class LLMConfig:
    """Generation provider configuration.

    Attributes:
        provider: LLM provider type (openai, gemini) - REQUIRED
        model: Model name to use - REQUIRED
        api_key: API key (falls back to the provider's env var)
        base_url: Base URL for API requests
    """
    provider: str | None = None
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration.

    Attributes:
        provider: Embedding provider type (openai, gemini, fake) - REQUIRED
        model: Model name
        dimensions: Vector dimensions
        api_key: API key for remote providers
        base_url: Base URL for API requests
        batch_size: Maximum texts per embedding request
    """
    provider: str | None = None
    model: str | None = None
    dimensions: int | None = None
    api_key: str | None = None
    base_url: str | None = None
    batch_size: int = 100


@dataclass
class VectorStoreConfig:
    """Vector index configuration.

    Attributes:
        provider: Vector index type (memory)
    """
    provider: str = "memory"


@dataclass(frozen=True)
class RetrievalConfig:
    """Per-call pipeline configuration.

    Frozen: overrides produce a new object via merge_retrieval_config.

    Attributes:
        chunk_size: Target maximum chunk length in characters
        chunk_overlap: Characters repeated at the start of the next chunk
        top_k: Number of chunks retrieved per query
        temperature: Sampling temperature (0.0-1.0)
        max_tokens: Maximum tokens to generate
        timeout: Timeout in seconds for each external call
        separators: Split separators, coarsest first
        batch_concurrency: Parallel queries in a batch (1 = sequential)
        prompt_path: Optional path to a custom prompt template
    """
    chunk_size: int = 1000
    chunk_overlap: int = 200
    top_k: int = 4
    temperature: float = 0.7
    max_tokens: int = 1000
    timeout: float = 30.0
    separators: tuple[str, ...] = DEFAULT_SEPARATORS
    batch_concurrency: int = 1
    prompt_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the fields echoed in answer metadata."""
        return {
            "chunk_size": self.chunk_size,
            "chunk_overlap": self.chunk_overlap,
            "top_k": self.top_k,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


ADVANCED_RETRIEVAL_DEFAULTS = RetrievalConfig(
    chunk_size=800,
    chunk_overlap=150,
    top_k=5,
    temperature=0.3,
    max_tokens=1500,
)


@dataclass
class ObservabilityConfig:
    """Observability and logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to a log file
    """
    log_level: str = "INFO"
    log_file: str | None = None


@dataclass
class Settings:
    """Application settings container.

    Attributes:
        llm: Generation configuration
        embedding: Embedding configuration
        vector_store: Vector index configuration
        retrieval: Default per-call retrieval configuration
        observability: Observability configuration
    """
    llm: LLMConfig = field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vector_store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)


class SettingsError(Exception):
    """Base exception for settings-related errors."""

    pass


class SettingsFileError(SettingsError):
    """Raised when settings file cannot be read or parsed."""

    pass


class SettingsValidationError(SettingsError):
    """Raised when settings validation fails."""

    def __init__(self, message: str, missing_fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing_fields = missing_fields or []


# camelCase aliases accepted from callers (e.g. JSON request bodies)
_CONFIG_ALIASES: dict[str, str] = {
    "chunkSize": "chunk_size",
    "chunkOverlap": "chunk_overlap",
    "topK": "top_k",
    "maxTokens": "max_tokens",
    "maxOutputTokens": "max_tokens",
    "batchConcurrency": "batch_concurrency",
    "promptPath": "prompt_path",
}

_RETRIEVAL_FIELDS = {f.name for f in fields(RetrievalConfig)}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_retrieval_config(config: RetrievalConfig) -> RetrievalConfig:
    """Validate a RetrievalConfig.

    Args:
        config: Configuration to check

    Returns:
        The same config, for chaining

    Raises:
        InputValidationError: If any field is out of range
    """
    if not _is_int(config.chunk_size) or config.chunk_size <= 0:
        raise InputValidationError(
            f"chunk_size must be a positive integer, got {config.chunk_size!r}"
        )
    if not _is_int(config.chunk_overlap) or config.chunk_overlap < 0:
        raise InputValidationError(
            f"chunk_overlap must be a non-negative integer, got {config.chunk_overlap!r}"
        )
    if config.chunk_overlap >= config.chunk_size:
        raise InputValidationError(
            f"chunk_overlap ({config.chunk_overlap}) must be less than "
            f"chunk_size ({config.chunk_size})"
        )
    if not _is_int(config.top_k) or config.top_k <= 0:
        raise InputValidationError(f"topK must be a positive integer, got {config.top_k!r}")
    if not _is_number(config.temperature) or not 0.0 <= config.temperature <= 1.0:
        raise InputValidationError(
            f"temperature must be between 0 and 1, got {config.temperature!r}"
        )
    if not _is_int(config.max_tokens) or config.max_tokens <= 0:
        raise InputValidationError(
            f"max_tokens must be a positive integer, got {config.max_tokens!r}"
        )
    if not _is_number(config.timeout) or config.timeout <= 0:
        raise InputValidationError(f"timeout must be positive, got {config.timeout!r}")
    if not _is_int(config.batch_concurrency) or config.batch_concurrency < 1:
        raise InputValidationError(
            f"batch_concurrency must be >= 1, got {config.batch_concurrency!r}"
        )
    if not config.separators:
        raise InputValidationError("separators must not be empty")
    return config


def merge_retrieval_config(
    base: RetrievalConfig,
    overrides: RetrievalConfig | Mapping[str, Any] | None = None,
) -> RetrievalConfig:
    """Apply per-call overrides on top of a base configuration.

    This is the only place defaults are merged. None values keep the base
    value; unknown keys are logged and ignored.

    Args:
        base: Defaults (settings.retrieval or ADVANCED_RETRIEVAL_DEFAULTS)
        overrides: None, a full RetrievalConfig, or a mapping with
            snake_case or camelCase keys

    Returns:
        Validated RetrievalConfig

    Raises:
        InputValidationError: If the merged config is invalid

    Example:
        >>> cfg = merge_retrieval_config(RetrievalConfig(), {"topK": 2})
        >>> cfg.top_k
        2
    """
    if overrides is None:
        return validate_retrieval_config(base)

    if isinstance(overrides, RetrievalConfig):
        return validate_retrieval_config(overrides)

    if not isinstance(overrides, Mapping):
        raise InputValidationError(
            f"config must be a mapping or RetrievalConfig, got {type(overrides).__name__}"
        )

    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        name = _CONFIG_ALIASES.get(key, key)
        if name not in _RETRIEVAL_FIELDS:
            logger.warning(f"Ignoring unknown retrieval config key: {key}")
            continue
        if value is None:
            continue
        if name == "separators":
            value = tuple(value)
        changes[name] = value

    return validate_retrieval_config(replace(base, **changes))


def _get_required_fields() -> list[str]:
    """Return the dot-notation paths of required settings."""
    return [
        "llm.provider",
        "llm.model",
        "embedding.provider",
    ]


def validate_settings(settings: Settings) -> None:
    """Validate required fields in settings.

    Args:
        settings: Settings object to validate

    Raises:
        SettingsValidationError: If required fields are missing or the
            retrieval defaults are out of range
    """
    missing: list[str] = []

    for field_path in _get_required_fields():
        section_name, field_name = field_path.split(".")
        section = getattr(settings, section_name, None)
        if section is None or getattr(section, field_name, None) in (None, ""):
            missing.append(field_path)

    if missing:
        field_list = ", ".join(missing)
        raise SettingsValidationError(
            f"Missing required configuration fields: {field_list}",
            missing_fields=missing
        )

    try:
        validate_retrieval_config(settings.retrieval)
    except InputValidationError as e:
        raise SettingsValidationError(f"Invalid retrieval configuration: {e}") from e


def _yaml_to_settings(data: dict[str, Any]) -> Settings:
    """Convert YAML dictionary to Settings object.

    Args:
        data: Parsed YAML dictionary

    Returns:
        Settings object
    """
    def _build_llm(data: dict[str, Any]) -> LLMConfig:
        return LLMConfig(
            provider=data.get("provider"),
            model=data.get("model"),
            api_key=data.get("api_key"),
            base_url=data.get("base_url"),
        )

    def _build_embedding(data: dict[str, Any]) -> EmbeddingConfig:
        return EmbeddingConfig(
            provider=data.get("provider"),
            model=data.get("model"),
            dimensions=data.get("dimensions"),
            api_key=data.get("api_key"),
            base_url=data.get("base_url"),
            batch_size=data.get("batch_size", 100),
        )

    def _build_vector_store(data: dict[str, Any]) -> VectorStoreConfig:
        return VectorStoreConfig(
            provider=data.get("provider", "memory"),
        )

    def _build_retrieval(data: dict[str, Any]) -> RetrievalConfig:
        defaults = RetrievalConfig()
        return RetrievalConfig(
            chunk_size=data.get("chunk_size", defaults.chunk_size),
            chunk_overlap=data.get("chunk_overlap", defaults.chunk_overlap),
            top_k=data.get("top_k", defaults.top_k),
            temperature=data.get("temperature", defaults.temperature),
            max_tokens=data.get("max_tokens", defaults.max_tokens),
            timeout=data.get("timeout", defaults.timeout),
            separators=tuple(data.get("separators", defaults.separators)),
            batch_concurrency=data.get("batch_concurrency", defaults.batch_concurrency),
            prompt_path=data.get("prompt_path"),
        )

    def _build_observability(data: dict[str, Any]) -> ObservabilityConfig:
        return ObservabilityConfig(
            log_level=data.get("log_level", "INFO"),
            log_file=data.get("log_file"),
        )

    return Settings(
        llm=_build_llm(data.get("llm") or {}),
        embedding=_build_embedding(data.get("embedding") or {}),
        vector_store=_build_vector_store(data.get("vector_store") or {}),
        retrieval=_build_retrieval(data.get("retrieval") or {}),
        observability=_build_observability(data.get("observability") or {}),
    )


def load_settings(path: str | Path = "config/settings.yaml") -> Settings:
    """Load settings from a YAML file.

    Args:
        path: Path to the settings YAML file (default: config/settings.yaml)

    Returns:
        Settings object with all configuration loaded

    Raises:
        SettingsFileError: If the file cannot be read or parsed
        SettingsValidationError: If required fields are missing

    Example:
        >>> settings = load_settings()
        >>> print(settings.llm.provider)
        gemini
    """
    path = Path(path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise SettingsFileError(f"Settings file not found: {path}") from e
    except yaml.YAMLError as e:
        raise SettingsFileError(f"Invalid YAML in settings file: {e}") from e

    if not isinstance(data, dict):
        raise SettingsFileError(f"Settings file must contain a mapping: {path}")

    settings = _yaml_to_settings(data)
    validate_settings(settings)

    return settings


def get_effective_settings(
    path: str | Path = "config/settings.yaml",
    overrides: dict[str, Any] | None = None
) -> Settings:
    """Load settings with optional runtime overrides.

    Args:
        path: Path to the settings YAML file
        overrides: Optional dictionary of field paths to override.
                   Use dot-notation (e.g., {"retrieval.top_k": 2})

    Returns:
        Settings object with overrides applied

    Example:
        >>> settings = get_effective_settings(
        ...     overrides={"llm.provider": "openai"}
        ... )
        >>> settings.llm.provider
        openai
    """
    settings = load_settings(path)

    for field_path, value in (overrides or {}).items():
        section_name, field_name = field_path.split(".", 1)
        section = getattr(settings, section_name)
        if not hasattr(section, field_name):
            raise SettingsValidationError(f"Unknown settings field: {field_path}")
        # replace() works for both the mutable sections and frozen RetrievalConfig
        setattr(settings, section_name, replace(section, **{field_name: value}))

    validate_settings(settings)
    return settings
