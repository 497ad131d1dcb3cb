"""Observability and logging utilities for the knowledge QA pipeline.

This module provides logging infrastructure for the application.

Until configure_logger() runs, each module logger gets its own stderr
handler so library use needs no setup. configure_logger() hands output
over to the root logger and removes those handlers, so every record is
written exactly once.

Design Principles:
    - Observable: All components should emit structured logs
    - Fail-Safe: Logging failures should not crash the application
    - Non-Leaking: Credentials are masked before they reach a log line
"""

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Handlers installed by get_logger(), keyed by logger name
_module_handlers: dict[str, logging.Handler] = {}
_root_configured = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with standard configuration.

    Args:
        name: Logger name (typically __name__ from the calling module)

    Returns:
        Configured Logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Index built", extra={"version": "abc123"})
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers if already configured
    if not logger.handlers and not _root_configured:
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            fmt=DEFAULT_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        _module_handlers[name] = handler

    if not logger.level:
        logger.setLevel(logging.INFO)

    return logger


def configure_logger(
    level: str = "INFO",
    format: str | None = None,
    log_file: str | None = None
) -> None:
    """Configure the root logger for the application.

    Module loggers created by get_logger() lose their own handlers and are
    re-levelled, so a DEBUG setting in settings.yaml reaches every
    component and each record is emitted once, through the root.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        format: Custom log format string (optional)
        log_file: Path to log file (optional, for file logging)

    Example:
        >>> configure_logger(level="DEBUG", log_file="./app.log")
    """
    global _root_configured

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
    }
    log_level = level_map.get(level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_formatter = logging.Formatter(fmt=format or DEFAULT_FORMAT)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(console_formatter)
        root_logger.addHandler(file_handler)

    for name, handler in _module_handlers.items():
        module_logger = logging.getLogger(name)
        module_logger.removeHandler(handler)
        module_logger.setLevel(log_level)
    _root_configured = True


def mask_secret(value: str | None) -> str:
    """Render a credential for logs without revealing it.

    Args:
        value: The secret (API key, token) or None

    Returns:
        'NOT_SET', 'INVALID_LENGTH' for values under 8 characters,
        otherwise the first and last four characters around '...'.

    Example:
        >>> mask_secret("sk-1234567890abcd")
        'sk-1...abcd'
    """
    if not value:
        return "NOT_SET"
    if len(value) < 8:
        return "INVALID_LENGTH"
    return f"{value[:4]}...{value[-4:]}"
