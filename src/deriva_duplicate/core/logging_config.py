"""Centralized logging configuration for deriva_duplicate.

This module provides a consistent logging setup for all duplication components.
It configures the 'deriva_duplicate' logger namespace and provides utilities for
adjusting log levels throughout the library.

The module provides:
    - get_logger(): Get the standard deriva_duplicate logger
    - configure_logging(): Set up logging with specified levels
    - LoggerMixin: Mixin class providing _logger attribute

Example:
    >>> from deriva_duplicate.core.logging_config import configure_logging, get_logger
    >>> import logging
    >>>
    >>> configure_logging(level=logging.DEBUG)
    >>> logger = get_logger("orchestrator")
    >>> logger.info("Duplicating record 1-ABCD")
"""

import logging
from typing import Any

# The standard logger name used throughout deriva_duplicate
LOGGER_NAME = "deriva_duplicate"

# Default logging format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Related library loggers that should be configured together
RELATED_LOGGERS = [
    "deriva",
    "urllib3",
]


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a deriva_duplicate logger.

    Args:
        name: Optional sub-logger name. If provided, returns a child logger
              under the deriva_duplicate namespace (e.g., 'deriva_duplicate.root').
              If None, returns the main deriva_duplicate logger.

    Returns:
        The configured logger instance.
    """
    if name is None:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def configure_logging(
    level: int = logging.WARNING,
    deriva_level: int | None = None,
    format_string: str = DEFAULT_FORMAT,
    handler: logging.Handler | None = None,
) -> logging.Logger:
    """Configure logging for deriva_duplicate and related libraries.

    Args:
        level: Log level for the deriva_duplicate logger. Defaults to WARNING.
        deriva_level: Log level for related libraries (deriva, urllib3).
                     If None, uses the same level as 'level'.
        format_string: Format string for log messages.
        handler: Optional handler to add to the logger. If None, uses
                StreamHandler with the specified format.

    Returns:
        The configured deriva_duplicate logger.
    """
    if deriva_level is None:
        deriva_level = level

    logger = get_logger()
    logger.setLevel(level)

    if not logger.handlers:
        if handler is None:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(handler)

    for logger_name in RELATED_LOGGERS:
        logging.getLogger(logger_name).setLevel(deriva_level)

    return logger


def apply_logger_overrides(overrides: dict[str, Any]) -> None:
    """Apply logger level overrides from a configuration dictionary.

    Args:
        overrides: Dictionary mapping logger names to log levels.

    Example:
        >>> apply_logger_overrides({
        ...     "deriva": logging.WARNING,
        ...     "deriva_duplicate.dependents": logging.DEBUG,
        ... })
    """
    for name, level in overrides.items():
        logging.getLogger(name).setLevel(level)


class LoggerMixin:
    """Mixin class that provides a _logger attribute.

    Classes that inherit from this mixin get a _logger property that
    returns a child logger under the deriva_duplicate namespace, named after
    the class.
    """

    @property
    def _logger(self) -> logging.Logger:
        """Get the logger for this class."""
        return get_logger(self.__class__.__name__)


__all__ = [
    "LOGGER_NAME",
    "get_logger",
    "configure_logging",
    "apply_logger_overrides",
    "LoggerMixin",
]
