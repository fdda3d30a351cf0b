"""Centralized logging configuration.

Example:
    >>> from libs.common.logging.config import configure_logging
    >>> logger = configure_logging(
    ...     service_name="alpaca_feeds",
    ...     log_level="INFO",
    ...     redact=[settings.alpaca_api_secret_key.get_secret_value()],
    ... )
"""

import logging
import sys
from collections.abc import Iterable
from typing import Optional

from libs.common.logging.formatter import JSONFormatter

REDACTED = "***"


class RedactSecretsFilter(logging.Filter):
    """Logging filter that masks known secret values in messages.

    The record message is rendered once, masked, and stored back without
    arguments so formatters see the redacted text.
    """

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__()
        self.secrets = tuple(secret for secret in secrets if secret)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        for secret in self.secrets:
            message = message.replace(secret, REDACTED)
        record.msg = message
        record.args = None
        return True


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    include_context: bool = True,
    redact: Optional[Iterable[str]] = None,
) -> logging.Logger:
    """Configure structured JSON logging on the root logger.

    Call once at startup. Existing root handlers are replaced.

    Args:
        service_name: Name reported in every record (e.g., "alpaca_feeds")
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_context: Whether to include the context dict in output
        redact: Secret values to mask in every message

    Returns:
        Configured root logger instance

    Raises:
        ValueError: If log_level is invalid
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter(service_name=service_name, include_context=include_context))
    handler.addFilter(RedactSecretsFilter(redact or ()))

    root_logger.addHandler(handler)

    # websockets logs every frame at DEBUG
    logging.getLogger("websockets").setLevel(max(numeric_level, logging.INFO))

    return root_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context_fields: object,
) -> None:
    """Log a message with context fields.

    Example:
        >>> log_with_context(logger, "INFO", "Snapshot emitted", positions=3, orders=1)
        # Output includes: "context": {"positions": 3, "orders": 1}
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra={"context": context_fields})
