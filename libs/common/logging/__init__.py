"""Centralized structured logging library.

Usage:
    # At startup
    from libs.common.logging import configure_logging
    configure_logging(service_name="alpaca_feeds", log_level="INFO")

    # Anywhere
    from libs.common.logging import get_logger, log_with_context
    logger = get_logger(__name__)
    log_with_context(logger, "INFO", "Subscribed", symbols=["AAPL"])
"""

from libs.common.logging.config import (
    RedactSecretsFilter,
    configure_logging,
    get_logger,
    log_with_context,
)
from libs.common.logging.formatter import JSONFormatter

__all__ = [
    "configure_logging",
    "get_logger",
    "log_with_context",
    "RedactSecretsFilter",
    "JSONFormatter",
]
