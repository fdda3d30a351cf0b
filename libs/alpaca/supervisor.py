"""
Caller-level reconnect policy for stream sessions.

Sessions never reconnect on their own: each run ends with exactly one terminal
TransportError. ``supervise`` wraps a session factory and opens a fresh
session after each failure, with exponential backoff.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from typing import TypeVar

from libs.alpaca.exceptions import StreamConnectionError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def supervise(
    factory: Callable[[], AsyncIterator[T]],
    max_attempts: int = 10,
    base_delay: float = 5.0,
    max_delay: float = 300.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncIterator[T]:
    """
    Re-run a stream factory after transport failures.

    The attempt counter resets whenever a run yields at least one item, so
    only consecutive failures count towards ``max_attempts``. Backoff is
    ``base_delay * 2 ** (attempt - 1)`` capped at ``max_delay``.

    Args:
        factory: Zero-argument callable returning a new session stream
        max_attempts: Consecutive failures tolerated before giving up
        base_delay: First backoff delay in seconds
        max_delay: Backoff cap in seconds
        sleep: Awaitable sleep (injectable for tests)

    Raises:
        StreamConnectionError: If max_attempts consecutive runs failed

    Example:
        session = AccountStreamSession(api_key="key", secret_key="secret")
        async for batch in supervise(session.stream, max_attempts=5):
            handle(batch)
    """
    attempts = 0

    while True:
        try:
            async with aclosing(factory()) as feed:
                async for item in feed:
                    if attempts:
                        logger.info(f"Stream recovered after {attempts} failed attempt(s)")
                        attempts = 0
                    yield item

            logger.info("Stream ended without error, not restarting")
            return

        except TransportError as e:
            attempts += 1
            if attempts >= max_attempts:
                logger.error("Max reconnection attempts reached. Giving up.")
                raise StreamConnectionError(
                    f"Stream failed {attempts} consecutive times, last error: {e}"
                ) from e

            delay = min(base_delay * (2 ** (attempts - 1)), max_delay)
            logger.warning(
                f"Stream error: {e}. Reconnecting in {delay}s "
                f"(attempt {attempts}/{max_attempts})"
            )
            await sleep(delay)
