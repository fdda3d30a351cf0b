"""
Stream session base class.

A session drives one WebSocket through

    IDLE -> CONNECTING -> [AUTHENTICATING ->] SUBSCRIBING -> STREAMING

and then forwards every decoded frame to the consumer. A transport failure
moves the session to FAILED and is re-raised; the session never reconnects by
itself (see ``libs.alpaca.supervisor`` for the caller-level policy). Decode
failures are logged and the frame is skipped.

Each call to ``_run`` is an independent run that starts from IDLE and owns its
socket until the generator finishes, fails, or is closed by the consumer.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Optional

from libs.alpaca.codec import decode, encode
from libs.alpaca.exceptions import DecodeError, TransportError
from libs.alpaca.transport import StreamConnection, Transport, WebSocketTransport
from libs.alpaca.types import Envelope, SessionState, SubscriptionRequest
from libs.common.logging import log_with_context

logger = logging.getLogger(__name__)


class StreamSession:
    """Shared state machine and receive loop for the Alpaca streams."""

    name = "stream"

    def __init__(self, transport: Optional[Transport] = None):
        self.transport: Transport = transport or WebSocketTransport()
        self._state = SessionState.IDLE
        self._failure_reason: Optional[str] = None
        self._frames_received = 0
        self._decode_failures = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def failure_reason(self) -> Optional[str]:
        """Reason for the last FAILED transition, if any."""
        return self._failure_reason

    def get_session_stats(self) -> dict[str, int | str | None]:
        """
        Get statistics for the current (or last) run.

        Returns:
            Dictionary with state, frame and decode-failure counters
        """
        return {
            "state": self._state.value,
            "frames_received": self._frames_received,
            "decode_failures": self._decode_failures,
            "failure_reason": self._failure_reason,
        }

    def _transition(self, state: SessionState) -> None:
        log_with_context(
            logger,
            "DEBUG",
            f"{self.name}: {self._state.value} -> {state.value}",
            session=self.name,
            state=state.value,
        )
        self._state = state

    async def _send(self, connection: StreamConnection, request: SubscriptionRequest) -> None:
        await connection.send(encode(request))
        logger.info(f"{self.name}: sent '{request.action}' request")

    async def _run(
        self,
        url: str,
        handshake: Callable[[StreamConnection], Awaitable[None]],
        headers: Optional[Mapping[str, str]] = None,
    ) -> AsyncIterator[list[Envelope]]:
        self._state = SessionState.IDLE
        self._failure_reason = None
        self._frames_received = 0
        self._decode_failures = 0

        self._transition(SessionState.CONNECTING)
        try:
            async with self.transport.connect(url, headers) as connection:
                logger.info(f"{self.name}: connected to {url}")
                await handshake(connection)
                self._transition(SessionState.STREAMING)

                while True:
                    frame = await connection.recv()
                    self._frames_received += 1

                    if isinstance(frame, bytes):
                        logger.debug(f"{self.name}: ignoring binary frame ({len(frame)} bytes)")
                        continue

                    try:
                        batch = decode(frame)
                    except DecodeError as e:
                        self._decode_failures += 1
                        logger.warning(f"{self.name}: skipping undecodable frame: {e}")
                        continue

                    if batch:
                        yield batch

        except TransportError as e:
            self._failure_reason = str(e)
            self._transition(SessionState.FAILED)
            logger.error(f"{self.name}: transport failure: {e}")
            raise

        finally:
            if self._state is not SessionState.FAILED:
                self._transition(SessionState.CLOSED)
