"""
WebSocket transport for the Alpaca streams.

Thin wrapper over the ``websockets`` asyncio client that maps library errors
onto the stream exception hierarchy. A connection is owned by exactly one
session and is closed when the session's ``async with`` block exits, including
on cancellation.
"""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Optional, Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from libs.alpaca.exceptions import StreamClosedError, StreamConnectionError

logger = logging.getLogger(__name__)


class StreamConnection(Protocol):
    """One open WebSocket as seen by a session."""

    async def send(self, text: str) -> None: ...

    async def recv(self) -> str | bytes: ...


class Transport(Protocol):
    """Opens WebSocket connections for sessions."""

    def connect(
        self, url: str, headers: Optional[Mapping[str, str]] = None
    ) -> AbstractAsyncContextManager[StreamConnection]: ...


class WebSocketConnection:
    """
    Open WebSocket connection.

    ``recv`` returns one frame at a time: ``str`` for text frames, ``bytes``
    for binary frames. Any closure, clean or not, raises StreamClosedError.
    """

    def __init__(self, websocket: ClientConnection, url: str):
        self._websocket = websocket
        self.url = url

    async def send(self, text: str) -> None:
        try:
            await self._websocket.send(text)
        except ConnectionClosed as e:
            raise self._closed_error(e) from e

    async def recv(self) -> str | bytes:
        try:
            return await self._websocket.recv()
        except ConnectionClosed as e:
            raise self._closed_error(e) from e
        except WebSocketException as e:
            raise StreamClosedError(f"WebSocket read failed on {self.url}: {e}") from e

    def _closed_error(self, e: ConnectionClosed) -> StreamClosedError:
        close = e.rcvd or e.sent
        code = close.code if close else None
        reason = close.reason if close else None
        return StreamClosedError(
            f"WebSocket {self.url} closed (code={code}, reason={reason!r})",
            code=code,
            reason=reason,
        )


class WebSocketTransport:
    """
    Opens TLS WebSocket connections with ``websockets``.

    Example:
        transport = WebSocketTransport(open_timeout=10.0)
        async with transport.connect("wss://paper-api.alpaca.markets/stream") as conn:
            await conn.send('{"action": "auth", ...}')
            frame = await conn.recv()
    """

    def __init__(
        self,
        open_timeout: float = 10.0,
        close_timeout: float = 2.0,
        ping_interval: Optional[float] = 20.0,
        max_size: Optional[int] = 2**22,
    ):
        """
        Initialize transport.

        Args:
            open_timeout: Seconds allowed for TCP + TLS + WebSocket handshake
            close_timeout: Seconds to wait for the closing handshake
            ping_interval: Keepalive ping interval in seconds (None disables)
            max_size: Largest accepted inbound frame in bytes
        """
        self.open_timeout = open_timeout
        self.close_timeout = close_timeout
        self.ping_interval = ping_interval
        self.max_size = max_size

    @asynccontextmanager
    async def connect(
        self, url: str, headers: Optional[Mapping[str, str]] = None
    ) -> AsyncIterator[WebSocketConnection]:
        """
        Open a WebSocket and yield it; the socket is closed on exit.

        Raises:
            StreamConnectionError: If the connection cannot be established
        """
        try:
            websocket = await connect(
                url,
                additional_headers=dict(headers) if headers else None,
                open_timeout=self.open_timeout,
                close_timeout=self.close_timeout,
                ping_interval=self.ping_interval,
                max_size=self.max_size,
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            raise StreamConnectionError(f"Failed to connect to {url}: {e}") from e

        logger.debug(f"WebSocket connected: {url}")
        try:
            yield WebSocketConnection(websocket, url)
        finally:
            await websocket.close()
            logger.debug(f"WebSocket closed: {url}")
