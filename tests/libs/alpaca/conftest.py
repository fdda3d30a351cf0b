"""
Pytest fixtures for Alpaca client tests.

Provides an in-memory WebSocket transport so session tests can script inbound
frames and inspect outbound control messages without a network.
"""

import asyncio
import json
from collections import deque
from collections.abc import Callable, Iterable
from contextlib import asynccontextmanager
from typing import Any, Optional

import pytest

from libs.alpaca.exceptions import StreamClosedError

# Frame sentinel: recv() blocks until the consumer cancels
HANG = object()


class FakeConnection:
    """Scripted connection: recv() pops frames, then reports a closed socket."""

    def __init__(self, frames: Iterable[Any]):
        self._frames = deque(frames)
        self.sent: list[str] = []
        self.closed = False

    async def send(self, text: str) -> None:
        if self.closed:
            raise StreamClosedError("send on closed socket")
        self.sent.append(text)

    async def recv(self) -> str | bytes:
        await asyncio.sleep(0)
        if not self._frames:
            raise StreamClosedError("WebSocket closed (code=1000)", code=1000)
        frame = self._frames.popleft()
        if frame is HANG:
            await asyncio.Future()
        if isinstance(frame, BaseException):
            raise frame
        return frame

    @property
    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent]


class FakeTransport:
    """Transport handing out FakeConnections and recording every connect()."""

    def __init__(self, frames: Iterable[Any] = (), connect_error: Optional[Exception] = None):
        self.frames = list(frames)
        self.connect_error = connect_error
        self.connections: list[FakeConnection] = []
        self.urls: list[str] = []
        self.headers: list[Optional[dict[str, str]]] = []

    @asynccontextmanager
    async def connect(self, url: str, headers=None):
        self.urls.append(url)
        self.headers.append(dict(headers) if headers else None)
        if self.connect_error is not None:
            raise self.connect_error
        connection = FakeConnection(self.frames)
        self.connections.append(connection)
        try:
            yield connection
        finally:
            connection.closed = True

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture()
def make_transport() -> Callable[..., FakeTransport]:
    """Factory fixture: make_transport(frames, connect_error=None)."""
    return FakeTransport


@pytest.fixture()
def hang() -> object:
    return HANG


def frame(*items: dict[str, Any]) -> str:
    return json.dumps(list(items))


@pytest.fixture()
def make_frame() -> Callable[..., str]:
    """Factory fixture: make_frame(*objects) -> JSON array text."""
    return frame


@pytest.fixture()
def trade_msg() -> dict[str, Any]:
    return {
        "T": "t",
        "S": "AAPL",
        "i": 96921,
        "x": "V",
        "p": 187.45,
        "s": 100,
        "t": "2024-03-01T15:30:00.123Z",
        "c": ["@"],
        "z": "C",
    }


@pytest.fixture()
def quote_msg() -> dict[str, Any]:
    return {
        "T": "q",
        "S": "AAPL",
        "bx": "V",
        "bp": 187.40,
        "bs": 3,
        "ax": "V",
        "ap": 187.50,
        "as": 5,
        "t": "2024-03-01T15:30:00.456Z",
        "c": ["R"],
        "z": "C",
    }


@pytest.fixture()
def bar_msg() -> dict[str, Any]:
    return {
        "T": "b",
        "S": "MSFT",
        "o": 410.1,
        "h": 411.0,
        "l": 409.8,
        "c": 410.75,
        "v": 12034,
        "t": "2024-03-01T15:30:00Z",
        "n": 152,
        "vw": 410.42,
    }


@pytest.fixture()
def fill_msg() -> dict[str, Any]:
    return {
        "event": "fill",
        "timestamp": "2024-03-01T15:30:01.000Z",
        "price": "187.45",
        "qty": "10",
        "position_qty": "10",
        "execution_id": "exec-1",
        "order": {
            "id": "ord-42",
            "client_order_id": "client-42",
            "symbol": "AAPL",
            "side": "buy",
            "type": "market",
            "qty": "10",
            "filled_qty": "10",
            "filled_avg_price": "187.45",
            "status": "filled",
            "time_in_force": "day",
        },
    }
