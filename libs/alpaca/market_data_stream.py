"""
Alpaca Market Data Stream Session

Streams trades, quotes and minute bars for a set of symbols.
"""

import logging
from collections.abc import AsyncIterator, Iterable
from functools import partial
from typing import Literal, Optional

from libs.alpaca.session import StreamSession
from libs.alpaca.transport import StreamConnection, Transport
from libs.alpaca.types import Envelope, SessionState, SubscriptionRequest

logger = logging.getLogger(__name__)

MARKET_DATA_STREAM_HOST = "stream.data.alpaca.markets"


class MarketDataStreamSession(StreamSession):
    """
    WebSocket session for the stock market-data stream.

    Credentials travel as request headers, so the only control message is a
    single ``subscribe`` covering trades, quotes and bars for every symbol.
    Every decoded batch is forwarded as-is; filtering by envelope kind is left
    to the consumer.

    Example:
        session = MarketDataStreamSession(api_key="key", secret_key="secret")

        async for batch in session.stream({"AAPL", "MSFT"}):
            for envelope in batch:
                if envelope.kind == "quote":
                    print(envelope.symbol, envelope.mid_price)
    """

    name = "market_data_stream"

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        feed: Literal["iex", "sip"] = "iex",
        transport: Optional[Transport] = None,
        url: Optional[str] = None,
    ):
        """
        Initialize market data stream session.

        Args:
            api_key: Alpaca API key ID
            secret_key: Alpaca API secret key
            feed: Data feed, "iex" (free) or "sip" (default: "iex")
            transport: WebSocket transport (default: WebSocketTransport)
            url: Override the stream URL (tests, proxies)
        """
        super().__init__(transport)
        self.api_key = api_key
        self._secret_key = secret_key
        self.feed = feed
        self.url = url or f"wss://{MARKET_DATA_STREAM_HOST}/v2/{feed}"
        self._symbols: list[str] = []

    @property
    def symbols(self) -> list[str]:
        """Symbols subscribed by the current (or last) run."""
        return list(self._symbols)

    def _headers(self) -> dict[str, str]:
        return {
            "APCA-API-KEY-ID": self.api_key,
            "APCA-API-SECRET-KEY": self._secret_key,
        }

    async def _subscribe(self, symbols: list[str], connection: StreamConnection) -> None:
        self._transition(SessionState.SUBSCRIBING)
        await self._send(
            connection,
            SubscriptionRequest.subscribe(trades=symbols, quotes=symbols, bars=symbols),
        )
        logger.info(f"{self.name}: subscribed to {len(symbols)} symbols: {symbols}")

    def stream(self, symbols: Iterable[str]) -> AsyncIterator[list[Envelope]]:
        """
        Open the market-data stream for ``symbols`` and yield decoded batches.

        Args:
            symbols: Symbols to subscribe; trades, quotes and bars all get the
                same list

        Raises:
            ValueError: If no symbols are given
            StreamConnectionError: If the WebSocket cannot be opened
            StreamClosedError: If the socket closes or a read fails
        """
        unique = sorted({symbol.strip().upper() for symbol in symbols if symbol.strip()})
        if not unique:
            raise ValueError("At least one symbol is required")
        self._symbols = unique
        return self._run(self.url, partial(self._subscribe, unique), self._headers())
