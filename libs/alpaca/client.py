"""
Alpaca client facade.

Bundles the REST collaborator with the three producers:
- account stream (trade updates)
- market-data stream (trades, quotes, bars)
- account snapshot poller

Each producer call builds a new session, so concurrent feeds never share a
socket. Credentials are shared read-only.
"""

import logging
from collections.abc import AsyncIterator, Iterable
from typing import TYPE_CHECKING, Literal, Optional

from libs.alpaca.account_stream import AccountStreamSession
from libs.alpaca.market_data_stream import MarketDataStreamSession
from libs.alpaca.rest_client import AlpacaRestClient
from libs.alpaca.snapshot_poller import DEFAULT_POLL_INTERVAL, AccountSnapshotPoller
from libs.alpaca.supervisor import supervise
from libs.alpaca.transport import Transport, WebSocketTransport
from libs.alpaca.types import AccountSnapshot, Envelope

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)


class AlpacaClient:
    """
    Entry point for applications.

    Example:
        >>> client = AlpacaClient.from_settings()
        >>> async for batch in client.monitor_stock_price({"AAPL"}):
        ...     print(batch)
    """

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        paper: bool = True,
        feed: Literal["iex", "sip"] = "iex",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        rest: Optional[AlpacaRestClient] = None,
        transport: Optional[Transport] = None,
        reconnect_max_attempts: int = 10,
        reconnect_base_delay: float = 5.0,
        reconnect_max_delay: float = 300.0,
        account_stream_url: Optional[str] = None,
        market_data_stream_url: Optional[str] = None,
    ):
        """
        Initialize client.

        Args:
            api_key: Alpaca API key ID
            secret_key: Alpaca API secret key
            paper: Use paper trading endpoints (default: True)
            feed: Market data feed, "iex" or "sip" (default: "iex")
            poll_interval: Seconds between account snapshots (default: 10)
            rest: Pre-built REST collaborator (default: built from credentials)
            transport: WebSocket transport shared by new sessions
            reconnect_max_attempts: Consecutive failures tolerated by supervised streams
            reconnect_base_delay: First reconnect backoff in seconds
            reconnect_max_delay: Reconnect backoff cap in seconds
            account_stream_url: Override the account stream URL (default: from paper)
            market_data_stream_url: Override the market-data stream URL (default: from feed)
        """
        self.api_key = api_key
        self._secret_key = secret_key
        self.paper = paper
        self.feed = feed
        self.poll_interval = poll_interval
        self.rest = rest or AlpacaRestClient(api_key, secret_key, paper=paper)
        self.transport = transport or WebSocketTransport()
        self.reconnect_max_attempts = reconnect_max_attempts
        self.reconnect_base_delay = reconnect_base_delay
        self.reconnect_max_delay = reconnect_max_delay
        self.account_stream_url = account_stream_url
        self.market_data_stream_url = market_data_stream_url

        logger.info(f"AlpacaClient initialized (paper={paper}, feed={feed})")

    @classmethod
    def from_settings(cls, settings: Optional["Settings"] = None, **overrides) -> "AlpacaClient":
        """Build a client from application settings (default: get_settings())."""
        if settings is None:
            from config.settings import get_settings

            settings = get_settings()

        kwargs = {
            "api_key": settings.alpaca_api_key_id,
            "secret_key": settings.alpaca_api_secret_key.get_secret_value(),
            "paper": settings.alpaca_paper,
            "feed": settings.alpaca_data_feed,
            "poll_interval": settings.poll_interval_seconds,
            "transport": WebSocketTransport(
                open_timeout=settings.stream_open_timeout,
                close_timeout=settings.stream_close_timeout,
            ),
            "reconnect_max_attempts": settings.reconnect_max_attempts,
            "reconnect_base_delay": settings.reconnect_base_delay,
            "reconnect_max_delay": settings.reconnect_max_delay,
            "account_stream_url": settings.trading_stream_url,
            "market_data_stream_url": settings.market_data_stream_url,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    # --------------------------------------------------------------------------
    # Sessions
    # --------------------------------------------------------------------------

    def account_session(self) -> AccountStreamSession:
        return AccountStreamSession(
            self.api_key,
            self._secret_key,
            paper=self.paper,
            transport=self.transport,
            url=self.account_stream_url,
        )

    def market_data_session(self) -> MarketDataStreamSession:
        return MarketDataStreamSession(
            self.api_key,
            self._secret_key,
            feed=self.feed,
            transport=self.transport,
            url=self.market_data_stream_url,
        )

    def snapshot_poller(self, interval: Optional[float] = None) -> AccountSnapshotPoller:
        return AccountSnapshotPoller(
            self.rest, interval=self.poll_interval if interval is None else interval
        )

    # --------------------------------------------------------------------------
    # Producers
    # --------------------------------------------------------------------------

    def stream_account(self) -> AsyncIterator[list[Envelope]]:
        """Account trade-update batches; ends with a TransportError on disconnect."""
        return self.account_session().stream()

    def monitor_stock_price(self, symbols: Iterable[str]) -> AsyncIterator[list[Envelope]]:
        """Market-data batches for ``symbols``; ends with a TransportError on disconnect."""
        return self.market_data_session().stream(symbols)

    def account_snapshots(self, interval_ms: Optional[int] = None) -> AsyncIterator[AccountSnapshot]:
        """Fused account snapshots, one per interval, forever."""
        interval = None if interval_ms is None else interval_ms / 1000
        return self.snapshot_poller(interval).poll()

    def supervised_account_stream(self) -> AsyncIterator[list[Envelope]]:
        """Account stream that reconnects with backoff after transport failures."""
        return supervise(
            self.stream_account,
            max_attempts=self.reconnect_max_attempts,
            base_delay=self.reconnect_base_delay,
            max_delay=self.reconnect_max_delay,
        )

    def supervised_stock_price(self, symbols: Iterable[str]) -> AsyncIterator[list[Envelope]]:
        """Market-data stream that reconnects with backoff after transport failures."""
        symbols = sorted(set(symbols))
        return supervise(
            lambda: self.monitor_stock_price(symbols),
            max_attempts=self.reconnect_max_attempts,
            base_delay=self.reconnect_base_delay,
            max_delay=self.reconnect_max_delay,
        )
