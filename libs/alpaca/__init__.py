"""
Alpaca Client Library

Account, position and order management over REST, plus two real-time
WebSocket feeds and a derived account snapshot feed.

Components:
- AccountStreamSession: trade_updates events for the account
- MarketDataStreamSession: trades, quotes and bars for a symbol set
- AccountSnapshotPoller: concurrent account/positions/orders snapshots
- AlpacaRestClient: synchronous REST collaborator
- supervise: caller-level reconnect policy for the stream sessions
- decode / encode: stream message codec

Usage:
    from libs.alpaca import AlpacaClient

    client = AlpacaClient(api_key="your_key", secret_key="your_secret")

    async for batch in client.monitor_stock_price({"AAPL", "MSFT"}):
        for envelope in batch:
            print(envelope.kind, envelope)
"""

from libs.alpaca.exceptions import (
    AlpacaError,
    DecodeError,
    RestConnectionError,
    RestError,
    StreamClosedError,
    StreamConnectionError,
    StreamError,
    TransportError,
)
from libs.alpaca.types import (
    AccountSnapshot,
    Bar,
    ControlAck,
    ControlError,
    Envelope,
    Quote,
    SessionState,
    SubscriptionRequest,
    Trade,
    TradeUpdate,
)
from libs.alpaca.codec import decode, encode
from libs.alpaca.account_stream import AccountStreamSession
from libs.alpaca.market_data_stream import MarketDataStreamSession
from libs.alpaca.snapshot_poller import AccountSnapshotPoller
from libs.alpaca.rest_client import AlpacaRestClient
from libs.alpaca.supervisor import supervise
from libs.alpaca.client import AlpacaClient

__all__ = [
    "AlpacaClient",
    "AlpacaRestClient",
    "AccountStreamSession",
    "MarketDataStreamSession",
    "AccountSnapshotPoller",
    "supervise",
    "decode",
    "encode",
    "AccountSnapshot",
    "Bar",
    "ControlAck",
    "ControlError",
    "Envelope",
    "Quote",
    "SessionState",
    "SubscriptionRequest",
    "Trade",
    "TradeUpdate",
    "AlpacaError",
    "DecodeError",
    "RestConnectionError",
    "RestError",
    "StreamClosedError",
    "StreamConnectionError",
    "StreamError",
    "TransportError",
]
