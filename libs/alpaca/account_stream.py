"""
Alpaca Account Stream Session

Streams order lifecycle events (``trade_updates``) for the account.
"""

import logging
from collections.abc import AsyncIterator
from typing import Optional

from libs.alpaca.session import StreamSession
from libs.alpaca.transport import StreamConnection, Transport
from libs.alpaca.types import Envelope, SessionState, SubscriptionRequest

logger = logging.getLogger(__name__)

PAPER_STREAM_HOST = "paper-api.alpaca.markets"
LIVE_STREAM_HOST = "api.alpaca.markets"
TRADE_UPDATES = "trade_updates"


class AccountStreamSession(StreamSession):
    """
    WebSocket session for the account event stream.

    The auth and listen requests are pipelined: the session does not wait for
    the authorization reply before asking to listen. The reply arrives as an
    ordinary ControlAck (or ControlError) envelope in the first batch.

    Example:
        session = AccountStreamSession(api_key="key", secret_key="secret", paper=True)

        async for batch in session.stream():
            for envelope in batch:
                if envelope.kind == "trade_update":
                    print(envelope.event, envelope.order.id)
    """

    name = "account_stream"

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        paper: bool = True,
        transport: Optional[Transport] = None,
        url: Optional[str] = None,
    ):
        """
        Initialize account stream session.

        Args:
            api_key: Alpaca API key ID
            secret_key: Alpaca API secret key
            paper: Use the paper trading endpoint (default: True)
            transport: WebSocket transport (default: WebSocketTransport)
            url: Override the stream URL (tests, proxies)
        """
        super().__init__(transport)
        self.api_key = api_key
        self._secret_key = secret_key
        self.paper = paper
        host = PAPER_STREAM_HOST if paper else LIVE_STREAM_HOST
        self.url = url or f"wss://{host}/stream"

    async def _handshake(self, connection: StreamConnection) -> None:
        self._transition(SessionState.AUTHENTICATING)
        await self._send(connection, SubscriptionRequest.auth(self.api_key, self._secret_key))

        self._transition(SessionState.SUBSCRIBING)
        await self._send(connection, SubscriptionRequest.listen([TRADE_UPDATES]))

    def stream(self) -> AsyncIterator[list[Envelope]]:
        """
        Open the account stream and yield decoded batches until failure.

        Each emission is the ordered list of envelopes decoded from one text
        frame. The first batches normally carry the authorization and
        listening acknowledgements.

        Raises:
            StreamConnectionError: If the WebSocket cannot be opened
            StreamClosedError: If the socket closes or a read fails
        """
        return self._run(self.url, self._handshake)
