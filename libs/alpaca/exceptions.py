"""
Alpaca Client Exceptions

Exception hierarchy for streaming and REST operations.

Transport errors are terminal for the session that raised them; callers decide
whether to open a new session. Decode errors are recoverable and are handled
inside the receive loop.
"""


class AlpacaError(Exception):
    """Base exception for all Alpaca client errors."""

    pass


class StreamError(AlpacaError):
    """Base exception for WebSocket stream errors."""

    pass


class TransportError(StreamError):
    """Raised when the WebSocket transport fails (connect, read, or send)."""

    pass


class StreamConnectionError(TransportError):
    """Raised when a WebSocket connection cannot be established."""

    pass


class StreamClosedError(TransportError):
    """Raised when an open WebSocket is closed or a read fails."""

    def __init__(self, message: str, code: int | None = None, reason: str | None = None):
        super().__init__(message)
        self.code = code
        self.reason = reason


class DecodeError(StreamError):
    """Raised when an inbound frame does not match any known message shape."""

    def __init__(self, message: str, raw: str | bytes | None = None):
        super().__init__(message)
        self.raw = raw


class RestError(AlpacaError):
    """Base exception for REST collaborator errors."""

    pass


class RestConnectionError(RestError):
    """Connection error to the Alpaca REST API (retryable)."""

    pass
