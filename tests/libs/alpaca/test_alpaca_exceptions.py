import pytest

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


def test_exception_hierarchy() -> None:
    assert issubclass(StreamError, AlpacaError)
    assert issubclass(TransportError, StreamError)
    assert issubclass(StreamConnectionError, TransportError)
    assert issubclass(StreamClosedError, TransportError)
    assert issubclass(DecodeError, StreamError)
    assert not issubclass(DecodeError, TransportError)
    assert issubclass(RestConnectionError, RestError)
    assert issubclass(RestError, AlpacaError)


def test_stream_closed_error_carries_close_frame() -> None:
    with pytest.raises(TransportError, match="closed") as exc_info:
        raise StreamClosedError("socket closed", code=1006, reason="")
    assert exc_info.value.code == 1006
    assert exc_info.value.reason == ""


def test_decode_error_keeps_raw_frame() -> None:
    error = DecodeError("bad frame", raw="[oops")

    assert error.raw == "[oops"
    assert str(error) == "bad frame"
