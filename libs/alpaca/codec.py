"""
Alpaca Stream Message Codec

Decodes inbound WebSocket text frames into ordered lists of typed envelopes and
encodes outbound control messages.

Every inbound frame is a JSON array. Each element is matched against the known
message shapes in a fixed priority order:

    error -> success/ack -> subscription echo -> trade -> quote -> bar -> trade update

A shape match is confirmed by pydantic validation. A frame with any element
that matches no shape is rejected as a whole.
"""

import json
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ValidationError

from libs.alpaca.exceptions import DecodeError
from libs.alpaca.types import (
    Bar,
    ControlAck,
    ControlError,
    Envelope,
    Quote,
    SubscriptionRequest,
    Trade,
    TradeUpdate,
)

# Account stream names that carry acknowledgements rather than events
_ACK_STREAMS = frozenset({"authorization", "listening"})
_TRADE_UPDATES_STREAM = "trade_updates"


def _flatten(item: Mapping[str, Any]) -> dict[str, Any]:
    """
    Lift the ``data`` block of an account-stream object to the top level.

    ``{"stream": "authorization", "data": {"status": "authorized"}}`` becomes
    ``{"stream": "authorization", "status": "authorized"}``. Market-data
    objects have no ``stream`` key and pass through unchanged.
    """
    data = item.get("data")
    if "stream" not in item or not isinstance(data, Mapping):
        return dict(item)
    flat = {key: value for key, value in item.items() if key != "data"}
    flat.update(data)
    return flat


def _is_error(item: Mapping[str, Any]) -> bool:
    if item.get("T") == "error":
        return True
    if "stream" in item and "error" in item:
        return True
    return item.get("stream") == "authorization" and item.get("status") == "unauthorized"


def _is_success(item: Mapping[str, Any]) -> bool:
    return item.get("T") == "success" or item.get("stream") in _ACK_STREAMS


def _is_subscription(item: Mapping[str, Any]) -> bool:
    return item.get("T") == "subscription"


def _is_trade_update(item: Mapping[str, Any]) -> bool:
    if "stream" in item and item["stream"] != _TRADE_UPDATES_STREAM:
        return False
    return "event" in item and "order" in item


def _as_error(item: Mapping[str, Any]) -> dict[str, Any]:
    payload = dict(item)
    if "msg" not in payload:
        payload["msg"] = payload.get("error") or payload.get("status") or "unknown error"
    return payload


_VARIANTS: tuple[tuple[Callable[[Mapping[str, Any]], bool], type[BaseModel]], ...] = (
    (_is_error, ControlError),
    (_is_success, ControlAck),
    (_is_subscription, ControlAck),
    (lambda item: item.get("T") == "t", Trade),
    (lambda item: item.get("T") == "q", Quote),
    (lambda item: item.get("T") == "b", Bar),
    (_is_trade_update, TradeUpdate),
)


def _decode_item(index: int, item: Any) -> Envelope:
    if not isinstance(item, Mapping):
        raise DecodeError(f"Element {index} is {type(item).__name__}, expected object")

    flat = _flatten(item)
    errors: list[str] = []
    for matches, model in _VARIANTS:
        if not matches(flat):
            continue
        payload = _as_error(flat) if model is ControlError else flat
        try:
            return model.model_validate(payload)  # type: ignore[return-value]
        except ValidationError as e:
            errors.append(f"{model.__name__}: {e.error_count()} validation error(s)")

    detail = "; ".join(errors) if errors else "no matching shape"
    raise DecodeError(f"Element {index} matches no known message ({detail})")


def decode(raw: str | bytes) -> list[Envelope]:
    """
    Decode one inbound frame into an ordered list of envelopes.

    Args:
        raw: Frame text (a JSON array of message objects)

    Returns:
        Envelopes in the same order as the source array. An empty array
        decodes to an empty list.

    Raises:
        DecodeError: If the frame is not a JSON array or any element matches
            no known message shape. No envelopes are returned in that case.

    Example:
        >>> decode('[{"T":"t","S":"AAPL","p":187.5,"s":100,"t":"2024-01-02T15:30:00Z"}]')
        [Trade(kind='trade', symbol='AAPL', ...)]
    """
    try:
        payload = json.loads(raw, parse_float=Decimal)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"Frame is not valid JSON: {e}", raw=raw) from e
    except RecursionError as e:
        raise DecodeError("Frame is nested too deeply to decode", raw=raw) from e

    if not isinstance(payload, list):
        raise DecodeError(f"Frame is {type(payload).__name__}, expected JSON array", raw=raw)

    try:
        return [_decode_item(index, item) for index, item in enumerate(payload)]
    except DecodeError as e:
        raise DecodeError(str(e), raw=raw) from e


def encode(request: SubscriptionRequest) -> str:
    """Encode an outbound control message, omitting unset fields."""
    return request.model_dump_json(exclude_none=True)
