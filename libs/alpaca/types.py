"""
Alpaca Streaming Type Definitions

Pydantic models for the messages exchanged on the account and market-data
WebSocket streams, plus the fused account snapshot emitted by the poller.

Inbound market-data messages use Alpaca's single-letter wire keys; each model
declares them as aliases so decoded envelopes expose readable attribute names.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from alpaca.trading.models import Order, Position, TradeAccount
from pydantic import BaseModel, ConfigDict, Field

_WIRE_CONFIG = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class SessionState(str, Enum):
    """Lifecycle states of a stream session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    SUBSCRIBING = "subscribing"
    STREAMING = "streaming"
    FAILED = "failed"
    CLOSED = "closed"


# ==============================================================================
# Inbound envelopes
# ==============================================================================


class ControlAck(BaseModel):
    """
    Control acknowledgement.

    Covers the market-data ``success`` and ``subscription`` messages and the
    account stream ``authorization`` / ``listening`` replies.
    """

    model_config = _WIRE_CONFIG

    kind: Literal["ack"] = "ack"
    msg: Optional[str] = Field(None, description="Market-data status text (e.g. 'authenticated')")
    stream: Optional[str] = Field(None, description="Account stream name (e.g. 'authorization')")
    status: Optional[str] = Field(None, description="Account stream authorization status")
    action: Optional[str] = None
    streams: Optional[list[str]] = Field(None, description="Streams confirmed by 'listening'")
    trades: Optional[list[str]] = None
    quotes: Optional[list[str]] = None
    bars: Optional[list[str]] = None


class ControlError(BaseModel):
    """Error reported by either stream (bad auth, invalid syntax, symbol limit...)."""

    model_config = _WIRE_CONFIG

    kind: Literal["error"] = "error"
    code: Optional[int] = Field(None, description="Alpaca error code (e.g. 402 auth failed)")
    msg: str = Field(..., description="Error message")
    stream: Optional[str] = None


class Trade(BaseModel):
    """Trade print from the market-data stream (``T == "t"``)."""

    model_config = _WIRE_CONFIG

    kind: Literal["trade"] = "trade"
    symbol: str = Field(..., alias="S")
    trade_id: Optional[int] = Field(None, alias="i")
    exchange: Optional[str] = Field(None, alias="x")
    price: Decimal = Field(..., alias="p", ge=0)
    size: int = Field(..., alias="s", ge=0)
    timestamp: datetime = Field(..., alias="t")
    conditions: list[str] = Field(default_factory=list, alias="c")
    tape: Optional[str] = Field(None, alias="z")


class Quote(BaseModel):
    """NBBO quote from the market-data stream (``T == "q"``)."""

    model_config = _WIRE_CONFIG

    kind: Literal["quote"] = "quote"
    symbol: str = Field(..., alias="S")
    bid_exchange: Optional[str] = Field(None, alias="bx")
    bid_price: Decimal = Field(..., alias="bp", ge=0)
    bid_size: int = Field(..., alias="bs", ge=0)
    ask_exchange: Optional[str] = Field(None, alias="ax")
    ask_price: Decimal = Field(..., alias="ap", ge=0)
    ask_size: int = Field(..., alias="as", ge=0)
    timestamp: datetime = Field(..., alias="t")
    conditions: list[str] = Field(default_factory=list, alias="c")
    tape: Optional[str] = Field(None, alias="z")

    @property
    def mid_price(self) -> Decimal:
        """Calculate mid-market price."""
        return (self.bid_price + self.ask_price) / 2


class Bar(BaseModel):
    """Minute bar from the market-data stream (``T == "b"``)."""

    model_config = _WIRE_CONFIG

    kind: Literal["bar"] = "bar"
    symbol: str = Field(..., alias="S")
    open: Decimal = Field(..., alias="o")
    high: Decimal = Field(..., alias="h")
    low: Decimal = Field(..., alias="l")
    close: Decimal = Field(..., alias="c")
    volume: int = Field(..., alias="v", ge=0)
    timestamp: datetime = Field(..., alias="t")
    trade_count: Optional[int] = Field(None, alias="n")
    vwap: Optional[Decimal] = Field(None, alias="vw")


class StreamOrder(BaseModel):
    """
    Order payload embedded in a trade update.

    Only the commonly used fields are typed; everything else Alpaca sends is
    kept as extra attributes.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")

    id: str
    client_order_id: Optional[str] = None
    symbol: Optional[str] = None
    side: Optional[str] = None
    order_type: Optional[str] = Field(None, alias="type")
    time_in_force: Optional[str] = None
    status: Optional[str] = None
    qty: Optional[Decimal] = None
    filled_qty: Optional[Decimal] = None
    filled_avg_price: Optional[Decimal] = None
    limit_price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None
    submitted_at: Optional[datetime] = None
    filled_at: Optional[datetime] = None


class TradeUpdate(BaseModel):
    """Order lifecycle event from the account stream (new, fill, canceled...)."""

    model_config = _WIRE_CONFIG

    kind: Literal["trade_update"] = "trade_update"
    event: str = Field(..., description="Event type (e.g. 'new', 'fill', 'partial_fill')")
    order: StreamOrder
    timestamp: Optional[datetime] = None
    execution_id: Optional[str] = None
    price: Optional[Decimal] = None
    qty: Optional[Decimal] = None
    position_qty: Optional[Decimal] = None


Envelope = Annotated[
    Union[ControlAck, ControlError, Trade, Quote, Bar, TradeUpdate],
    Field(discriminator="kind"),
]


# ==============================================================================
# Outbound control messages
# ==============================================================================


class StreamNames(BaseModel):
    """``data`` block of a ``listen`` request."""

    model_config = ConfigDict(frozen=True)

    streams: list[str]


class SubscriptionRequest(BaseModel):
    """
    Outbound control message for either stream.

    Use the class-method constructors rather than building instances by hand.

    Example:
        >>> SubscriptionRequest.listen(["trade_updates"])
        SubscriptionRequest(action='listen', ..., data=StreamNames(streams=['trade_updates']))
    """

    model_config = ConfigDict(frozen=True)

    action: Literal["auth", "subscribe", "listen", "unsubscribe"]
    key: Optional[str] = None
    secret: Optional[str] = None
    trades: Optional[list[str]] = None
    quotes: Optional[list[str]] = None
    bars: Optional[list[str]] = None
    data: Optional[StreamNames] = None

    @classmethod
    def auth(cls, key: str, secret: str) -> "SubscriptionRequest":
        return cls(action="auth", key=key, secret=secret)

    @classmethod
    def listen(cls, streams: list[str]) -> "SubscriptionRequest":
        return cls(action="listen", data=StreamNames(streams=list(streams)))

    @classmethod
    def subscribe(
        cls,
        trades: Optional[list[str]] = None,
        quotes: Optional[list[str]] = None,
        bars: Optional[list[str]] = None,
    ) -> "SubscriptionRequest":
        return cls(action="subscribe", trades=trades, quotes=quotes, bars=bars)

    @classmethod
    def unsubscribe(
        cls,
        trades: Optional[list[str]] = None,
        quotes: Optional[list[str]] = None,
        bars: Optional[list[str]] = None,
    ) -> "SubscriptionRequest":
        return cls(action="unsubscribe", trades=trades, quotes=quotes, bars=bars)

    def __repr_args__(self):
        # Keep the API secret out of reprs and log lines.
        for name, value in super().__repr_args__():
            yield name, ("***" if name == "secret" and value else value)


# ==============================================================================
# Account snapshot
# ==============================================================================


@dataclass(frozen=True)
class AccountSnapshot:
    """
    Fused result of one polling cycle.

    Sub-fetches that failed are None; the snapshot itself is always emitted.
    """

    captured_at: datetime
    account: Optional[TradeAccount] = None
    positions: Optional[list[Position]] = None
    orders: Optional[list[Order]] = None

    @property
    def is_complete(self) -> bool:
        """True when all three sub-fetches succeeded."""
        return self.account is not None and self.positions is not None and self.orders is not None
