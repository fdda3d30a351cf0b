"""
Alpaca REST client wrapper.

Synchronous account, position and order operations on top of alpaca-py's
``TradingClient``, plus historical trades via ``StockHistoricalDataClient``.

Error contract:
- Alpaca answered with a non-2xx status (``APIError``): logged, the call
  returns None (``[]`` for bulk operations, False for cancel)
- Transport failure (connection refused, timeout): retried with exponential
  backoff, then raised as RestConnectionError
"""

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, TypeVar

from alpaca.common.enums import Sort
from alpaca.common.exceptions import APIError as AlpacaAPIError
from alpaca.data.historical import StockHistoricalDataClient
from alpaca.data.models import TradeSet
from alpaca.data.requests import StockTradesRequest
from alpaca.trading.client import TradingClient
from alpaca.trading.enums import QueryOrderStatus
from alpaca.trading.models import (
    ClosePositionResponse,
    Order,
    Position,
    TradeAccount,
)
from alpaca.trading.requests import (
    CancelOrderResponse,
    ClosePositionRequest,
    GetOrdersRequest,
    OrderRequest,
    ReplaceOrderRequest,
)
from requests.exceptions import RequestException
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from libs.alpaca.exceptions import RestConnectionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ORDERS_LIMIT = 500


class AlpacaRestClient:
    """
    Alpaca REST collaborator used by the snapshot poller and applications.

    Examples:
        >>> client = AlpacaRestClient(api_key="your_key", secret_key="your_secret")
        >>> account = client.get_account()
        >>> if account:
        ...     print(f"Buying power: ${account.buying_power}")
        >>> orders = client.get_open_orders()
    """

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        paper: bool = True,
        trading_client: Optional[TradingClient] = None,
        data_client: Optional[StockHistoricalDataClient] = None,
    ):
        """
        Initialize REST client.

        Args:
            api_key: Alpaca API key ID
            secret_key: Alpaca API secret key
            paper: Whether using paper trading (default: True)
            trading_client: Pre-built TradingClient (default: built from credentials)
            data_client: Pre-built StockHistoricalDataClient (default: built from credentials)
        """
        self.paper = paper
        self.trading = trading_client or TradingClient(
            api_key=api_key, secret_key=secret_key, paper=paper
        )
        self.data = data_client or StockHistoricalDataClient(api_key=api_key, secret_key=secret_key)

        logger.info(f"Initialized Alpaca REST client (paper={paper})")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(RestConnectionError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _call(
        self,
        operation: str,
        func: Callable[..., T],
        *args: Any,
        default: Any = None,
        **kwargs: Any,
    ) -> Any:
        try:
            return func(*args, **kwargs)
        except AlpacaAPIError as e:
            status_code = getattr(e, "status_code", None)
            logger.warning(f"Alpaca API error in {operation}: status={status_code}, message={e}")
            return default
        except RequestException as e:
            raise RestConnectionError(f"Alpaca API connection error in {operation}: {e}") from e

    # --------------------------------------------------------------------------
    # Account and positions
    # --------------------------------------------------------------------------

    def get_account(self) -> Optional[TradeAccount]:
        return self._call("get_account", self.trading.get_account)

    def get_positions(self) -> Optional[list[Position]]:
        """Get all open positions, or None if the request was rejected."""
        return self._call("get_positions", self.trading.get_all_positions)

    def get_position(self, symbol: str) -> Optional[Position]:
        """Get the open position for ``symbol`` (None if there is none)."""
        return self._call("get_position", self.trading.get_open_position, symbol)

    def close_position(
        self,
        symbol: str,
        qty: Optional[Decimal | str] = None,
        percentage: Optional[Decimal | str] = None,
    ) -> Optional[Order]:
        """
        Liquidate the position for ``symbol``, fully or partially.

        Args:
            symbol: Symbol or asset ID
            qty: Number of shares to liquidate (up to 9 decimals)
            percentage: Percentage of the position to liquidate (0-100)

        Returns:
            The closing order, or None if Alpaca rejected the request

        Raises:
            ValueError: If both qty and percentage are given
        """
        if qty is not None and percentage is not None:
            raise ValueError("Specify qty or percentage, not both")

        close_options = None
        if qty is not None:
            close_options = ClosePositionRequest(qty=str(qty))
        elif percentage is not None:
            close_options = ClosePositionRequest(percentage=str(percentage))

        return self._call(
            "close_position",
            self.trading.close_position,
            symbol,
            close_options=close_options,
        )

    def close_all_positions(self, cancel_orders: bool = False) -> list[ClosePositionResponse]:
        """
        Liquidate every open position.

        Args:
            cancel_orders: Cancel all open orders before liquidating
        """
        return self._call(
            "close_all_positions",
            self.trading.close_all_positions,
            cancel_orders=cancel_orders,
            default=[],
        )

    # --------------------------------------------------------------------------
    # Orders
    # --------------------------------------------------------------------------

    def get_open_orders(self) -> Optional[list[Order]]:
        """Get open orders, newest first, or None if the request was rejected."""
        return self.get_orders(status="open")

    def get_orders(
        self,
        status: str = "open",
        limit: int = MAX_ORDERS_LIMIT,
        after: Optional[datetime] = None,
        until: Optional[datetime] = None,
        direction: str = "desc",
        nested: Optional[bool] = None,
        symbols: Optional[list[str]] = None,
    ) -> Optional[list[Order]]:
        """
        List orders filtered by the given query parameters.

        Args:
            status: "open", "closed" or "all"
            limit: Maximum number of orders (1-500)
            after: Only orders submitted after this time (exclusive)
            until: Only orders submitted until this time (exclusive)
            direction: "asc" or "desc" by submission time
            nested: Roll multi-leg orders up under their primary order
            symbols: Only orders for these symbols
        """
        request = GetOrdersRequest(
            status=QueryOrderStatus(status),
            limit=min(limit, MAX_ORDERS_LIMIT),
            after=after,
            until=until,
            direction=Sort(direction),
            nested=nested,
            symbols=symbols,
        )
        return self._call("get_orders", self.trading.get_orders, filter=request)

    def get_order(self, order_id: str) -> Optional[Order]:
        return self._call("get_order", self.trading.get_order_by_id, order_id)

    def get_order_by_client_id(self, client_order_id: str) -> Optional[Order]:
        return self._call(
            "get_order_by_client_id", self.trading.get_order_by_client_id, client_order_id
        )

    def place_order(self, order_request: OrderRequest) -> Optional[Order]:
        """
        Submit an order.

        Args:
            order_request: Any alpaca-py order request (MarketOrderRequest,
                LimitOrderRequest, ...)

        Returns:
            The accepted order, or None if Alpaca rejected it
        """
        order = self._call("place_order", self.trading.submit_order, order_data=order_request)
        if order is not None:
            logger.info(
                f"Order submitted: {order_request.symbol} {order_request.side} "
                f"{order_request.qty} (client_id={order_request.client_order_id})"
            )
        return order

    def replace_order(
        self, order_id: str, replace_request: ReplaceOrderRequest
    ) -> Optional[Order]:
        return self._call(
            "replace_order",
            self.trading.replace_order_by_id,
            order_id,
            order_data=replace_request,
        )

    def cancel_order(self, order_id: str) -> bool:
        """
        Cancel an order by broker order ID.

        Returns:
            True if Alpaca accepted the cancellation, False otherwise
        """
        cancelled = self._call(
            "cancel_order",
            lambda: self.trading.cancel_order_by_id(order_id) or True,
            default=False,
        )
        if cancelled:
            logger.info(f"Order cancelled: {order_id}")
        return bool(cancelled)

    def cancel_all_orders(self) -> list[CancelOrderResponse]:
        return self._call("cancel_all_orders", self.trading.cancel_orders, default=[])

    # --------------------------------------------------------------------------
    # Market data
    # --------------------------------------------------------------------------

    def get_trades(
        self,
        symbol: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 10_000,
    ) -> Optional[TradeSet]:
        """
        Get historical trades for ``symbol``.

        Args:
            symbol: Stock symbol
            start: Trades at or after this time (default: start of current day)
            end: Trades at or before this time (default: now)
            limit: Maximum number of trades (1-10000)
        """
        request = StockTradesRequest(symbol_or_symbols=symbol, start=start, end=end, limit=limit)
        return self._call("get_trades", self.data.get_stock_trades, request)
