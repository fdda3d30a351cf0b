"""
Unit tests for AlpacaRestClient.

alpaca-py clients are replaced with MagicMocks; tests verify request
construction and the error contract (APIError -> default value, transport
failure -> retried RestConnectionError).
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import get_type_hints
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
import requests
from alpaca.common.enums import Sort
from alpaca.common.exceptions import APIError
from alpaca.trading.enums import OrderSide, QueryOrderStatus, TimeInForce
from alpaca.trading.requests import (
    CancelOrderResponse,
    ClosePositionRequest,
    GetOrdersRequest,
    MarketOrderRequest,
    ReplaceOrderRequest,
)

from libs.alpaca.exceptions import RestConnectionError
from libs.alpaca.rest_client import AlpacaRestClient


@pytest.fixture()
def trading():
    return MagicMock()


@pytest.fixture()
def data():
    return MagicMock()


@pytest.fixture()
def client(trading, data):
    return AlpacaRestClient("key", "secret", trading_client=trading, data_client=data)


@pytest.fixture()
def no_retry_sleep():
    """Skip tenacity backoff waits."""
    with patch.object(AlpacaRestClient._call.retry, "sleep") as sleep:
        yield sleep


def api_error(message: str = "forbidden") -> APIError:
    return APIError(f'{{"code": 40310000, "message": "{message}"}}')


class TestAccountAndPositions:
    def test_get_account(self, client, trading):
        account = MagicMock(buying_power="1000")
        trading.get_account.return_value = account

        assert client.get_account() is account

    def test_get_account_rejected(self, client, trading):
        trading.get_account.side_effect = api_error()

        assert client.get_account() is None

    def test_get_positions(self, client, trading):
        positions = [MagicMock(symbol="AAPL")]
        trading.get_all_positions.return_value = positions

        assert client.get_positions() == positions

    def test_get_position_not_found(self, client, trading):
        trading.get_open_position.side_effect = api_error("position does not exist")

        assert client.get_position("AAPL") is None
        trading.get_open_position.assert_called_once_with("AAPL")

    def test_close_position_full(self, client, trading):
        client.close_position("AAPL")

        trading.close_position.assert_called_once_with("AAPL", close_options=None)

    def test_close_position_by_qty(self, client, trading):
        client.close_position("AAPL", qty=Decimal("2.5"))

        options = trading.close_position.call_args.kwargs["close_options"]
        assert isinstance(options, ClosePositionRequest)
        assert options.qty == "2.5"
        assert options.percentage is None

    def test_close_position_by_percentage(self, client, trading):
        client.close_position("AAPL", percentage="50")

        options = trading.close_position.call_args.kwargs["close_options"]
        assert options.percentage == "50"

    def test_close_position_rejects_both(self, client, trading):
        with pytest.raises(ValueError, match="not both"):
            client.close_position("AAPL", qty="1", percentage="50")
        trading.close_position.assert_not_called()

    def test_close_all_positions(self, client, trading):
        trading.close_all_positions.return_value = ["closed"]

        assert client.close_all_positions(cancel_orders=True) == ["closed"]
        trading.close_all_positions.assert_called_once_with(cancel_orders=True)

    def test_close_all_positions_rejected(self, client, trading):
        trading.close_all_positions.side_effect = api_error()

        assert client.close_all_positions() == []


class TestOrders:
    def test_get_open_orders_request(self, client, trading):
        trading.get_orders.return_value = []

        assert client.get_open_orders() == []

        request = trading.get_orders.call_args.kwargs["filter"]
        assert isinstance(request, GetOrdersRequest)
        assert request.status == QueryOrderStatus.OPEN
        assert request.limit == 500
        assert request.direction == Sort.DESC

    def test_get_orders_filters(self, client, trading):
        after = datetime(2024, 3, 1, tzinfo=UTC)

        client.get_orders(
            status="closed", limit=2000, after=after, direction="asc", symbols=["AAPL"]
        )

        request = trading.get_orders.call_args.kwargs["filter"]
        assert request.status == QueryOrderStatus.CLOSED
        assert request.limit == 500
        assert request.after == after
        assert request.direction == Sort.ASC
        assert request.symbols == ["AAPL"]

    def test_get_orders_rejected(self, client, trading):
        trading.get_orders.side_effect = api_error()

        assert client.get_open_orders() is None

    def test_get_order_lookups(self, client, trading):
        client.get_order("ord-1")
        client.get_order_by_client_id("client-1")

        trading.get_order_by_id.assert_called_once_with("ord-1")
        trading.get_order_by_client_id.assert_called_once_with("client-1")

    def test_place_order(self, client, trading):
        order = MagicMock(id="ord-1")
        trading.submit_order.return_value = order
        request = MarketOrderRequest(
            symbol="AAPL", qty=10, side=OrderSide.BUY, time_in_force=TimeInForce.DAY
        )

        assert client.place_order(request) is order
        trading.submit_order.assert_called_once_with(order_data=request)

    def test_place_order_rejected(self, client, trading):
        trading.submit_order.side_effect = api_error("insufficient buying power")
        request = MarketOrderRequest(
            symbol="AAPL", qty=10, side=OrderSide.BUY, time_in_force=TimeInForce.DAY
        )

        assert client.place_order(request) is None

    def test_replace_order(self, client, trading):
        replace = ReplaceOrderRequest(qty=5)

        client.replace_order("ord-1", replace)

        trading.replace_order_by_id.assert_called_once_with("ord-1", order_data=replace)

    def test_cancel_order(self, client, trading):
        trading.cancel_order_by_id.return_value = None

        assert client.cancel_order("ord-1") is True
        trading.cancel_order_by_id.assert_called_once_with("ord-1")

    def test_cancel_order_rejected(self, client, trading):
        trading.cancel_order_by_id.side_effect = api_error("order is not cancelable")

        assert client.cancel_order("ord-1") is False

    def test_cancel_all_orders(self, client, trading):
        responses = [CancelOrderResponse(id=uuid4(), status=200)]
        trading.cancel_orders.return_value = responses

        assert client.cancel_all_orders() == responses
        assert get_type_hints(AlpacaRestClient.cancel_all_orders)["return"] == list[
            CancelOrderResponse
        ]

    def test_cancel_all_orders_rejected(self, client, trading):
        trading.cancel_orders.side_effect = api_error()

        assert client.cancel_all_orders() == []


class TestMarketData:
    def test_get_trades_request(self, client, data):
        start = datetime(2024, 3, 1, 14, 30)
        end = datetime(2024, 3, 1, 21, 0)

        client.get_trades("AAPL", start=start, end=end, limit=50)

        [request] = data.get_stock_trades.call_args.args
        assert request.symbol_or_symbols == "AAPL"
        assert request.start == start
        assert request.end == end
        assert request.limit == 50

    def test_get_trades_rejected(self, client, data):
        data.get_stock_trades.side_effect = api_error()

        assert client.get_trades("AAPL") is None


class TestRetries:
    def test_connection_error_is_retried_then_raised(self, client, trading, no_retry_sleep):
        trading.get_account.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(RestConnectionError, match="get_account"):
            client.get_account()

        assert trading.get_account.call_count == 3
        assert no_retry_sleep.call_count == 2

    def test_transient_error_recovers(self, client, trading, no_retry_sleep):
        account = MagicMock()
        trading.get_account.side_effect = [requests.Timeout("read timed out"), account]

        assert client.get_account() is account
        assert trading.get_account.call_count == 2

    def test_api_error_is_not_retried(self, client, trading, no_retry_sleep):
        trading.get_all_positions.side_effect = api_error()

        client.get_positions()

        assert trading.get_all_positions.call_count == 1
        no_retry_sleep.assert_not_called()
