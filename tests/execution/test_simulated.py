"""Tests for the paper execution gateway."""

import pytest

from scalper_app.execution.base import Fill
from scalper_app.execution.simulated import PaperExecutionGateway


@pytest.fixture
def gateway():
    return PaperExecutionGateway("BTC", "USDT", quote_balance=10500.0, clock=lambda: 42)


class TestPaperExecutionGateway:

    def test_buy_fills_at_reference_price(self, gateway):
        fill = gateway.place_order("BUY", "B-BTC_USDT", 2.0,
                                   reference_price=100.0, client_order_id="buy-1")
        assert isinstance(fill, Fill)
        assert fill.price == 100.0
        assert fill.quantity == 2.0
        assert fill.timestamp == 42
        assert fill.venue_order_id == "paper-buy-1"

        balances = gateway.balances()
        assert balances["USDT"] == pytest.approx(10300.0)
        assert balances["BTC"] == pytest.approx(2.0)

    def test_sell_returns_quote(self, gateway):
        gateway.place_order("BUY", "B-BTC_USDT", 2.0, reference_price=100.0,
                            client_order_id="buy-1")
        gateway.place_order("SELL", "B-BTC_USDT", 2.0, reference_price=110.0,
                            client_order_id="sell-1")
        balances = gateway.balances()
        assert balances["USDT"] == pytest.approx(10520.0)
        assert balances["BTC"] == pytest.approx(0.0)

    def test_idempotent_per_client_order_id(self, gateway):
        first = gateway.place_order("BUY", "B-BTC_USDT", 1.0, reference_price=100.0,
                                    client_order_id="buy-1")
        second = gateway.place_order("BUY", "B-BTC_USDT", 1.0, reference_price=200.0,
                                     client_order_id="buy-1")
        assert second == first
        assert gateway.balances()["BTC"] == pytest.approx(1.0)

    def test_order_status(self, gateway):
        assert gateway.order_status("missing") is None
        fill = gateway.place_order("BUY", "B-BTC_USDT", 1.0, reference_price=100.0,
                                   client_order_id="buy-1")
        assert gateway.order_status("buy-1") == fill

    def test_balances_returns_copy(self, gateway):
        gateway.balances()["USDT"] = 0.0
        assert gateway.balances()["USDT"] == 10500.0

    def test_order_book_is_bounded(self):
        gateway = PaperExecutionGateway("BTC", "USDT", clock=lambda: 42, max_orders=3)
        for i in range(5):
            side = "BUY" if i % 2 == 0 else "SELL"
            gateway.place_order(side, "B-BTC_USDT", 1.0, reference_price=100.0,
                                client_order_id=f"order-{i}")

        assert gateway.order_status("order-0") is None
        assert gateway.order_status("order-1") is None
        assert [gateway.order_status(f"order-{i}").client_order_id for i in (2, 3, 4)] == [
            "order-2", "order-3", "order-4"
        ]
