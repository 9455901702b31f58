"""Pytest configuration and shared fixtures."""

import os
import shutil
import tempfile
from typing import Optional

import pytest

from scalper_app.config.defaults import EngineConfig
from scalper_app.data.models import Bar, PriceSample
from scalper_app.errors import OrderOutcomeUnknownError, TransientFeedError
from scalper_app.execution.base import (
    ExecutionGateway,
    Fill,
    MarketDataSource,
    OrderFailure,
    OrderResult,
)

MINUTE_MS = 60_000
# 2023-01-01T00:00:00Z, minute aligned
BASE_TS = 1_672_531_200_000


def make_bars(closes, start: int = BASE_TS, interval_ms: int = MINUTE_MS) -> list[Bar]:
    """Flat bars (o=h=l=c) at consecutive interval starts."""
    return [
        Bar(interval_start=start + i * interval_ms, open=c, high=c, low=c, close=c, volume=1.0)
        for i, c in enumerate(closes)
    ]


class FakeMarketData(MarketDataSource):
    """Serves scripted history and price samples; exceptions in the script are raised."""

    def __init__(self, history=None, samples=None):
        self.history = history if history is not None else []
        self.samples = list(samples or [])
        self.price_calls = 0
        self.history_calls = 0

    def historical_bars(self, instrument, interval, count):
        self.history_calls += 1
        if isinstance(self.history, Exception):
            raise self.history
        return list(self.history)[-count:]

    def latest_price(self, instrument):
        self.price_calls += 1
        if not self.samples:
            raise TransientFeedError("no more samples", endpoint="fake")
        item = self.samples.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeGateway(ExecutionGateway):
    """
    Gateway with scripted order results.

    Script items: "fill", "fail", "unknown". Without a script every order fills
    at its reference price.
    """

    def __init__(self, script=None, balances=None):
        self.script = list(script or [])
        self.orders: list[dict] = []
        self.statuses: dict[str, Optional[OrderResult]] = {}
        self._balances = balances or {"USDT": 10500.0, "BTC": 0.0}
        self.status_calls = 0

    def place_order(self, side, instrument, size, *, reference_price, client_order_id):
        self.orders.append({
            "side": side,
            "instrument": instrument,
            "size": size,
            "reference_price": reference_price,
            "client_order_id": client_order_id,
        })
        action = self.script.pop(0) if self.script else "fill"
        if action == "fail":
            return OrderFailure(client_order_id=client_order_id, side=side, reason="rejected")
        if action == "unknown":
            raise OrderOutcomeUnknownError("timeout", client_order_id=client_order_id)
        return Fill(client_order_id=client_order_id, side=side, price=reference_price,
                    quantity=size, timestamp=0)

    def order_status(self, client_order_id):
        self.status_calls += 1
        return self.statuses.get(client_order_id)

    def balances(self):
        return dict(self._balances)


@pytest.fixture
def temp_db_path():
    """Path to a fresh database file, removed after the test."""
    temp_dir = tempfile.mkdtemp()
    yield os.path.join(temp_dir, "test_scalper.db")
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def default_config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def sample_at():
    """Build a PriceSample at a minute offset from BASE_TS."""
    def _sample(minute: int, price: float, offset_ms: int = 0) -> PriceSample:
        return PriceSample(price=price, timestamp=BASE_TS + minute * MINUTE_MS + offset_ms)
    return _sample
