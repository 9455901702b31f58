"""Tests for the Position value type."""

import pytest

from scalper_app.state.models import Position, PositionState

TS = 1_672_531_200_000


class TestPosition:

    def test_flat_defaults(self):
        position = Position.flat()
        assert position.state == PositionState.FLAT
        assert position.entry_price is None
        assert position.highest_price_since_entry is None
        assert not position.is_long

    def test_entry_sets_peak_to_fill_price(self):
        position = Position.flat().with_entry(99.0, 2.0, TS)
        assert position.is_long
        assert position.entry_price == 99.0
        assert position.highest_price_since_entry == 99.0
        assert position.quantity == 2.0
        assert position.entry_timestamp == TS

    def test_peak_is_monotonic(self):
        position = Position.flat().with_entry(100.0, 1.0, TS)
        for price in [101.0, 103.0, 102.0, 98.0, 103.0]:
            position = position.with_peak(price)
        assert position.highest_price_since_entry == 103.0
        assert position.entry_price == 100.0

    def test_with_peak_is_noop_when_flat(self):
        position = Position.flat()
        assert position.with_peak(500.0) is position

    def test_with_peak_returns_new_instance(self):
        position = Position.flat().with_entry(100.0, 1.0, TS)
        raised = position.with_peak(105.0)
        assert raised is not position
        assert position.highest_price_since_entry == 100.0

    def test_frozen(self):
        position = Position.flat()
        with pytest.raises(AttributeError):
            position.state = PositionState.LONG

    def test_unrealized_pnl(self):
        position = Position.flat().with_entry(100.0, 1.0, TS)
        assert position.unrealized_pnl(101.0, 1000.0) == pytest.approx(10.0)
        assert position.unrealized_pnl_pct(99.0) == pytest.approx(-1.0)

    def test_unrealized_pnl_flat_is_zero(self):
        assert Position.flat().unrealized_pnl(100.0, 1000.0) == 0.0
        assert Position.flat().unrealized_pnl_pct(100.0) == 0.0
