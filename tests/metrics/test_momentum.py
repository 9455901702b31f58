"""Tests for the momentum index"""

import pytest

from scalper_app.metrics.momentum import calculate_momentum_index


class TestMomentumIndex:
    """Wilder RSI"""

    def test_insufficient_data(self):
        assert calculate_momentum_index([100.0] * 14, period=14) is None

    def test_minimum_data(self):
        assert calculate_momentum_index([100.0] * 15, period=14) is not None

    def test_constant_prices_are_neutral(self):
        assert calculate_momentum_index([100.0] * 50) == 50.0

    def test_only_gains(self):
        closes = [100.0 + i for i in range(20)]
        assert calculate_momentum_index(closes) == 100.0

    def test_only_losses(self):
        closes = [100.0 - i for i in range(20)]
        assert calculate_momentum_index(closes) == 0.0

    def test_single_drop_after_flat_window(self):
        assert calculate_momentum_index([100.0] * 49 + [99.0]) == 0.0

    def test_wilder_smoothing(self):
        # flat seed, then -1, +1: avg_gain 1/14, avg_loss 13/196
        closes = [100.0] * 48 + [99.0, 100.0]
        assert calculate_momentum_index(closes) == pytest.approx(100 - 100 * 13 / 27)

    def test_seed_uses_simple_average(self):
        closes = [10, 11, 10, 11, 10]
        # period 4: gains 2/4, losses 2/4
        assert calculate_momentum_index(closes, period=4) == pytest.approx(50.0)

    def test_bounded(self):
        closes = [100, 103, 101, 99, 104, 98, 97, 105, 110, 95, 96, 99, 101, 102, 90, 91, 93]
        value = calculate_momentum_index(closes)
        assert 0.0 <= value <= 100.0
