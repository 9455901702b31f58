"""Tests for band calculations"""

import math

import pytest

from scalper_app.metrics.bands import calculate_bands, calculate_mean_stddev


class TestMeanStddev:
    """Population statistics"""

    def test_known_values(self):
        mean, stddev = calculate_mean_stddev([2, 4, 4, 4, 5, 5, 7, 9])
        assert mean == 5.0
        assert stddev == 2.0


class TestBands:
    """Band calculation"""

    def test_insufficient_data(self):
        assert calculate_bands([100.0] * 19, period=20) is None

    def test_constant_prices_collapse_bands(self):
        bands = calculate_bands([100.0] * 20)
        assert bands["mean"] == 100.0
        assert bands["stddev"] == 0.0
        assert bands["upper_band"] == bands["lower_band"] == 100.0

    def test_uses_last_period_closes(self):
        closes = [1000.0] * 5 + [2, 4, 4, 4, 5, 5, 7, 9]
        bands = calculate_bands(closes, period=8, multiplier=2.0)
        assert bands["mean"] == 5.0
        assert bands["upper_band"] == 9.0
        assert bands["lower_band"] == 1.0

    def test_multiplier_scales_width(self):
        closes = [float(i) for i in range(1, 21)]
        narrow = calculate_bands(closes, multiplier=1.0)
        wide = calculate_bands(closes, multiplier=3.0)
        assert (wide["upper_band"] - wide["lower_band"]) == pytest.approx(
            3 * (narrow["upper_band"] - narrow["lower_band"]))

    def test_one_low_print_below_band(self):
        bands = calculate_bands([100.0] * 19 + [99.0])
        assert bands["mean"] == pytest.approx(99.95)
        assert bands["stddev"] == pytest.approx(math.sqrt(0.0475))
        assert 99.0 < bands["lower_band"]
