"""Tests for time and interval helpers."""

import pytest

from scalper_app.utils.time import (
    align_to_interval,
    coerce_timestamp_ms,
    format_ms,
    intervals_between,
    is_aligned,
    now_ms,
    parse_interval,
)

MINUTE = 60_000
BASE = 1_672_531_200_000


class TestIntervals:

    @pytest.mark.parametrize("text,expected", [
        ("15s", 15_000),
        ("1m", 60_000),
        ("5m", 300_000),
        ("1h", 3_600_000),
        ("1d", 86_400_000),
    ])
    def test_parse_interval(self, text, expected):
        assert parse_interval(text) == expected

    @pytest.mark.parametrize("text", ["", "0m", "m", "1x", "-1m", None])
    def test_parse_interval_invalid(self, text):
        with pytest.raises(ValueError):
            parse_interval(text)

    def test_align(self):
        assert align_to_interval(BASE + 59_999, MINUTE) == BASE
        assert align_to_interval(BASE + MINUTE, MINUTE) == BASE + MINUTE
        assert is_aligned(BASE, MINUTE)
        assert not is_aligned(BASE + 1, MINUTE)

    def test_intervals_between(self):
        assert intervals_between(BASE, BASE + MINUTE, MINUTE) == 0
        assert intervals_between(BASE, BASE + 4 * MINUTE, MINUTE) == 3
        assert intervals_between(BASE, BASE, MINUTE) == 0


class TestTimestamps:

    def test_format_ms(self):
        assert format_ms(BASE) == "2023-01-01T00:00:00+00:00"
        assert format_ms(None) is None

    def test_now_ms_is_milliseconds(self):
        assert now_ms() > BASE

    @pytest.mark.parametrize("value", [
        BASE,
        BASE / 1000,
        str(BASE),
        "2023-01-01T00:00:00Z",
        "2023-01-01T00:00:00",
    ])
    def test_coerce_timestamp(self, value):
        assert coerce_timestamp_ms(value) == BASE

    @pytest.mark.parametrize("value", [True, None, [], "yesterday"])
    def test_coerce_timestamp_invalid(self, value):
        with pytest.raises(ValueError):
            coerce_timestamp_ms(value)
