"""
Parsers for raw venue payloads.

Venue responses carry prices either as JSON numbers or numeric strings and
may list candles newest first. Everything is normalized here into Bar and
PriceSample values in ascending time order.
"""

import math
from typing import Any, Optional

from ..errors import MalformedDataError, MissingDataError
from ..utils.time import coerce_timestamp_ms
from .models import Bar, PriceSample


def parse_number(value: Any, field: str) -> float:
    """
    Parse a price or volume given as a number or a numeric string.

    Raises:
        MalformedDataError: If the value is missing, non-numeric or not finite
    """
    if isinstance(value, bool) or value is None:
        raise MalformedDataError(
            f"Field '{field}' is not numeric",
            raw_data=repr(value),
            expected_format="number or numeric string"
        )

    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedDataError(
            f"Field '{field}' is not numeric",
            raw_data=repr(value)[:100],
            expected_format="number or numeric string"
        ) from None

    if not math.isfinite(number):
        raise MalformedDataError(f"Field '{field}' is not finite", raw_data=repr(value))

    return number


def _first_present(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def parse_candle(payload: dict[str, Any]) -> Bar:
    """Parse a single candle object into a Bar."""
    if not isinstance(payload, dict):
        raise MalformedDataError(
            f"Candle must be an object, got {type(payload).__name__}",
            raw_data=str(payload)[:100]
        )

    raw_ts = _first_present(payload, "time", "timestamp", "t")
    if raw_ts is None:
        raise MissingDataError("Candle missing time field", data_type="candle")

    try:
        interval_start = coerce_timestamp_ms(raw_ts)
    except ValueError:
        raise MalformedDataError("Candle time is not a timestamp", raw_data=repr(raw_ts)) from None

    bar = Bar(
        interval_start=interval_start,
        open=parse_number(payload.get("open"), "open"),
        high=parse_number(payload.get("high"), "high"),
        low=parse_number(payload.get("low"), "low"),
        close=parse_number(payload.get("close"), "close"),
        volume=parse_number(payload.get("volume", 0.0), "volume"),
    )

    if not bar.is_consistent():
        raise MalformedDataError(
            "Candle high/low do not bracket open/close",
            raw_data=str(payload)[:200]
        )

    return bar


def parse_candles(payload: Any) -> list[Bar]:
    """
    Parse a candle list into Bars ordered by interval start.

    Venues commonly return newest first; ordering is normalized here. Duplicate
    or irregular timestamps are left for the synthesizer's seed check.
    """
    if not isinstance(payload, list):
        raise MalformedDataError(
            f"Candle payload must be a list, got {type(payload).__name__}",
            raw_data=str(payload)[:100]
        )

    bars = [parse_candle(item) for item in payload]
    if len(bars) >= 2 and bars[0].interval_start > bars[-1].interval_start:
        bars.reverse()
    return bars


def parse_trade_tick(payload: Any, fallback_ts: Optional[int] = None) -> Optional[PriceSample]:
    """
    Parse the newest trade from a trade-history response.

    Accepts either a list of trades (first element newest) or a single trade
    object. Prices may sit under "p" or "price"; timestamps under "T",
    "timestamp" or "time". Returns None for an empty trade list.
    """
    if isinstance(payload, list):
        if not payload:
            return None
        payload = payload[0]

    if not isinstance(payload, dict):
        raise MalformedDataError(
            f"Trade must be an object, got {type(payload).__name__}",
            raw_data=str(payload)[:100]
        )

    raw_price = _first_present(payload, "p", "price")
    if raw_price is None:
        raise MissingDataError("Trade missing price field", data_type="trade")
    price = parse_number(raw_price, "price")
    if price <= 0:
        raise MalformedDataError("Trade price must be positive", raw_data=repr(raw_price))

    raw_ts = _first_present(payload, "T", "timestamp", "time")
    if raw_ts is None:
        if fallback_ts is None:
            raise MissingDataError("Trade missing timestamp field", data_type="trade")
        return PriceSample(price=price, timestamp=fallback_ts)

    try:
        timestamp = coerce_timestamp_ms(raw_ts)
    except ValueError:
        raise MalformedDataError("Trade time is not a timestamp", raw_data=repr(raw_ts)) from None

    return PriceSample(price=price, timestamp=timestamp)
