"""
Canonical data models for normalized market data.

This module defines immutable data structures for price samples and OHLCV
bars. A bar that is still forming is replaced, never mutated, so any
reference handed to a reader stays a consistent snapshot.
"""

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class PriceSample:
    """Single trade-price observation."""
    price: float
    timestamp: int      # Epoch milliseconds, venue time


@dataclass(frozen=True)
class Bar:
    """
    OHLCV bar for one fixed-width interval.

    Seeded closed bars carry the venue's traded volume. Bars built from the
    price feed, including a seeded bar that is still live, count samples.
    """
    interval_start: int  # Epoch milliseconds, aligned to the bar interval
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @classmethod
    def opened_at(cls, interval_start: int, price: float, volume: float = 1.0) -> "Bar":
        """New bar whose four prices all equal the opening price."""
        return cls(
            interval_start=interval_start,
            open=price,
            high=price,
            low=price,
            close=price,
            volume=volume
        )

    @classmethod
    def carry_forward(cls, interval_start: int, price: float) -> "Bar":
        """Flat, zero-volume bar standing in for an interval with no samples."""
        return cls.opened_at(interval_start, price, volume=0.0)

    def with_price(self, price: float) -> "Bar":
        """Copy of this bar updated with one more sample at price."""
        return replace(
            self,
            high=max(self.high, price),
            low=min(self.low, price),
            close=price,
            volume=self.volume + 1
        )

    def as_live(self) -> "Bar":
        """Copy reopened as the live bar; volume restarts as a sample count."""
        return replace(self, volume=0.0)

    def is_consistent(self) -> bool:
        """True if high/low bracket open and close."""
        return (self.high >= max(self.open, self.close)
                and self.low <= min(self.open, self.close))

    def to_dict(self) -> dict:
        return {
            "timestamp": self.interval_start,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(frozen=True)
class BarUpdate:
    """Result of ingesting one sample."""
    live: Bar
    closed: tuple = ()   # tuple[Bar, ...] frozen by this sample, oldest first

    @property
    def has_closed(self) -> bool:
        return bool(self.closed)


@dataclass(frozen=True)
class SeedReport:
    """Outcome of seeding the synthesizer from venue history."""
    accepted: int
    gaps: int = 0                       # Whole intervals missing inside the history
    live_bar: Optional[Bar] = None      # Seeded bar still forming at seed time
