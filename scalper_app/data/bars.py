"""
Tick-to-bar synthesis.

BarSynthesizer buckets price samples into fixed-width OHLCV bars. It keeps a
bounded history of closed bars plus exactly one live bar once the first
sample arrives. Intervals with no samples are filled with flat carry-forward
bars so indicator windows always span consecutive intervals.
"""

import math
from collections import deque
from typing import Iterable, Optional

import structlog

from ..errors import MalformedDataError, TemporalDataError
from ..utils.time import align_to_interval, format_ms, intervals_between, is_aligned
from .models import Bar, BarUpdate, PriceSample, SeedReport

logger = structlog.get_logger(__name__)


class BarSynthesizer:
    """
    Builds fixed-width bars from timestamped price samples.

    Single writer: only the ingestion path calls seed() and ingest(). Readers
    call window(), live_bar or closed_bars() and receive immutable values; the
    writer publishes a fresh tuple after every change, so no lock is needed.
    """

    def __init__(self, interval_ms: int, capacity: int):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if capacity <= 0:
            raise ValueError("capacity must be positive")

        self.interval_ms = interval_ms
        self.capacity = capacity
        self.logger = logger

        self._closed: deque = deque(maxlen=capacity)
        self._live: Optional[Bar] = None
        self._view: tuple = ()

    @property
    def live_bar(self) -> Optional[Bar]:
        """The bar currently forming, or None before the first sample."""
        return self._live

    @property
    def last_price(self) -> Optional[float]:
        """Most recent known price."""
        view = self._view
        return view[-1].close if view else None

    def closed_bars(self) -> tuple:
        """Closed history, oldest first."""
        view = self._view
        if self._live is not None and view and view[-1] is self._live:
            return view[:-1]
        return view

    def window(self, n: int) -> tuple:
        """
        Last n bars: closed history followed by the live bar.

        Args:
            n: Number of bars wanted; fewer are returned during warm-up

        Returns:
            Tuple of frozen Bars, oldest first
        """
        if n <= 0:
            return ()
        return self._view[-n:]

    def seed(self, history: Iterable[Bar], now_ms: Optional[int] = None) -> SeedReport:
        """
        Initialize closed history from venue bars.

        Bars must be aligned to the interval grid and strictly increasing.
        Gaps are flagged but not filled. A bar whose interval contains now_ms
        is still forming at the venue and becomes the live bar.

        Raises:
            TemporalDataError: Misaligned, duplicate or out-of-order bars
            MalformedDataError: Bars whose high/low do not bracket open/close
        """
        bars = list(history)
        gaps = 0
        previous: Optional[Bar] = None

        for bar in bars:
            if not is_aligned(bar.interval_start, self.interval_ms):
                raise TemporalDataError(
                    "Seed bar is not aligned to the bar interval",
                    timestamp=bar.interval_start,
                    expected_timestamp=align_to_interval(bar.interval_start, self.interval_ms)
                )
            if not bar.is_consistent():
                raise MalformedDataError(
                    "Seed bar high/low do not bracket open/close",
                    raw_data=str(bar.to_dict())
                )
            if previous is not None:
                if bar.interval_start <= previous.interval_start:
                    raise TemporalDataError(
                        "Seed bars are not strictly increasing",
                        timestamp=bar.interval_start,
                        expected_timestamp=previous.interval_start + self.interval_ms
                    )
                gaps += intervals_between(previous.interval_start, bar.interval_start,
                                          self.interval_ms)
            previous = bar

        live: Optional[Bar] = None
        if bars and now_ms is not None:
            if bars[-1].interval_start == align_to_interval(now_ms, self.interval_ms):
                live = bars.pop().as_live()

        if gaps:
            self.logger.warning(
                "Seed history has missing intervals",
                missing_intervals=gaps,
                bars=len(bars)
            )

        self._closed = deque(bars, maxlen=self.capacity)
        self._live = live
        self._publish()

        self.logger.info(
            "Bar history seeded",
            closed_bars=len(self._closed),
            live_bar=format_ms(live.interval_start) if live else None,
            gaps=gaps
        )

        return SeedReport(accepted=len(bars) + (1 if live else 0), gaps=gaps, live_bar=live)

    def ingest(self, sample: PriceSample) -> BarUpdate:
        """
        Apply one price sample.

        Returns:
            BarUpdate with the live bar and any bars closed by this sample

        Raises:
            MalformedDataError: Non-positive or non-finite price
            TemporalDataError: Sample older than the live interval
        """
        price = sample.price
        if not isinstance(price, (int, float)) or not math.isfinite(price) or price <= 0:
            raise MalformedDataError("Sample price must be a positive number", raw_data=repr(price))

        bucket = align_to_interval(sample.timestamp, self.interval_ms)
        live = self._live

        if live is not None and bucket == live.interval_start:
            self._live = live.with_price(price)
            self._publish()
            return BarUpdate(live=self._live)

        if live is not None:
            if bucket < live.interval_start:
                raise TemporalDataError(
                    "Sample is older than the live bar",
                    timestamp=sample.timestamp,
                    expected_timestamp=live.interval_start
                )
            closed = [live] + self._carry_forward(live, bucket)
        elif self._closed:
            last = self._closed[-1]
            if bucket <= last.interval_start:
                raise TemporalDataError(
                    "Sample falls inside closed history",
                    timestamp=sample.timestamp,
                    expected_timestamp=last.interval_start + self.interval_ms
                )
            closed = self._carry_forward(last, bucket)
        else:
            closed = []

        self._closed.extend(closed)
        self._live = Bar.opened_at(bucket, price)
        self._publish()

        if len(closed) > 1 or (live is None and closed):
            self.logger.warning(
                "Feed gap filled with carry-forward bars",
                carry_forward_bars=len(closed) - (1 if live is not None else 0),
                resumed_at=format_ms(bucket)
            )

        return BarUpdate(live=self._live, closed=tuple(closed))

    def _carry_forward(self, last: Bar, bucket: int) -> list:
        """Flat bars for every interval strictly between last and bucket."""
        skipped = intervals_between(last.interval_start, bucket, self.interval_ms)
        count = min(skipped, self.capacity)
        return [
            Bar.carry_forward(bucket - k * self.interval_ms, last.close)
            for k in range(count, 0, -1)
        ]

    def _publish(self) -> None:
        bars = list(self._closed)
        if self._live is not None:
            bars.append(self._live)
        self._view = tuple(bars)
