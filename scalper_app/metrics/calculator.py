"""Indicator engine coordinating band and momentum calculations"""

from collections.abc import Sequence
from typing import Optional

import structlog

from ..config.defaults import EngineConfig, get_default_config
from ..data.models import Bar
from ..errors import InsufficientDataError
from ..models.indicators import IndicatorSnapshot
from .bands import calculate_bands
from .momentum import calculate_momentum_index

logger = structlog.get_logger(__name__)


class IndicatorEngine:
    """
    Computes an IndicatorSnapshot from the synthesizer's bar window.

    Only the last `momentum_lookback` bars are read, so each calculation costs
    the same however long the engine has been running.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or get_default_config()
        self.logger = logger

        self.band_period = self.config.bands.period
        self.band_multiplier = self.config.bands.multiplier
        self.momentum_period = self.config.strategy.momentum_period
        self.lookback = max(self.config.strategy.momentum_lookback, self.band_period,
                            self.momentum_period + 1)

        self.last_snapshot: Optional[IndicatorSnapshot] = None

    @property
    def warmup_bars(self) -> int:
        """Bars needed before both indicators are defined."""
        return max(self.band_period, self.momentum_period + 1)

    def calculate(self, window: Sequence[Bar]) -> Optional[IndicatorSnapshot]:
        """
        Calculate indicators for a bar window

        Args:
            window: Bars oldest first, live bar last

        Returns:
            IndicatorSnapshot, or None while warming up
        """
        if not window:
            return None

        bars = list(window)[-self.lookback:]
        closes = [bar.close for bar in bars]

        bands = calculate_bands(closes, self.band_period, self.band_multiplier)
        momentum = calculate_momentum_index(closes, self.momentum_period)

        if bands is None or momentum is None:
            self.logger.debug(
                "Indicators warming up",
                bars=len(closes),
                required=self.warmup_bars
            )
            return None

        snapshot = IndicatorSnapshot(
            mean=bands["mean"],
            stddev=bands["stddev"],
            upper_band=bands["upper_band"],
            lower_band=bands["lower_band"],
            momentum_index=momentum,
            timestamp=bars[-1].interval_start
        )
        self.last_snapshot = snapshot
        return snapshot

    def require(self, window: Sequence[Bar]) -> IndicatorSnapshot:
        """
        Like calculate(), but raise when the window is too short.

        Raises:
            InsufficientDataError: Fewer bars than the warm-up requirement
        """
        snapshot = self.calculate(window)
        if snapshot is None:
            raise InsufficientDataError(
                "Not enough bars for indicator calculation",
                required_count=self.warmup_bars,
                available_count=len(window)
            )
        return snapshot
