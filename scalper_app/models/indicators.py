"""Data models for indicator calculations"""

from dataclasses import dataclass


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Band and momentum values for one bar window"""
    mean: float
    stddev: float
    upper_band: float
    lower_band: float
    momentum_index: float
    timestamp: int  # interval_start of the newest bar in the window

    @property
    def band_width(self) -> float:
        return self.upper_band - self.lower_band

    def to_dict(self) -> dict:
        return {
            "mean": self.mean,
            "stddev": self.stddev,
            "upper_band": self.upper_band,
            "lower_band": self.lower_band,
            "momentum_index": self.momentum_index,
            "timestamp": self.timestamp,
        }
