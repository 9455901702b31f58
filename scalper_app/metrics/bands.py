"""Volatility band calculations (rolling mean +/- k standard deviations)"""

import math
from collections.abc import Sequence
from typing import Optional


def calculate_mean_stddev(values: Sequence[float]) -> tuple[float, float]:
    """
    Mean and population standard deviation of a non-empty sequence

    Args:
        values: Sample values

    Returns:
        (mean, stddev) tuple
    """
    n = len(values)
    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / n
    return mean, math.sqrt(variance)


def calculate_bands(closes: Sequence[float], period: int = 20,
                    multiplier: float = 2.0) -> Optional[dict[str, float]]:
    """
    Calculate bands over the last `period` closes

    upper = mean + multiplier * stddev
    lower = mean - multiplier * stddev

    Args:
        closes: Close prices in chronological order
        period: Number of closes in the window (default 20)
        multiplier: Band width in standard deviations (default 2.0)

    Returns:
        Dict with mean, stddev, upper_band, lower_band or None if insufficient data
    """
    if period <= 0 or len(closes) < period:
        return None

    window = list(closes)[-period:]
    mean, stddev = calculate_mean_stddev(window)

    return {
        "mean": mean,
        "stddev": stddev,
        "upper_band": mean + multiplier * stddev,
        "lower_band": mean - multiplier * stddev,
    }
