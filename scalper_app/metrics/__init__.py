"""Indicator calculations for band and momentum signals"""

from .bands import calculate_bands
from .calculator import IndicatorEngine
from .momentum import calculate_momentum_index

__all__ = [
    "IndicatorEngine",
    "calculate_bands",
    "calculate_momentum_index",
]
