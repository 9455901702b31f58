"""
Market data module.

Price sample and bar models, venue payload parsers, and the synthesizer that
turns a polled price feed into fixed-width bars.
"""

from .bars import BarSynthesizer
from .models import Bar, BarUpdate, PriceSample, SeedReport
from .parsers import parse_candle, parse_candles, parse_number, parse_trade_tick

__all__ = [
    "Bar",
    "BarSynthesizer",
    "BarUpdate",
    "PriceSample",
    "SeedReport",
    "parse_candle",
    "parse_candles",
    "parse_number",
    "parse_trade_tick",
]
