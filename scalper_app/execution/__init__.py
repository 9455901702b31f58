"""
Execution module.

Interfaces for market data and order entry, the paper gateway used in
simulation, and the CoinDCX REST adapter.
"""

from .base import (
    ExecutionGateway,
    Fill,
    MarketDataSource,
    OrderFailure,
    OrderResult,
    VenueAdapter,
    call_with_retry,
)
from .coindcx import CoinDCXAdapter, market_code_for, split_instrument
from .simulated import PaperExecutionGateway

__all__ = [
    "CoinDCXAdapter",
    "ExecutionGateway",
    "Fill",
    "MarketDataSource",
    "OrderFailure",
    "OrderResult",
    "PaperExecutionGateway",
    "VenueAdapter",
    "call_with_retry",
    "market_code_for",
    "split_instrument",
]
