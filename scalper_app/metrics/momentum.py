"""Momentum index (Wilder RSI) calculation"""

from collections.abc import Sequence
from typing import Optional

NEUTRAL_MOMENTUM = 50.0


def calculate_momentum_index(closes: Sequence[float], period: int = 14) -> Optional[float]:
    """
    Calculate the momentum index with Wilder smoothing

    The first `period` price changes seed average gain and loss with a simple
    mean; each later change is folded in as

        avg = (avg * (period - 1) + x) / period

    The final change is the live bar's, so the index moves with every sample.

    Args:
        closes: Close prices in chronological order
        period: Smoothing period (default 14)

    Returns:
        Value in [0, 100] or None if fewer than period + 1 closes
    """
    if period <= 0 or len(closes) < period + 1:
        return None

    values = list(closes)
    deltas = [values[i] - values[i - 1] for i in range(1, len(values))]

    seed = deltas[:period]
    avg_gain = sum(d for d in seed if d > 0) / period
    avg_loss = sum(-d for d in seed if d < 0) / period

    for delta in deltas[period:]:
        gain = delta if delta > 0 else 0.0
        loss = -delta if delta < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        # Flat window has no direction
        return 100.0 if avg_gain > 0 else NEUTRAL_MOMENTUM

    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)
