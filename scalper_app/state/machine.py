"""
Core mean-reversion decision logic.

eval_decision_tick is a pure function of the current position, the latest
indicator snapshot and price. It never mutates the position; the runtime
manager commits transitions only after the gateway confirms a fill.
"""

from typing import TYPE_CHECKING, Optional

from ..logging.config import get_decision_logger
from .models import Decision, DecisionParameters, DecisionReason, OrderSide, Position

if TYPE_CHECKING:
    from ..models.indicators import IndicatorSnapshot

decision_logger = get_decision_logger(__name__)


def eval_decision_tick(
    position: Position,
    snapshot: Optional["IndicatorSnapshot"],
    price: float,
    timestamp: int,
    params: Optional[DecisionParameters] = None
) -> Optional[Decision]:
    """
    Evaluate one decision tick.

    Args:
        position: Current position
        snapshot: Indicator values, None while warming up
        price: Latest trade price
        timestamp: Sample time in epoch milliseconds
        params: Thresholds (defaults used when omitted)

    Returns:
        Decision if an order should be placed, None otherwise
    """
    if snapshot is None:
        return None

    params = params or DecisionParameters()

    if position.is_long:
        return check_exit(position, snapshot, price, timestamp, params)
    return check_entry(snapshot, price, timestamp, params)


def check_entry(
    snapshot: "IndicatorSnapshot",
    price: float,
    timestamp: int,
    params: DecisionParameters
) -> Optional[Decision]:
    """Entry gates for a FLAT position."""
    momentum = snapshot.momentum_index

    oversold_below_band = (momentum < params.entry_threshold
                           and price < snapshot.lower_band)
    crash = momentum < params.aggressive_entry_threshold

    if not (oversold_below_band or crash):
        return None

    reason = DecisionReason.BAND_REVERSION if oversold_below_band else DecisionReason.CRASH_CATCH
    context = {
        "momentum_index": momentum,
        "lower_band": snapshot.lower_band,
        "mean": snapshot.mean,
        "below_band": price < snapshot.lower_band,
        "band_reversion": oversold_below_band,
        "crash_catch": crash,
        "timestamp": timestamp,
    }

    decision_logger.debug(
        "Entry gate passed",
        reason=reason.value,
        price=price,
        momentum_index=momentum
    )

    return Decision(action=OrderSide.BUY, reason=reason, trigger_context=context)


def check_exit(
    position: Position,
    snapshot: "IndicatorSnapshot",
    price: float,
    timestamp: int,
    params: DecisionParameters
) -> Optional[Decision]:
    """Exit gates for a LONG position. The peak is raised before the stop is checked."""
    peak = position.with_peak(price).highest_price_since_entry
    if peak is None:
        peak = price

    stop_price = peak * (1.0 - params.trailing_stop_pct)
    momentum = snapshot.momentum_index

    stop_hit = price <= stop_price
    overbought = momentum > params.exit_threshold

    if not (stop_hit or overbought):
        return None

    reason = DecisionReason.TRAILING_STOP if stop_hit else DecisionReason.TAKE_PROFIT
    context = {
        "momentum_index": momentum,
        "peak_price": peak,
        "stop_price": stop_price,
        "entry_price": position.entry_price,
        "trailing_stop": stop_hit,
        "take_profit": overbought,
        "timestamp": timestamp,
    }

    decision_logger.debug(
        "Exit gate passed",
        reason=reason.value,
        price=price,
        stop_price=stop_price,
        momentum_index=momentum
    )

    return Decision(action=OrderSide.SELL, reason=reason, trigger_context=context)
