"""
State machine data models for the single-instrument position lifecycle.

This module defines immutable data structures for the position, the decisions
that move it between FLAT and LONG, and the records produced when a round
trip completes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class PositionState(str, Enum):
    """Position lifecycle states."""
    FLAT = "FLAT"
    LONG = "LONG"


class OrderSide(str, Enum):
    """Order direction."""
    BUY = "BUY"
    SELL = "SELL"


class DecisionReason(str, Enum):
    """Why a decision was taken."""
    BAND_REVERSION = "band_reversion"    # Oversold and below the lower band
    CRASH_CATCH = "crash_catch"          # Deeply oversold regardless of bands
    TRAILING_STOP = "trailing_stop"
    TAKE_PROFIT = "take_profit"
    SHUTDOWN = "shutdown"                # Flatten requested on exit


class ExecutionStatus(str, Enum):
    """Outcome of a guarded execution attempt."""
    FILLED = "filled"
    FAILED = "failed"
    UNKNOWN = "unknown"      # Order sent, result not known; blocks further orders
    SKIPPED = "skipped"      # Guard refused to send


@dataclass(frozen=True)
class Position:
    """The one position held by a run."""

    state: PositionState = PositionState.FLAT
    entry_price: Optional[float] = None
    highest_price_since_entry: Optional[float] = None
    quantity: Optional[float] = None
    entry_timestamp: Optional[int] = None

    @classmethod
    def flat(cls) -> 'Position':
        return cls()

    @property
    def is_long(self) -> bool:
        return self.state == PositionState.LONG

    def with_entry(self, price: float, quantity: float, timestamp: int) -> 'Position':
        """Open at the fill price; the peak starts at the fill price."""
        return Position(
            state=PositionState.LONG,
            entry_price=price,
            highest_price_since_entry=price,
            quantity=quantity,
            entry_timestamp=timestamp
        )

    def with_peak(self, price: float) -> 'Position':
        """Raise the peak to price if higher. No-op when FLAT."""
        if not self.is_long or self.highest_price_since_entry is None:
            return self
        if price <= self.highest_price_since_entry:
            return self
        return Position(
            state=self.state,
            entry_price=self.entry_price,
            highest_price_since_entry=price,
            quantity=self.quantity,
            entry_timestamp=self.entry_timestamp
        )

    def unrealized_pnl(self, price: float, capital: float) -> float:
        """Mark-to-market P&L in quote currency, zero when FLAT."""
        if not self.is_long or not self.entry_price:
            return 0.0
        return (price - self.entry_price) / self.entry_price * capital

    def unrealized_pnl_pct(self, price: float) -> float:
        if not self.is_long or not self.entry_price:
            return 0.0
        return (price - self.entry_price) / self.entry_price * 100.0


@dataclass(frozen=True)
class TradeRecord:
    """Completed round trip."""

    id: str
    side: str                   # Side of the position that was closed
    entry_timestamp: int
    exit_timestamp: int
    entry_price: float
    exit_price: float
    exit_reason: str
    realized_pnl: float
    quantity: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "side": self.side,
            "entry_timestamp": self.entry_timestamp,
            "exit_timestamp": self.exit_timestamp,
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "exit_reason": self.exit_reason,
            "realized_pnl": self.realized_pnl,
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class PositionCheckpoint:
    """Position plus cumulative P&L, as written to the log for restarts."""

    position: Position
    realized_pnl: float
    updated_at: int


@dataclass(frozen=True)
class Decision:
    """Result of one decision tick."""

    action: OrderSide
    reason: DecisionReason
    trigger_context: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ExecutionOutcome:
    """What happened when a decision was handed to the gateway."""

    status: ExecutionStatus
    decision: Decision
    client_order_id: Optional[str] = None
    fill_price: Optional[float] = None
    trade: Optional[TradeRecord] = None     # Set when an exit filled
    message: Optional[str] = None
    error: Optional[Exception] = None       # ExecutionError when the venue refused

    @property
    def filled(self) -> bool:
        return self.status == ExecutionStatus.FILLED


@dataclass(frozen=True)
class DecisionParameters:
    """Thresholds read by the decision tick."""

    entry_threshold: float = 30.0
    aggressive_entry_threshold: float = 20.0
    exit_threshold: float = 70.0
    trailing_stop_pct: float = 0.005

    @classmethod
    def from_config(cls, config) -> 'DecisionParameters':
        return cls(
            entry_threshold=config.strategy.entry_threshold,
            aggressive_entry_threshold=config.strategy.aggressive_entry_threshold,
            exit_threshold=config.strategy.exit_threshold,
            trailing_stop_pct=config.risk.trailing_stop_pct
        )
