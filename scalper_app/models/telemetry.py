"""Telemetry view published after every decision cycle"""

from dataclasses import dataclass, field
from typing import Optional

from .indicators import IndicatorSnapshot


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Point-in-time view of the engine for observers."""
    position_state: str
    price: Optional[float] = None
    entry_price: Optional[float] = None
    unrealized_pnl: float = 0.0
    unrealized_pnl_pct: float = 0.0
    realized_pnl: float = 0.0
    indicators: Optional[IndicatorSnapshot] = None
    account_balance: dict = field(default_factory=dict)
    updated_at: Optional[int] = None
    recent_events: tuple = ()       # tuple[str, ...], oldest first

    def to_dict(self) -> dict:
        return {
            "position_state": self.position_state,
            "price": self.price,
            "entry_price": self.entry_price,
            "unrealized_pnl": self.unrealized_pnl,
            "unrealized_pnl_pct": self.unrealized_pnl_pct,
            "realized_pnl": self.realized_pnl,
            "indicators": self.indicators.to_dict() if self.indicators else None,
            "account_balance": dict(self.account_balance),
            "updated_at": self.updated_at,
            "recent_events": list(self.recent_events),
        }
