"""
Position state machine module.

Holds the FLAT/LONG position models, the pure decision tick and the runtime
manager that commits transitions once orders fill.
"""

from .machine import eval_decision_tick
from .models import (
    Decision,
    DecisionParameters,
    DecisionReason,
    ExecutionOutcome,
    ExecutionStatus,
    OrderSide,
    Position,
    PositionCheckpoint,
    PositionState,
    TradeRecord,
)
from .runtime import PendingOrder, PositionManager

__all__ = [
    "Decision",
    "DecisionParameters",
    "DecisionReason",
    "ExecutionOutcome",
    "ExecutionStatus",
    "OrderSide",
    "PendingOrder",
    "Position",
    "PositionCheckpoint",
    "PositionManager",
    "PositionState",
    "TradeRecord",
    "eval_decision_tick",
]
