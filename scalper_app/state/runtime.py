"""
Runtime position management.

PositionManager owns the run's single Position. Decisions become transitions
only after the execution gateway confirms a fill; rejected orders leave the
position untouched, and an order whose outcome is unknown blocks all further
orders until it is reconciled.
"""

import uuid
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from ..errors import (
    DataQualityError,
    ExecutionError,
    OrderOutcomeUnknownError,
    RecoverableError,
    StateTransitionError,
)
from ..execution.base import ExecutionGateway, Fill, OrderFailure, OrderResult
from ..logging.config import get_state_logger, log_state_transition
from ..utils.time import format_ms
from .models import (
    Decision,
    ExecutionOutcome,
    ExecutionStatus,
    OrderSide,
    Position,
    PositionState,
    TradeRecord,
)

logger = structlog.get_logger(__name__)
state_logger = get_state_logger(__name__)


@dataclass(frozen=True)
class PendingOrder:
    """Order sent to the venue whose result is not yet known."""
    client_order_id: str
    decision: Decision
    reference_price: float
    size: float
    timestamp: int


class PositionManager:
    """Guards and commits FLAT/LONG transitions for one instrument."""

    def __init__(
        self,
        instrument: str,
        capital: float,
        alert_sink: Optional[Callable[[str], None]] = None
    ):
        self.instrument = instrument
        self.capital = capital
        self.logger = logger
        self.alert_sink = alert_sink

        self._position = Position.flat()
        self._realized_pnl = 0.0
        self._unresolved: Optional[PendingOrder] = None

    @property
    def position(self) -> Position:
        return self._position

    @property
    def realized_pnl(self) -> float:
        return self._realized_pnl

    @property
    def unresolved_order(self) -> Optional[PendingOrder]:
        return self._unresolved

    def unrealized_pnl(self, price: float) -> float:
        return self._position.unrealized_pnl(price, self.capital)

    def restore(self, position: Position, realized_pnl: float = 0.0) -> None:
        """Rehydrate state saved by a previous run."""
        self._position = position
        self._realized_pnl = realized_pnl
        self.logger.info(
            "Restored position state",
            instrument=self.instrument,
            state=position.state.value,
            entry_price=position.entry_price,
            peak_price=position.highest_price_since_entry,
            realized_pnl=realized_pnl
        )

    def update_peak(self, price: float) -> Position:
        """Raise the peak since entry; the peak never moves down."""
        self._position = self._position.with_peak(price)
        return self._position

    def execute(self, decision: Decision, price: float, timestamp: int,
                gateway: ExecutionGateway) -> ExecutionOutcome:
        """
        Place the order for a decision and commit the transition on fill.

        Args:
            decision: BUY or SELL decision from the decision tick
            price: Reference price the decision was taken at
            timestamp: Decision time in epoch milliseconds
            gateway: Execution gateway

        Returns:
            ExecutionOutcome describing what happened
        """
        if self._unresolved is not None:
            self.logger.warning(
                "Order outcome unresolved, not sending another",
                instrument=self.instrument,
                client_order_id=self._unresolved.client_order_id,
                action=decision.action.value
            )
            return ExecutionOutcome(
                status=ExecutionStatus.SKIPPED,
                decision=decision,
                client_order_id=self._unresolved.client_order_id,
                message="previous order unresolved"
            )

        expected = OrderSide.SELL if self._position.is_long else OrderSide.BUY
        if decision.action != expected:
            self.logger.warning(
                "Decision does not match position state",
                instrument=self.instrument,
                state=self._position.state.value,
                action=decision.action.value
            )
            return ExecutionOutcome(
                status=ExecutionStatus.SKIPPED,
                decision=decision,
                message=f"{decision.action.value} not valid while {self._position.state.value}"
            )

        if decision.action == OrderSide.BUY:
            size = self.capital / price
        else:
            size = self._position.quantity or 0.0

        client_order_id = self._new_client_order_id(decision.action, timestamp)

        try:
            result = gateway.place_order(
                decision.action.value,
                self.instrument,
                size,
                reference_price=price,
                client_order_id=client_order_id
            )
        except (OrderOutcomeUnknownError, DataQualityError) as e:
            self._unresolved = PendingOrder(
                client_order_id=client_order_id,
                decision=decision,
                reference_price=price,
                size=size,
                timestamp=timestamp
            )
            self._alert(
                f"{decision.action.value} order {client_order_id} outcome unknown: {e}"
            )
            return ExecutionOutcome(
                status=ExecutionStatus.UNKNOWN,
                decision=decision,
                client_order_id=client_order_id,
                message=str(e)
            )

        return self._apply_result(result, decision, timestamp)

    def reconcile(self, gateway: ExecutionGateway) -> Optional[ExecutionOutcome]:
        """
        Ask the gateway what happened to the unresolved order, if any.

        Returns:
            Outcome once the order is resolved, None while nothing changed
        """
        pending = self._unresolved
        if pending is None:
            return None

        try:
            result = gateway.order_status(pending.client_order_id)
        except (RecoverableError, DataQualityError) as e:
            self.logger.warning(
                "Order status lookup failed",
                client_order_id=pending.client_order_id,
                error=str(e)
            )
            return None

        if result is None:
            return None

        self._unresolved = None
        self.logger.info(
            "Unresolved order reconciled",
            client_order_id=pending.client_order_id,
            result=type(result).__name__
        )
        timestamp = result.timestamp if isinstance(result, Fill) else pending.timestamp
        return self._apply_result(result, pending.decision, timestamp)

    def commit_entry(self, fill_price: float, quantity: float, timestamp: int) -> Position:
        """
        FLAT -> LONG at the fill price.

        Raises:
            StateTransitionError: Already LONG
        """
        if self._position.is_long:
            raise StateTransitionError(
                "Cannot enter while already long",
                current_state=self._position.state.value,
                attempted_transition="FLAT->LONG"
            )

        previous = self._position
        self._position = previous.with_entry(fill_price, quantity, timestamp)

        log_state_transition(
            state_logger,
            instrument=self.instrument,
            from_state=previous.state.value,
            to_state=PositionState.LONG.value,
            trigger="entry_fill",
            context={
                "entry_price": fill_price,
                "quantity": quantity,
                "timestamp": format_ms(timestamp)
            }
        )
        return self._position

    def commit_exit(self, fill_price: float, timestamp: int, reason: str,
                    trade_id: Optional[str] = None) -> TradeRecord:
        """
        LONG -> FLAT at the fill price, booking realized P&L.

        Raises:
            StateTransitionError: Already FLAT
        """
        position = self._position
        if not position.is_long or position.entry_price is None:
            raise StateTransitionError(
                "Cannot exit while flat",
                current_state=position.state.value,
                attempted_transition="LONG->FLAT"
            )

        pnl = (fill_price - position.entry_price) / position.entry_price * self.capital
        trade = TradeRecord(
            id=trade_id or uuid.uuid4().hex,
            side=PositionState.LONG.value,
            entry_timestamp=position.entry_timestamp or timestamp,
            exit_timestamp=timestamp,
            entry_price=position.entry_price,
            exit_price=fill_price,
            exit_reason=reason,
            realized_pnl=pnl,
            quantity=position.quantity or 0.0
        )

        self._realized_pnl += pnl
        self._position = Position.flat()

        log_state_transition(
            state_logger,
            instrument=self.instrument,
            from_state=PositionState.LONG.value,
            to_state=PositionState.FLAT.value,
            trigger=reason,
            context={
                "entry_price": position.entry_price,
                "exit_price": fill_price,
                "peak_price": position.highest_price_since_entry,
                "realized_pnl": pnl,
                "cumulative_pnl": self._realized_pnl,
                "timestamp": format_ms(timestamp)
            }
        )
        return trade

    def _apply_result(self, result: OrderResult, decision: Decision,
                      timestamp: int) -> ExecutionOutcome:
        if isinstance(result, OrderFailure):
            error = ExecutionError(
                f"{decision.action.value} order {result.client_order_id} failed: {result.reason}",
                side=decision.action.value,
                client_order_id=result.client_order_id
            )
            self._alert(str(error))
            return ExecutionOutcome(
                status=ExecutionStatus.FAILED,
                decision=decision,
                client_order_id=result.client_order_id,
                message=result.reason,
                error=error
            )

        trade = None
        if decision.action == OrderSide.BUY:
            self.commit_entry(result.price, result.quantity, timestamp)
        else:
            trade = self.commit_exit(result.price, timestamp, decision.reason.value,
                                     trade_id=result.client_order_id)

        return ExecutionOutcome(
            status=ExecutionStatus.FILLED,
            decision=decision,
            client_order_id=result.client_order_id,
            fill_price=result.price,
            trade=trade
        )

    def _alert(self, message: str) -> None:
        self.logger.error("Execution alert", instrument=self.instrument, alert=message)
        if self.alert_sink is not None:
            self.alert_sink(message)

    def _new_client_order_id(self, side: OrderSide, timestamp: int) -> str:
        return f"{side.value.lower()}-{timestamp}-{uuid.uuid4().hex[:8]}"
