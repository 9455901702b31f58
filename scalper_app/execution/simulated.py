"""Paper execution gateway for simulation runs."""

import threading
from collections import OrderedDict
from typing import Callable, Optional

import structlog

from ..utils.time import now_ms
from .base import ExecutionGateway, Fill, OrderResult

logger = structlog.get_logger(__name__)


class PaperExecutionGateway(ExecutionGateway):
    """
    Fills every order immediately at its reference price.

    Balances move as if the fill had happened, with zero fees, so the
    telemetry wallet view stays meaningful in simulation.
    """

    def __init__(
        self,
        base_currency: str,
        quote_currency: str,
        quote_balance: float = 10500.0,
        base_balance: float = 0.0,
        clock: Callable[[], int] = now_ms,
        max_orders: int = 1000
    ):
        self.base_currency = base_currency
        self.quote_currency = quote_currency
        self.clock = clock
        self.max_orders = max_orders
        self.logger = logger

        self._lock = threading.Lock()
        self._balances = {quote_currency: quote_balance, base_currency: base_balance}
        # Bounded by max_orders, oldest evicted first
        self._orders: OrderedDict[str, OrderResult] = OrderedDict()

    def place_order(self, side: str, instrument: str, size: float, *,
                    reference_price: float, client_order_id: str) -> OrderResult:
        with self._lock:
            existing = self._orders.get(client_order_id)
            if existing is not None:
                return existing

            notional = size * reference_price
            if side.upper() == "BUY":
                self._balances[self.quote_currency] -= notional
                self._balances[self.base_currency] += size
            else:
                self._balances[self.quote_currency] += notional
                self._balances[self.base_currency] -= size

            fill = Fill(
                client_order_id=client_order_id,
                side=side.upper(),
                price=reference_price,
                quantity=size,
                timestamp=self.clock(),
                venue_order_id=f"paper-{client_order_id}"
            )
            self._orders[client_order_id] = fill
            while len(self._orders) > self.max_orders:
                self._orders.popitem(last=False)

        self.logger.info(
            "Paper order filled",
            side=fill.side,
            instrument=instrument,
            price=reference_price,
            quantity=size,
            client_order_id=client_order_id
        )
        return fill

    def order_status(self, client_order_id: str) -> Optional[OrderResult]:
        with self._lock:
            return self._orders.get(client_order_id)

    def balances(self) -> dict[str, float]:
        with self._lock:
            return dict(self._balances)
