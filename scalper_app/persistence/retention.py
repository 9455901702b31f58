"""Periodic pruning of records older than the retention horizon."""

import threading
from typing import Callable, Optional

import structlog

from ..errors import PersistenceError
from ..utils.time import now_ms
from .trade_log import PruneResult, TradeLog

logger = structlog.get_logger(__name__)


class RetentionPruner:
    """Runs TradeLog.prune on its own thread every interval_seconds."""

    def __init__(
        self,
        trade_log: TradeLog,
        retention_ms: int,
        interval_seconds: float = 300.0,
        clock: Callable[[], int] = now_ms
    ):
        self.trade_log = trade_log
        self.retention_ms = retention_ms
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.logger = logger

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_result: Optional[PruneResult] = None
        self.failures = 0

    def prune_once(self) -> Optional[PruneResult]:
        """Prune now. Failures are logged and counted, never raised."""
        cutoff = self.clock() - self.retention_ms
        try:
            result = self.trade_log.prune(cutoff)
        except PersistenceError as e:
            self.failures += 1
            self.logger.error("Retention prune failed", cutoff=cutoff, error=str(e))
            return None

        self.last_result = result
        return result

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="retention-pruner", daemon=True)
        self._thread.start()
        self.logger.info(
            "Retention pruner started",
            retention_minutes=self.retention_ms // 60_000,
            interval_seconds=self.interval_seconds
        )

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            self.prune_once()
