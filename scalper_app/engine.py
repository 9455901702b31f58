"""
Main decision engine coordinator.

Orchestrates the scalping pipeline on a fixed cadence:
Price Feed → Bar Synthesizer → Indicators → Decision → Execution → Persistence,
and publishes an immutable telemetry snapshot after every cycle.
"""

import threading
import time
from collections import deque
from typing import Callable, Optional

import structlog

from .config.defaults import EngineConfig
from .data.bars import BarSynthesizer
from .data.models import PriceSample
from .errors import DataQualityError, PersistenceError, RecoverableError
from .execution.base import ExecutionGateway, MarketDataSource, call_with_retry
from .execution.coindcx import CoinDCXAdapter, split_instrument
from .execution.simulated import PaperExecutionGateway
from .logging.config import get_decision_logger, log_decision
from .metrics.calculator import IndicatorEngine
from .models.indicators import IndicatorSnapshot
from .models.telemetry import TelemetrySnapshot
from .persistence.retention import RetentionPruner
from .persistence.trade_log import TradeLog
from .persistence.writer import PersistenceWriter
from .state.machine import eval_decision_tick
from .state.models import (
    Decision,
    DecisionParameters,
    DecisionReason,
    ExecutionOutcome,
    OrderSide,
    PositionCheckpoint,
    TradeRecord,
)
from .state.runtime import PositionManager
from .utils.time import format_ms, now_ms

logger = structlog.get_logger(__name__)
decision_logger = get_decision_logger(__name__)


class ScalperEngine:
    """
    Single-instrument mean-reversion engine.

    The decision loop runs on the calling thread. Persistence is handed to a
    background writer and retention to a background pruner; observers read
    telemetry through current_snapshot() from any thread.
    """

    def __init__(
        self,
        config: EngineConfig,
        market_data: MarketDataSource,
        gateway: ExecutionGateway,
        trade_log: TradeLog,
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.config = config
        self.market_data = market_data
        self.gateway = gateway
        self.trade_log = trade_log
        self.clock = clock
        self.sleep = sleep
        self.logger = logger

        self.instrument = config.instrument
        self.params = DecisionParameters.from_config(config)

        self.synthesizer = BarSynthesizer(config.interval_ms, config.bar_capacity)
        self.indicators = IndicatorEngine(config)
        self.positions = PositionManager(
            self.instrument,
            config.risk.capital_per_position,
            alert_sink=self._record_event
        )
        self.writer = PersistenceWriter(trade_log, config.persistence.writer_queue_size)
        self.pruner = RetentionPruner(
            trade_log,
            config.retention_ms,
            config.persistence.prune_interval_seconds,
            clock=clock
        )

        self._stop_event = threading.Event()
        self._events: deque = deque(maxlen=config.runtime.event_log_size)
        self._snapshot_lock = threading.Lock()
        self._snapshot = TelemetrySnapshot(position_state=self.positions.position.state.value)

        self._balances: dict[str, float] = {}
        self._last_balance_refresh: Optional[int] = None
        self._last_checkpoint: Optional[tuple] = None
        self._last_indicators: Optional[IndicatorSnapshot] = None
        self._last_price: Optional[float] = None
        self.cycles = 0

    @classmethod
    def from_config(cls, config: EngineConfig) -> "ScalperEngine":
        """Wire the CoinDCX adapter, gateway and trade log described by config."""
        execution = config.execution
        adapter = CoinDCXAdapter(
            api_key=execution.api_key,
            api_secret=execution.api_secret,
            market_code=execution.market_code,
            timeout_seconds=execution.request_timeout_seconds
        )

        if execution.simulation:
            base, quote = split_instrument(config.instrument)
            gateway: ExecutionGateway = PaperExecutionGateway(
                base_currency=base,
                quote_currency=quote,
                quote_balance=execution.paper_quote_balance,
                base_balance=execution.paper_base_balance
            )
        else:
            gateway = adapter

        return cls(config, adapter, gateway, TradeLog(config.persistence.db_path))

    # Lifecycle

    def startup(self) -> None:
        """Restore state, warm up the bar history and start background threads."""
        checkpoint = self.trade_log.load_position()
        if checkpoint is not None:
            self.positions.restore(checkpoint.position, checkpoint.realized_pnl)
            self._last_checkpoint = (checkpoint.position, checkpoint.realized_pnl)

        self._seed_history()
        self._refresh_balances(force=True)

        self.writer.start()
        self.pruner.start()

        mode = "simulation" if self.config.execution.simulation else "live"
        self._record_event(f"Engine started ({mode}) on {self.instrument}")
        self._publish()

    def _seed_history(self) -> None:
        count = self.config.runtime.history_bars
        now = self.clock()

        report = None
        source = "venue"
        try:
            history = call_with_retry(
                self.market_data.historical_bars,
                self.instrument, self.config.bar_interval, count,
                max_retries=self.config.execution.feed_max_retries,
                base_delay=self.config.execution.feed_retry_delay_seconds,
                sleep=self.sleep
            )
            if history:
                report = self.synthesizer.seed(history, now_ms=now)
            else:
                self.logger.warning("Venue returned no history, seeding from trade log")
        except (DataQualityError, RecoverableError) as e:
            self.logger.warning(
                "Venue history unavailable, seeding from trade log",
                error=str(e),
                error_type=type(e).__name__
            )

        if report is None:
            try:
                report = self.synthesizer.seed(self.trade_log.recent_bars(count), now_ms=now)
                source = "log"
            except (DataQualityError, PersistenceError) as log_error:
                self.logger.warning("Trade log history unusable, starting cold",
                                    error=str(log_error))
                return

        closed = self.synthesizer.closed_bars()
        if closed and source == "venue":
            self.writer.submit(closed)
        self._record_event(f"Synced {report.accepted} bars from {source}")

    def run(self, max_cycles: Optional[int] = None) -> None:
        """
        Run the decision loop until stop() is called or max_cycles elapse.

        The stop flag is only checked between cycles, so an in-flight order
        call always completes.
        """
        self.startup()
        poll = self.config.runtime.poll_seconds
        try:
            while not self._stop_event.is_set():
                started = time.monotonic()
                self.run_cycle()
                if max_cycles is not None and self.cycles >= max_cycles:
                    break
                remaining = poll - (time.monotonic() - started)
                if remaining > 0:
                    self._stop_event.wait(remaining)
        finally:
            self.shutdown()

    def stop(self) -> None:
        """Request the loop to stop after the current cycle."""
        self._stop_event.set()

    def shutdown(self) -> None:
        """Optionally flatten, then stop background threads with a best-effort drain."""
        if self.config.risk.flatten_on_shutdown and self.positions.position.is_long:
            self._flatten()

        self.pruner.stop()
        self.writer.stop(self.config.persistence.writer_drain_timeout_seconds)
        self._record_event("Engine stopped")
        self._publish()
        self.logger.info("Engine shut down", cycles=self.cycles,
                         realized_pnl=self.positions.realized_pnl)

    def _flatten(self) -> None:
        sample = self._fetch_price()
        price = sample.price if sample else self._last_price
        if price is None:
            self._record_event("Flatten skipped: no price available")
            return

        timestamp = sample.timestamp if sample else self.clock()
        decision = Decision(action=OrderSide.SELL, reason=DecisionReason.SHUTDOWN,
                            trigger_context={"shutdown": True})
        self._record_event(f"Emergency sell at {price}")
        outcome = self.positions.execute(decision, price, timestamp, self.gateway)
        self._persist((), outcome, timestamp)

    # Decision cycle

    def run_cycle(self) -> Optional[ExecutionOutcome]:
        """
        One pass of fetch, ingest, evaluate, execute and persist.

        Bad or missing data skips the cycle without touching any state.
        """
        self.cycles += 1

        reconciled = self.positions.reconcile(self.gateway)
        if reconciled is not None:
            self._on_outcome(reconciled)
            self._persist((), reconciled, self.clock())

        sample = self._fetch_price()
        if sample is None:
            self._publish()
            return reconciled

        try:
            update = self.synthesizer.ingest(sample)
        except DataQualityError as e:
            self.logger.warning(
                "Sample rejected",
                error=str(e),
                error_type=type(e).__name__,
                price=sample.price,
                timestamp=sample.timestamp
            )
            self._publish()
            return reconciled

        price = sample.price
        self._last_price = price

        snapshot = self.indicators.calculate(self.synthesizer.window(self.indicators.lookback))
        self._last_indicators = snapshot

        position = self.positions.update_peak(price)
        decision = eval_decision_tick(position, snapshot, price, sample.timestamp, self.params)

        outcome = None
        if decision is not None:
            log_decision(
                decision_logger,
                action=decision.action.value,
                reason=decision.reason.value,
                instrument=self.instrument,
                price=price,
                context=decision.trigger_context
            )
            outcome = self.positions.execute(decision, price, sample.timestamp, self.gateway)
            self._on_outcome(outcome)

        self._persist(update.closed, outcome, sample.timestamp)
        self._refresh_balances()
        self._publish()

        return outcome or reconciled

    def _fetch_price(self) -> Optional[PriceSample]:
        try:
            return call_with_retry(
                self.market_data.latest_price,
                self.instrument,
                max_retries=self.config.execution.feed_max_retries,
                base_delay=self.config.execution.feed_retry_delay_seconds,
                sleep=self.sleep
            )
        except RecoverableError as e:
            self.logger.warning(
                "Price feed unavailable, skipping cycle",
                error=str(e),
                retry_count=e.retry_count
            )
            self._record_event(f"Feed error: {e}")
        except DataQualityError as e:
            self.logger.warning(
                "Price sample unusable, skipping cycle",
                error=str(e),
                error_type=type(e).__name__
            )
        return None

    def _on_outcome(self, outcome: ExecutionOutcome) -> None:
        if not outcome.filled:
            return
        if outcome.trade is not None:
            trade = outcome.trade
            self._record_event(
                f"SELL ({trade.exit_reason}) at {trade.exit_price:.2f}, "
                f"P&L {trade.realized_pnl:+.2f}"
            )
        else:
            self._record_event(
                f"BUY ({outcome.decision.reason.value}) at {outcome.fill_price:.2f}"
            )
        self._refresh_balances(force=True)

    def _persist(self, closed_bars: tuple, outcome: Optional[ExecutionOutcome],
                 timestamp: int) -> None:
        records: list = list(closed_bars)
        if outcome is not None and outcome.trade is not None:
            records.append(outcome.trade)

        position = self.positions.position
        realized = self.positions.realized_pnl
        if self._last_checkpoint != (position, realized):
            records.append(PositionCheckpoint(position=position, realized_pnl=realized,
                                              updated_at=timestamp))
            self._last_checkpoint = (position, realized)

        if records:
            self.writer.submit(records)

    def _refresh_balances(self, force: bool = False) -> None:
        now = self.clock()
        interval_ms = int(self.config.runtime.balance_refresh_seconds * 1000)
        if (not force and self._last_balance_refresh is not None
                and now - self._last_balance_refresh < interval_ms):
            return

        self._last_balance_refresh = now
        try:
            self._balances = self.gateway.balances()
        except (RecoverableError, DataQualityError) as e:
            self.logger.warning("Balance refresh failed", error=str(e))

    # Telemetry

    def _record_event(self, message: str) -> None:
        self._events.append(f"{format_ms(self.clock())} | {message}")

    def _publish(self) -> None:
        position = self.positions.position
        price = self._last_price
        snapshot = TelemetrySnapshot(
            position_state=position.state.value,
            price=price,
            entry_price=position.entry_price,
            unrealized_pnl=self.positions.unrealized_pnl(price) if price else 0.0,
            unrealized_pnl_pct=position.unrealized_pnl_pct(price) if price else 0.0,
            realized_pnl=self.positions.realized_pnl,
            indicators=self._last_indicators,
            account_balance=dict(self._balances),
            updated_at=self.clock(),
            recent_events=tuple(self._events)
        )
        with self._snapshot_lock:
            self._snapshot = snapshot

    def current_snapshot(self) -> TelemetrySnapshot:
        """Latest published telemetry; safe to call from any thread."""
        with self._snapshot_lock:
            return self._snapshot

    def recent_trades(self, limit: int = 20) -> list[TradeRecord]:
        """Completed trades from the log, newest first."""
        return self.trade_log.recent_trades(limit)
