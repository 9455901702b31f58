"""Background writer feeding the trade log from a bounded queue."""

import queue
import threading
from collections.abc import Sequence
from typing import Any, Optional

import structlog

from ..errors import PersistenceError
from .trade_log import LogRecord, TradeLog

logger = structlog.get_logger(__name__)


class PersistenceWriter:
    """
    Drains record batches into a TradeLog on a daemon thread.

    The decision loop only ever calls submit(), which never blocks: when the
    queue is full the oldest queued batch is discarded and counted. Each batch
    is written in a single transaction.
    """

    def __init__(self, trade_log: TradeLog, max_queue_size: int = 1000,
                 poll_interval: float = 0.2):
        self.trade_log = trade_log
        self.poll_interval = poll_interval
        self.logger = logger

        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stats_lock = threading.Lock()

        self._written_batches = 0
        self._written_records = 0
        self._dropped_batches = 0
        self._dropped_records = 0
        self._failed_batches = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="persistence-writer", daemon=True)
        self._thread.start()
        self.logger.info("Persistence writer started", queue_size=self._queue.maxsize)

    def submit(self, records: Sequence[LogRecord]) -> bool:
        """
        Queue a batch for writing.

        Returns:
            False if an older batch had to be dropped to make room
        """
        batch = tuple(records)
        if not batch:
            return True

        dropped = False
        while True:
            try:
                self._queue.put_nowait(batch)
                return not dropped
            except queue.Full:
                try:
                    oldest = self._queue.get_nowait()
                except queue.Empty:
                    continue
                self._queue.task_done()
                dropped = True
                with self._stats_lock:
                    self._dropped_batches += 1
                    self._dropped_records += len(oldest)
                self.logger.warning(
                    "Persistence queue full, dropped oldest batch",
                    dropped_records=len(oldest),
                    total_dropped_batches=self._dropped_batches
                )

    def flush(self) -> int:
        """Write everything queued on the calling thread. Returns batches written."""
        written = 0
        while True:
            try:
                batch = self._queue.get_nowait()
            except queue.Empty:
                return written
            self._write(batch)
            written += 1

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the thread, giving it up to timeout seconds to drain the queue."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                self.logger.warning(
                    "Persistence writer did not drain in time",
                    pending_batches=self._queue.qsize()
                )
            self._thread = None

        self.logger.info("Persistence writer stopped", **self.stats())

    def stats(self) -> dict[str, Any]:
        with self._stats_lock:
            return {
                "written_batches": self._written_batches,
                "written_records": self._written_records,
                "dropped_batches": self._dropped_batches,
                "dropped_records": self._dropped_records,
                "failed_batches": self._failed_batches,
                "pending_batches": self._queue.qsize(),
            }

    def _run(self) -> None:
        while not (self._stop_event.is_set() and self._queue.empty()):
            try:
                batch = self._queue.get(timeout=self.poll_interval)
            except queue.Empty:
                continue
            self._write(batch)

    def _write(self, batch: tuple) -> None:
        try:
            self.trade_log.append(batch)
        except PersistenceError as e:
            with self._stats_lock:
                self._failed_batches += 1
            self.logger.error(
                "Failed to persist batch",
                records=len(batch),
                error=str(e)
            )
        else:
            with self._stats_lock:
                self._written_batches += 1
                self._written_records += len(batch)
        finally:
            self._queue.task_done()
