"""Retention-bounded SQLite log of bars, trades and position state."""

import sqlite3
import threading
from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from ..data.models import Bar
from ..errors import PersistenceError
from ..state.models import Position, PositionCheckpoint, PositionState, TradeRecord
from ..utils.time import format_ms, now_ms

logger = structlog.get_logger(__name__)

LogRecord = Union[Bar, TradeRecord, PositionCheckpoint]

WATERMARK_KEY = "retention_watermark"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS bars (
        timestamp INTEGER PRIMARY KEY,
        open REAL NOT NULL,
        high REAL NOT NULL,
        low REAL NOT NULL,
        close REAL NOT NULL,
        volume REAL NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trades (
        id TEXT PRIMARY KEY,
        side TEXT NOT NULL,
        entry_ts INTEGER NOT NULL,
        exit_ts INTEGER NOT NULL,
        entry_price REAL NOT NULL,
        exit_price REAL NOT NULL,
        reason TEXT NOT NULL,
        pnl REAL NOT NULL,
        quantity REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS position (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        state TEXT NOT NULL,
        entry_price REAL,
        peak_price REAL,
        quantity REAL,
        entry_ts INTEGER,
        realized_pnl REAL NOT NULL DEFAULT 0,
        updated_at INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_trades_exit_ts ON trades(exit_ts)",
)

# Every read is bounded below by the watermark inside the same statement, so a
# reader sees either the pre-prune or the post-prune state, never a mix.
_WATERMARK_SQL = f"(SELECT CAST(value AS INTEGER) FROM meta WHERE key = '{WATERMARK_KEY}')"


@dataclass(frozen=True)
class PruneResult:
    """Outcome of one retention pass."""
    bars_deleted: int
    trades_deleted: int
    watermark: int


class TradeLog:
    """
    SQLite-backed persistent log.

    The database runs in WAL mode so readers in other threads or processes
    keep a consistent snapshot while the writer appends or prunes. Each
    operation opens its own connection; batches and prunes are single
    transactions.
    """

    def __init__(self, db_path: str = "scalper.db"):
        if str(db_path) == ":memory:":
            raise PersistenceError(
                "TradeLog needs a file path; in-memory databases are per-connection",
                operation="open",
                target=str(db_path)
            )

        self.db_path = Path(db_path)
        self.logger = logger
        self._lock = threading.Lock()

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._get_connection("init") as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.execute(
                "INSERT OR IGNORE INTO meta (key, value) VALUES (?, ?)",
                (WATERMARK_KEY, "0")
            )

    @contextmanager
    def _get_connection(self, operation: str):
        """Autocommit connection; transactions are opened explicitly."""
        conn = None
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30.0, isolation_level=None)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn is not None and conn.in_transaction:
                conn.execute("ROLLBACK")
            self.logger.error("Database error", operation=operation, error=str(e))
            raise PersistenceError(
                f"{operation} failed: {e}",
                operation=operation,
                target=str(self.db_path)
            ) from e
        finally:
            if conn is not None:
                conn.close()

    @contextmanager
    def _transaction(self, operation: str):
        """BEGIN IMMEDIATE ... COMMIT, rolled back on any exception."""
        with self._lock, self._get_connection(operation) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def append(self, records: Iterable[LogRecord]) -> int:
        """
        Write a batch of records in one transaction.

        Either every record in the batch becomes visible or none does. Bars
        are insert-or-ignore since a closed bar never changes.

        Returns:
            Number of records in the batch

        Raises:
            PersistenceError: The batch was rolled back
        """
        batch = list(records)
        if not batch:
            return 0

        try:
            with self._transaction("append") as conn:
                for record in batch:
                    self._write_record(conn, record)
        except TypeError as e:
            raise PersistenceError(str(e), operation="append",
                                   target=str(self.db_path)) from e

        self.logger.debug("Batch appended", records=len(batch))
        return len(batch)

    def _write_record(self, conn: sqlite3.Connection, record: LogRecord) -> None:
        if isinstance(record, Bar):
            conn.execute(
                """
                INSERT OR IGNORE INTO bars (timestamp, open, high, low, close, volume)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (record.interval_start, record.open, record.high, record.low,
                 record.close, record.volume)
            )
        elif isinstance(record, TradeRecord):
            conn.execute(
                """
                INSERT OR IGNORE INTO trades (
                    id, side, entry_ts, exit_ts, entry_price, exit_price,
                    reason, pnl, quantity
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (record.id, record.side, record.entry_timestamp, record.exit_timestamp,
                 record.entry_price, record.exit_price, record.exit_reason,
                 record.realized_pnl, record.quantity)
            )
        elif isinstance(record, PositionCheckpoint):
            position = record.position
            conn.execute(
                """
                INSERT OR REPLACE INTO position (
                    id, state, entry_price, peak_price, quantity, entry_ts,
                    realized_pnl, updated_at
                ) VALUES (1, ?, ?, ?, ?, ?, ?, ?)
                """,
                (position.state.value, position.entry_price,
                 position.highest_price_since_entry, position.quantity,
                 position.entry_timestamp, record.realized_pnl, record.updated_at)
            )
        else:
            raise TypeError(f"Cannot persist {type(record).__name__}")

    def prune(self, cutoff_ms: int) -> PruneResult:
        """
        Delete bars and trades older than cutoff_ms and advance the watermark.

        Runs as one transaction; concurrent readers never see a partial prune.
        The watermark never moves backwards.
        """
        with self._transaction("prune") as conn:
            bars_deleted = conn.execute(
                "DELETE FROM bars WHERE timestamp < ?", (cutoff_ms,)
            ).rowcount
            trades_deleted = conn.execute(
                "DELETE FROM trades WHERE exit_ts < ?", (cutoff_ms,)
            ).rowcount
            conn.execute(
                """
                UPDATE meta SET value = CAST(MAX(CAST(value AS INTEGER), ?) AS TEXT)
                WHERE key = ?
                """,
                (cutoff_ms, WATERMARK_KEY)
            )
            watermark = int(conn.execute(
                "SELECT value FROM meta WHERE key = ?", (WATERMARK_KEY,)
            ).fetchone()[0])

        result = PruneResult(bars_deleted=bars_deleted, trades_deleted=trades_deleted,
                             watermark=watermark)
        self.logger.info(
            "Pruned expired records",
            bars_deleted=bars_deleted,
            trades_deleted=trades_deleted,
            watermark=format_ms(watermark)
        )
        return result

    def watermark(self) -> int:
        """Oldest timestamp guaranteed to be retained."""
        with self._get_connection("watermark") as conn:
            row = conn.execute(
                "SELECT value FROM meta WHERE key = ?", (WATERMARK_KEY,)
            ).fetchone()
        return int(row[0]) if row else 0

    def recent_bars(self, limit: int = 50) -> list[Bar]:
        """Last `limit` bars, returned oldest first for seeding."""
        with self._get_connection("recent_bars") as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM bars WHERE timestamp >= {_WATERMARK_SQL}
                ORDER BY timestamp DESC LIMIT ?
                """,
                (limit,)
            ).fetchall()
        return [self._row_to_bar(row) for row in reversed(rows)]

    def bars_since(self, timestamp: int) -> list[Bar]:
        """Bars with interval start at or after timestamp, oldest first."""
        with self._get_connection("bars_since") as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM bars
                WHERE timestamp >= ? AND timestamp >= {_WATERMARK_SQL}
                ORDER BY timestamp
                """,
                (timestamp,)
            ).fetchall()
        return [self._row_to_bar(row) for row in rows]

    def recent_trades(self, limit: int = 20) -> list[TradeRecord]:
        """Most recent completed trades, newest first."""
        with self._get_connection("recent_trades") as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM trades WHERE exit_ts >= {_WATERMARK_SQL}
                ORDER BY exit_ts DESC, rowid DESC LIMIT ?
                """,
                (limit,)
            ).fetchall()
        return [self._row_to_trade(row) for row in rows]

    def load_position(self) -> Optional[PositionCheckpoint]:
        """Last saved position, or None on a fresh database."""
        with self._get_connection("load_position") as conn:
            row = conn.execute("SELECT * FROM position WHERE id = 1").fetchone()

        if row is None:
            return None

        state = PositionState(row["state"])
        if state == PositionState.LONG:
            position = Position(
                state=state,
                entry_price=row["entry_price"],
                highest_price_since_entry=row["peak_price"],
                quantity=row["quantity"],
                entry_timestamp=row["entry_ts"]
            )
        else:
            position = Position.flat()

        return PositionCheckpoint(
            position=position,
            realized_pnl=row["realized_pnl"] or 0.0,
            updated_at=row["updated_at"]
        )

    def stats(self) -> dict[str, Any]:
        """Row counts, time span and cumulative P&L of retained records."""
        with self._get_connection("stats") as conn:
            bars = conn.execute(
                f"""
                SELECT COUNT(*), MIN(timestamp), MAX(timestamp) FROM bars
                WHERE timestamp >= {_WATERMARK_SQL}
                """
            ).fetchone()
            trades = conn.execute(
                f"""
                SELECT COUNT(*), COALESCE(SUM(pnl), 0) FROM trades
                WHERE exit_ts >= {_WATERMARK_SQL}
                """
            ).fetchone()
            wm = conn.execute(
                "SELECT value FROM meta WHERE key = ?", (WATERMARK_KEY,)
            ).fetchone()

        return {
            "bar_count": bars[0],
            "oldest_bar": bars[1],
            "newest_bar": bars[2],
            "trade_count": trades[0],
            "retained_pnl": trades[1],
            "watermark": int(wm[0]) if wm else 0,
            "checked_at": now_ms(),
        }

    @staticmethod
    def _row_to_bar(row: sqlite3.Row) -> Bar:
        return Bar(
            interval_start=row["timestamp"],
            open=row["open"],
            high=row["high"],
            low=row["low"],
            close=row["close"],
            volume=row["volume"]
        )

    @staticmethod
    def _row_to_trade(row: sqlite3.Row) -> TradeRecord:
        return TradeRecord(
            id=row["id"],
            side=row["side"],
            entry_timestamp=row["entry_ts"],
            exit_timestamp=row["exit_ts"],
            entry_price=row["entry_price"],
            exit_price=row["exit_price"],
            exit_reason=row["reason"],
            realized_pnl=row["pnl"],
            quantity=row["quantity"]
        )
