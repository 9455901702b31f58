"""
Persistence module.

Durable, retention-bounded storage of closed bars, completed trades and the
current position, plus the background writer and pruner threads.
"""

from .retention import RetentionPruner
from .trade_log import LogRecord, PruneResult, TradeLog
from .writer import PersistenceWriter

__all__ = [
    "LogRecord",
    "PersistenceWriter",
    "PruneResult",
    "RetentionPruner",
    "TradeLog",
]
