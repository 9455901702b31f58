"""
Error classification for the scalping engine.

This module provides a structured exception hierarchy separating bad market
input, transient faults that can be retried, and failures that abort a
transition or the process.
"""

from .data_quality import (
    DataQualityError,
    TemporalDataError,
    MissingDataError,
    MalformedDataError,
    InsufficientDataError,
)
from .system_failures import (
    SystemFailureError,
    ExecutionError,
    StateTransitionError,
    PersistenceError,
    ConfigurationError,
)
from .recovery import (
    RecoverableError,
    TransientFeedError,
    OrderOutcomeUnknownError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "TemporalDataError",
    "MissingDataError",
    "MalformedDataError",
    "InsufficientDataError",
    # System Failures
    "SystemFailureError",
    "ExecutionError",
    "StateTransitionError",
    "PersistenceError",
    "ConfigurationError",
    # Recovery Categories
    "RecoverableError",
    "TransientFeedError",
    "OrderOutcomeUnknownError",
]
