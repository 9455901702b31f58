"""
Logging setup for the scalping engine.

Every module logs through structlog with stdlib logging as the transport.
Decisions and position transitions go through the audit-bound loggers below
so they can be filtered out of the stream by their ``subsystem`` field.
"""
import logging
import sys
from typing import Any, Optional

import orjson
import structlog
from structlog.types import FilteringBoundLogger


def _orjson_dumps(event_dict: dict[str, Any], **kwargs: Any) -> str:
    return orjson.dumps(event_dict, **kwargs).decode("utf-8")


def configure_logging(level: str = "INFO", format_json: bool = False) -> None:
    """
    Configure structlog for the engine and the CLI.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: One orjson-encoded object per line instead of console output

    Raises:
        ValueError: Unknown level name
    """
    log_level = logging.getLevelName(str(level).upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s")

    if format_json:
        renderer = structlog.processors.JSONRenderer(serializer=_orjson_dumps)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """Module logger; configuration is picked up on first use."""
    return structlog.get_logger(name)


def get_decision_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for entry/exit decisions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound with the decision subsystem and audit flag
    """
    return get_logger(name).bind(
        subsystem="decision",
        audit_trail=True
    )


def get_state_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for position state transitions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound with the state machine subsystem and audit flag
    """
    return get_logger(name).bind(
        subsystem="state_machine",
        audit_trail=True
    )


def log_decision(
    logger: FilteringBoundLogger,
    action: str,
    reason: str,
    instrument: str,
    price: float,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log an entry/exit decision with standardized fields.

    Args:
        logger: Structlog logger instance
        action: "buy" or "sell"
        reason: Which rule fired
        instrument: Traded instrument
        price: Price the decision was taken at
        context: Indicator values and rule flags behind the decision
    """
    bound_logger = logger.bind(
        action=action,
        reason=reason,
        instrument=instrument,
        price=price,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("Decision signal")


def log_state_transition(
    logger: FilteringBoundLogger,
    instrument: str,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a position state transition with standardized format.

    Args:
        logger: Structlog logger instance
        instrument: Traded instrument
        from_state: Current state
        to_state: Target state
        trigger: What triggered the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        instrument=instrument,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")
