"""Configuration validation utilities."""

import math
import re
from dataclasses import dataclass
from typing import Any

from ..utils.time import parse_interval

_INSTRUMENT_RE = re.compile(r"^[A-Za-z0-9]+(?:[-_][A-Za-z0-9]+)*$")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _positive_number(value: Any) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value) and value > 0)


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_market(config) -> list[ValidationError]:
        """Validate instrument and bar interval."""
        errors = []

        if not config.instrument or not _INSTRUMENT_RE.match(config.instrument):
            errors.append(ValidationError(
                field="instrument",
                message="Must be a non-empty venue symbol such as B-BTC_USDT",
                value=config.instrument
            ))

        try:
            parse_interval(config.bar_interval)
        except ValueError:
            errors.append(ValidationError(
                field="bar_interval",
                message="Must look like 15s, 1m, 5m or 1h",
                value=config.bar_interval
            ))

        return errors

    @staticmethod
    def validate_strategy_params(params) -> list[ValidationError]:
        """Validate momentum parameters."""
        errors = []

        for name in ("momentum_period", "momentum_lookback"):
            value = getattr(params, name)
            if not _positive_int(value):
                errors.append(ValidationError(
                    field=f"strategy.{name}",
                    message="Must be a positive integer",
                    value=value
                ))

        if (_positive_int(params.momentum_period) and _positive_int(params.momentum_lookback)
                and params.momentum_lookback <= params.momentum_period):
            errors.append(ValidationError(
                field="strategy.momentum_lookback",
                message="Must exceed momentum_period",
                value=params.momentum_lookback
            ))

        for name in ("entry_threshold", "aggressive_entry_threshold", "exit_threshold"):
            value = getattr(params, name)
            if not isinstance(value, (int, float)) or not 0 <= value <= 100:
                errors.append(ValidationError(
                    field=f"strategy.{name}",
                    message="Must be a number between 0 and 100",
                    value=value
                ))

        if not errors and not (params.aggressive_entry_threshold <= params.entry_threshold
                               < params.exit_threshold):
            errors.append(ValidationError(
                field="strategy",
                message="Thresholds must satisfy aggressive_entry <= entry < exit",
                value=(params.aggressive_entry_threshold, params.entry_threshold,
                       params.exit_threshold)
            ))

        return errors

    @staticmethod
    def validate_band_params(params) -> list[ValidationError]:
        """Validate band parameters."""
        errors = []

        if not _positive_int(params.period) or params.period < 2:
            errors.append(ValidationError(
                field="bands.period",
                message="Must be an integer of at least 2",
                value=params.period
            ))

        if not _positive_number(params.multiplier):
            errors.append(ValidationError(
                field="bands.multiplier",
                message="Must be a positive number",
                value=params.multiplier
            ))

        return errors

    @staticmethod
    def validate_risk_params(params) -> list[ValidationError]:
        """Validate sizing and trailing-stop parameters."""
        errors = []

        if not _positive_number(params.capital_per_position):
            errors.append(ValidationError(
                field="risk.capital_per_position",
                message="Must be a positive number",
                value=params.capital_per_position
            ))

        if not _positive_number(params.trailing_stop_pct) or params.trailing_stop_pct >= 1:
            errors.append(ValidationError(
                field="risk.trailing_stop_pct",
                message="Must be a positive fraction below 1",
                value=params.trailing_stop_pct
            ))

        return errors

    @staticmethod
    def validate_execution_params(params) -> list[ValidationError]:
        """Validate venue settings and credentials."""
        errors = []

        if params.venue != "coindcx":
            errors.append(ValidationError(
                field="execution.venue",
                message="Unsupported venue",
                value=params.venue
            ))

        if not params.simulation:
            for name in ("api_key", "api_secret"):
                if not getattr(params, name):
                    errors.append(ValidationError(
                        field=f"execution.{name}",
                        message="Credentials are required when simulation is off",
                        value=None
                    ))

        if not _positive_number(params.request_timeout_seconds):
            errors.append(ValidationError(
                field="execution.request_timeout_seconds",
                message="Must be a positive number",
                value=params.request_timeout_seconds
            ))

        if not isinstance(params.feed_max_retries, int) or params.feed_max_retries < 0:
            errors.append(ValidationError(
                field="execution.feed_max_retries",
                message="Must be a non-negative integer",
                value=params.feed_max_retries
            ))

        if (not isinstance(params.feed_retry_delay_seconds, (int, float))
                or params.feed_retry_delay_seconds < 0):
            errors.append(ValidationError(
                field="execution.feed_retry_delay_seconds",
                message="Must be a non-negative number",
                value=params.feed_retry_delay_seconds
            ))

        if params.paper_quote_balance < 0 or params.paper_base_balance < 0:
            errors.append(ValidationError(
                field="execution.paper_balance",
                message="Paper balances cannot be negative",
                value=(params.paper_quote_balance, params.paper_base_balance)
            ))

        return errors

    @staticmethod
    def validate_persistence_params(params) -> list[ValidationError]:
        """Validate trade log settings."""
        errors = []

        if not params.db_path:
            errors.append(ValidationError(
                field="persistence.db_path",
                message="Must be a file path",
                value=params.db_path
            ))

        if not _positive_int(params.retention_minutes):
            errors.append(ValidationError(
                field="persistence.retention_minutes",
                message="Must be a positive integer",
                value=params.retention_minutes
            ))

        if not _positive_number(params.prune_interval_seconds):
            errors.append(ValidationError(
                field="persistence.prune_interval_seconds",
                message="Must be a positive number",
                value=params.prune_interval_seconds
            ))

        if not _positive_int(params.writer_queue_size):
            errors.append(ValidationError(
                field="persistence.writer_queue_size",
                message="Must be a positive integer",
                value=params.writer_queue_size
            ))

        return errors

    @staticmethod
    def validate_runtime_params(params) -> list[ValidationError]:
        """Validate loop cadence and logging settings."""
        errors = []

        for name in ("poll_seconds", "balance_refresh_seconds"):
            value = getattr(params, name)
            if not _positive_number(value):
                errors.append(ValidationError(
                    field=f"runtime.{name}",
                    message="Must be a positive number",
                    value=value
                ))

        for name in ("history_bars", "event_log_size"):
            value = getattr(params, name)
            if not _positive_int(value):
                errors.append(ValidationError(
                    field=f"runtime.{name}",
                    message="Must be a positive integer",
                    value=value
                ))

        if str(params.log_level).upper() not in _LOG_LEVELS:
            errors.append(ValidationError(
                field="runtime.log_level",
                message=f"Must be one of {', '.join(_LOG_LEVELS)}",
                value=params.log_level
            ))

        return errors

    @staticmethod
    def validate_config(config) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []
        errors.extend(ConfigValidator.validate_market(config))
        errors.extend(ConfigValidator.validate_strategy_params(config.strategy))
        errors.extend(ConfigValidator.validate_band_params(config.bands))
        errors.extend(ConfigValidator.validate_risk_params(config.risk))
        errors.extend(ConfigValidator.validate_execution_params(config.execution))
        errors.extend(ConfigValidator.validate_persistence_params(config.persistence))
        errors.extend(ConfigValidator.validate_runtime_params(config.runtime))
        return errors
