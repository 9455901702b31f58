"""Default configuration parameters for the scalping engine."""

from dataclasses import dataclass, field
from typing import Optional

from ..utils.time import parse_interval


@dataclass(frozen=True)
class StrategyParams:
    """Momentum thresholds driving entries and exits."""
    momentum_period: int = 14               # Wilder smoothing period
    momentum_lookback: int = 50             # Bars fed to the oscillator
    entry_threshold: float = 30.0           # Buy below this when under the lower band
    aggressive_entry_threshold: float = 20.0  # Buy below this regardless of bands
    exit_threshold: float = 70.0            # Take profit above this


@dataclass(frozen=True)
class BandParams:
    """Volatility band parameters."""
    period: int = 20
    multiplier: float = 2.0


@dataclass(frozen=True)
class RiskParams:
    """Position sizing and trailing-stop parameters."""
    capital_per_position: float = 10000.0   # Quote currency committed per entry
    trailing_stop_pct: float = 0.005        # 0.5% below the peak since entry
    flatten_on_shutdown: bool = False       # Close an open position on exit


@dataclass(frozen=True)
class ExecutionParams:
    """Venue and order routing parameters."""
    venue: str = "coindcx"
    simulation: bool = True
    market_code: Optional[str] = None       # Order-side symbol, derived if unset
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    request_timeout_seconds: float = 10.0
    feed_max_retries: int = 2
    feed_retry_delay_seconds: float = 0.5
    paper_quote_balance: float = 10500.0
    paper_base_balance: float = 0.05


@dataclass(frozen=True)
class PersistenceParams:
    """Trade log and retention parameters."""
    db_path: str = "scalper.db"
    retention_minutes: int = 60
    prune_interval_seconds: float = 300.0
    writer_queue_size: int = 1000
    writer_drain_timeout_seconds: float = 2.0


@dataclass(frozen=True)
class RuntimeParams:
    """Decision loop cadence and housekeeping intervals."""
    poll_seconds: float = 5.0
    history_bars: int = 50                  # Bars requested from the venue at startup
    balance_refresh_seconds: float = 60.0
    event_log_size: int = 30
    log_level: str = "INFO"
    log_json: bool = False


@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration, fixed for the lifetime of a run."""
    instrument: str = "B-BTC_USDT"
    bar_interval: str = "1m"
    strategy: StrategyParams = field(default_factory=StrategyParams)
    bands: BandParams = field(default_factory=BandParams)
    risk: RiskParams = field(default_factory=RiskParams)
    execution: ExecutionParams = field(default_factory=ExecutionParams)
    persistence: PersistenceParams = field(default_factory=PersistenceParams)
    runtime: RuntimeParams = field(default_factory=RuntimeParams)

    @property
    def interval_ms(self) -> int:
        return parse_interval(self.bar_interval)

    @property
    def retention_ms(self) -> int:
        return self.persistence.retention_minutes * 60_000

    @property
    def bar_capacity(self) -> int:
        """Closed bars kept in memory: enough for the retention horizon and every indicator window."""
        horizon_bars = max(self.retention_ms // self.interval_ms, 1)
        return max(horizon_bars, self.bands.period, self.strategy.momentum_lookback)


def get_default_config() -> EngineConfig:
    """Get the default configuration instance."""
    return EngineConfig()
