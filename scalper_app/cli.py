"""Command line entry point: run the engine, inspect trades, check config."""

import argparse
import json
import signal
import sys
from typing import Any, Optional

import structlog

from .config.loader import load_config
from .errors import ConfigurationError, PersistenceError
from .logging.config import configure_logging
from .persistence.trade_log import TradeLog
from .utils.time import format_ms

logger = structlog.get_logger(__name__)


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if getattr(args, "db", None):
        overrides.setdefault("persistence", {})["db_path"] = args.db
    if getattr(args, "instrument", None):
        overrides["instrument"] = args.instrument
    if getattr(args, "live", False):
        overrides.setdefault("execution", {})["simulation"] = False
    if getattr(args, "log_level", None):
        overrides.setdefault("runtime", {})["log_level"] = args.log_level
    if getattr(args, "log_json", False):
        overrides.setdefault("runtime", {})["log_json"] = True
    return overrides


def cmd_run(args: argparse.Namespace) -> int:
    from .engine import ScalperEngine

    config = load_config(args.config, _overrides(args))
    configure_logging(config.runtime.log_level, format_json=config.runtime.log_json)

    engine = ScalperEngine.from_config(config)

    def _handle_signal(signum, frame):
        logger.info("Stop requested", signal=signum)
        engine.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    logger.info(
        "Starting scalper",
        instrument=config.instrument,
        interval=config.bar_interval,
        simulation=config.execution.simulation,
        db_path=config.persistence.db_path
    )
    engine.run(max_cycles=args.max_cycles)
    return 0


def cmd_trades(args: argparse.Namespace) -> int:
    config = load_config(args.config, _overrides(args))
    trade_log = TradeLog(config.persistence.db_path)
    trades = trade_log.recent_trades(args.limit)

    if args.json:
        print(json.dumps([t.to_dict() for t in trades], indent=2))
        return 0

    if not trades:
        print("No trades in the retention window.")
        return 0

    print(f"{'exit time':<26} {'reason':<14} {'entry':>12} {'exit':>12} {'pnl':>10}")
    for trade in trades:
        print(
            f"{format_ms(trade.exit_timestamp):<26} {trade.exit_reason:<14} "
            f"{trade.entry_price:>12.2f} {trade.exit_price:>12.2f} {trade.realized_pnl:>+10.2f}"
        )
    stats = trade_log.stats()
    print(f"\n{stats['trade_count']} trades, retained P&L {stats['retained_pnl']:+.2f}")
    return 0


def cmd_validate_config(args: argparse.Namespace) -> int:
    config = load_config(args.config, _overrides(args))
    print(f"Configuration OK: {config.instrument} {config.bar_interval}, "
          f"{'simulation' if config.execution.simulation else 'live'} mode")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scalper", description="Mean-reversion scalping engine")
    parser.add_argument("-c", "--config", help="YAML configuration file")
    parser.add_argument("--db", help="Trade log database path")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the decision loop")
    run.add_argument("--instrument", help="Venue pair, e.g. B-BTC_USDT")
    run.add_argument("--live", action="store_true", help="Send real orders")
    run.add_argument("--max-cycles", type=int, default=None, help="Stop after N cycles")
    run.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    run.add_argument("--log-json", action="store_true", help="JSON log output")
    run.set_defaults(func=cmd_run)

    trades = sub.add_parser("trades", help="Show recent trades from the log")
    trades.add_argument("--limit", type=int, default=20)
    trades.add_argument("--json", action="store_true")
    trades.set_defaults(func=cmd_trades)

    validate = sub.add_parser("validate-config", help="Load and validate configuration")
    validate.set_defaults(func=cmd_validate_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        for error in e.errors:
            print(f"  - {error.field}: {error.message} (got: {error.value!r})", file=sys.stderr)
        return 2
    except PersistenceError as e:
        print(f"Trade log error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
