"""Tests for the scalper command line."""

import json

import pytest

from conftest import BASE_TS, MINUTE_MS
from scalper_app.cli import _overrides, build_parser, main
from scalper_app.persistence.trade_log import TradeLog
from scalper_app.state.models import TradeRecord


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("SCALPER_DB_PATH", "SCALPER_INSTRUMENT", "SCALPER_SIMULATION",
                "COINDCX_API_KEY", "COINDCX_SECRET_KEY"):
        monkeypatch.delenv(var, raising=False)


class TestParser:

    def test_run_overrides(self):
        args = build_parser().parse_args(
            ["--db", "x.db", "run", "--instrument", "B-ETH_USDT", "--live", "--log-json"]
        )
        assert _overrides(args) == {
            "persistence": {"db_path": "x.db"},
            "instrument": "B-ETH_USDT",
            "execution": {"simulation": False},
            "runtime": {"log_json": True},
        }

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:

    def test_validate_config_ok(self, capsys):
        assert main(["validate-config"]) == 0
        assert "Configuration OK" in capsys.readouterr().out

    def test_validate_config_error_exit_code(self, tmp_path, capsys):
        path = tmp_path / "config.yaml"
        path.write_text("risk:\n  trailing_stop_pct: 2\n")
        assert main(["-c", str(path), "validate-config"]) == 2
        assert "risk.trailing_stop_pct" in capsys.readouterr().err

    def test_trades_empty(self, temp_db_path, capsys):
        assert main(["--db", temp_db_path, "trades"]) == 0
        assert "No trades" in capsys.readouterr().out

    def test_trades_json(self, temp_db_path, capsys):
        trade = TradeRecord(
            id="sell-1", side="LONG", entry_timestamp=BASE_TS,
            exit_timestamp=BASE_TS + MINUTE_MS, entry_price=99.0, exit_price=102.0,
            exit_reason="take_profit", realized_pnl=303.03, quantity=101.0
        )
        TradeLog(temp_db_path).append([trade])

        assert main(["--db", temp_db_path, "trades", "--json"]) == 0
        rows = json.loads(capsys.readouterr().out)
        assert rows == [trade.to_dict()]

    def test_trades_table(self, temp_db_path, capsys):
        trade = TradeRecord(
            id="sell-1", side="LONG", entry_timestamp=BASE_TS,
            exit_timestamp=BASE_TS + MINUTE_MS, entry_price=99.0, exit_price=102.0,
            exit_reason="trailing_stop", realized_pnl=-5.0, quantity=1.0
        )
        TradeLog(temp_db_path).append([trade])

        assert main(["--db", temp_db_path, "trades"]) == 0
        out = capsys.readouterr().out
        assert "trailing_stop" in out
        assert "1 trades" in out

    def test_memory_db_is_persistence_error(self, capsys):
        assert main(["--db", ":memory:", "trades"]) == 1
        assert "Trade log error" in capsys.readouterr().err
