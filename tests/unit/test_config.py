"""Tests for configuration loading and validation."""

import pytest
import yaml

from scalper_app.config.defaults import EngineConfig, RiskParams, StrategyParams
from scalper_app.config.loader import ConfigLoader, load_config
from scalper_app.config.validation import ConfigValidator
from scalper_app.errors import ConfigurationError


@pytest.fixture
def config_file(tmp_path):
    def _write(data):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(data))
        return str(path)
    return _write


class TestDefaults:

    def test_default_values(self):
        config = EngineConfig()
        assert config.instrument == "B-BTC_USDT"
        assert config.interval_ms == 60_000
        assert config.strategy.momentum_period == 14
        assert config.strategy.momentum_lookback == 50
        assert config.bands.period == 20
        assert config.bands.multiplier == 2.0
        assert config.risk.trailing_stop_pct == 0.005
        assert config.retention_ms == 3_600_000
        assert config.execution.simulation is True

    def test_bar_capacity_covers_retention_and_indicators(self):
        assert EngineConfig().bar_capacity == 60
        short = EngineConfig(bar_interval="5m")
        assert short.bar_capacity == 50

    def test_defaults_validate(self):
        assert ConfigValidator.validate_config(EngineConfig()) == []


class TestLoader:

    def test_no_sources_gives_defaults(self):
        assert load_config(environ={}) == EngineConfig()

    def test_yaml_overrides_defaults(self, config_file):
        path = config_file({
            "instrument": "B-ETH_USDT",
            "strategy": {"entry_threshold": 25},
            "risk": {"trailing_stop_pct": 0.01},
        })
        config = load_config(path, environ={})
        assert config.instrument == "B-ETH_USDT"
        assert config.strategy.entry_threshold == 25.0
        assert isinstance(config.strategy.entry_threshold, float)
        assert config.risk.trailing_stop_pct == 0.01
        assert config.bands.period == 20

    def test_env_overrides_yaml(self, config_file):
        path = config_file({"persistence": {"db_path": "from_file.db"}})
        environ = {
            "SCALPER_DB_PATH": "from_env.db",
            "SCALPER_POLL_SECONDS": "2.5",
            "SCALPER_SIMULATION": "false",
            "COINDCX_API_KEY": "k",
            "COINDCX_SECRET_KEY": "s",
        }
        config = load_config(path, environ=environ)
        assert config.persistence.db_path == "from_env.db"
        assert config.runtime.poll_seconds == 2.5
        assert config.execution.simulation is False
        assert config.execution.api_key == "k"

    def test_cli_overrides_everything(self, config_file):
        path = config_file({"instrument": "B-ETH_USDT"})
        config = load_config(path, {"instrument": "B-SOL_USDT"},
                             environ={"SCALPER_INSTRUMENT": "B-XRP_USDT"})
        assert config.instrument == "B-SOL_USDT"

    def test_empty_env_values_ignored(self):
        config = load_config(environ={"SCALPER_INSTRUMENT": ""})
        assert config.instrument == "B-BTC_USDT"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(str(tmp_path / "missing.yaml"), environ={})

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("strategy: [unclosed")
        with pytest.raises(ConfigurationError, match="YAML"):
            load_config(str(path), environ={})

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_config(str(path), environ={})

    def test_unknown_keys_rejected(self, config_file):
        with pytest.raises(ConfigurationError, match="strategy.rsi_period"):
            load_config(config_file({"strategy": {"rsi_period": 14}}), environ={})
        with pytest.raises(ConfigurationError, match="dashboard"):
            load_config(config_file({"dashboard": True}), environ={})

    def test_uncastable_value(self):
        with pytest.raises(ConfigurationError, match="runtime.poll_seconds"):
            load_config(environ={"SCALPER_POLL_SECONDS": "soon"})

    def test_merge_precedence_dict(self, config_file):
        loader = ConfigLoader.create(config_file({"bands": {"period": 30}}), environ={})
        merged = loader.merge_config({"bands": {"multiplier": 2.5}})
        assert merged["bands"] == {"period": 30, "multiplier": 2.5}


class TestValidation:

    def test_live_mode_requires_credentials(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(cli_overrides={"execution": {"simulation": False}}, environ={})
        fields = {error.field for error in exc_info.value.errors}
        assert {"execution.api_key", "execution.api_secret"} <= fields

    def test_threshold_ordering(self):
        params = StrategyParams(entry_threshold=15.0, aggressive_entry_threshold=20.0)
        errors = ConfigValidator.validate_strategy_params(params)
        assert [e.field for e in errors] == ["strategy"]

    def test_threshold_range(self):
        errors = ConfigValidator.validate_strategy_params(StrategyParams(exit_threshold=120.0))
        assert errors[0].field == "strategy.exit_threshold"

    def test_lookback_must_exceed_period(self):
        errors = ConfigValidator.validate_strategy_params(
            StrategyParams(momentum_period=14, momentum_lookback=14)
        )
        assert errors[0].field == "strategy.momentum_lookback"

    def test_trailing_stop_fraction(self):
        errors = ConfigValidator.validate_risk_params(RiskParams(trailing_stop_pct=1.5))
        assert errors[0].field == "risk.trailing_stop_pct"

    def test_bad_interval_and_instrument(self):
        config = EngineConfig(instrument="BTC USDT", bar_interval="1x")
        fields = {error.field for error in ConfigValidator.validate_market(config)}
        assert fields == {"instrument", "bar_interval"}

    def test_error_summary_mentions_every_field(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(cli_overrides={"bands": {"period": 1},
                                       "persistence": {"retention_minutes": 0}},
                        environ={})
        message = str(exc_info.value)
        assert "bands.period" in message
        assert "persistence.retention_minutes" in message
