"""Configuration loader with 3-tier parameter precedence."""

import os
from dataclasses import dataclass, fields, is_dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..errors import ConfigurationError
from .defaults import (
    BandParams,
    EngineConfig,
    ExecutionParams,
    PersistenceParams,
    RiskParams,
    RuntimeParams,
    StrategyParams,
    get_default_config,
)
from .validation import ConfigValidator

# Environment variable -> (section, key). Sections of None are top-level keys.
ENV_OVERRIDES = {
    "SCALPER_INSTRUMENT": (None, "instrument"),
    "SCALPER_BAR_INTERVAL": (None, "bar_interval"),
    "SCALPER_SIMULATION": ("execution", "simulation"),
    "SCALPER_DB_PATH": ("persistence", "db_path"),
    "SCALPER_POLL_SECONDS": ("runtime", "poll_seconds"),
    "SCALPER_LOG_LEVEL": ("runtime", "log_level"),
    "SCALPER_CAPITAL": ("risk", "capital_per_position"),
    "COINDCX_API_KEY": ("execution", "api_key"),
    "COINDCX_SECRET_KEY": ("execution", "api_secret"),
}

_SECTIONS = {
    "strategy": StrategyParams,
    "bands": BandParams,
    "risk": RiskParams,
    "execution": ExecutionParams,
    "persistence": PersistenceParams,
    "runtime": RuntimeParams,
}


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_path: Optional[Path]
    defaults: EngineConfig
    environ: Mapping[str, str]

    @classmethod
    def create(
        cls,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        return cls(
            config_path=Path(config_path) if config_path else None,
            defaults=get_default_config(),
            environ=os.environ if environ is None else environ,
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load overrides from the YAML config file, if one was given."""
        if self.config_path is None:
            return {}

        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path) as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Config file is not valid YAML: {e}") from e

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ConfigurationError("Config file must contain a mapping at the top level")
        return loaded

    def load_env_config(self) -> dict[str, Any]:
        """Collect overrides from environment variables."""
        overrides: dict[str, Any] = {}
        for var, (section, key) in ENV_OVERRIDES.items():
            value = self.environ.get(var)
            if value is None or value == "":
                continue
            if section is None:
                overrides[key] = value
            else:
                overrides.setdefault(section, {})[key] = value
        return overrides

    def merge_config(self, cli_overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Environment variables and explicit CLI overrides (highest priority)
        2. YAML config file
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_file_config())
        config = self._deep_merge(config, self.load_env_config())

        if cli_overrides:
            config = self._deep_merge(config, cli_overrides)

        return config

    def load(self, cli_overrides: Optional[dict[str, Any]] = None) -> EngineConfig:
        """
        Build and validate the run configuration.

        Raises:
            ConfigurationError: On unknown keys, uncastable values or failed validation
        """
        merged = self.merge_config(cli_overrides)
        config = self._build(merged)

        errors = ConfigValidator.validate_config(config)
        if errors:
            summary = "; ".join(f"{err.field}: {err.message} (got: {err.value!r})" for err in errors)
            raise ConfigurationError(f"Invalid configuration: {summary}", errors=errors)

        return config

    def _build(self, merged: dict[str, Any]) -> EngineConfig:
        top_level: dict[str, Any] = {}
        for key, value in merged.items():
            if key in _SECTIONS:
                if not isinstance(value, dict):
                    raise ConfigurationError(f"Section '{key}' must be a mapping")
                top_level[key] = self._build_section(_SECTIONS[key], key, value)
            elif key in ("instrument", "bar_interval"):
                top_level[key] = str(value)
            else:
                raise ConfigurationError(f"Unknown configuration key: {key}")

        return EngineConfig(**top_level)

    def _build_section(self, section_cls: type, name: str, values: dict[str, Any]) -> Any:
        known = {f.name: f for f in fields(section_cls)}
        kwargs = {}
        for key, value in values.items():
            if key not in known:
                raise ConfigurationError(f"Unknown configuration key: {name}.{key}")
            default = getattr(section_cls(), key)
            kwargs[key] = self._cast(value, default, f"{name}.{key}")
        return section_cls(**kwargs)

    @staticmethod
    def _cast(value: Any, default: Any, field_name: str) -> Any:
        """Cast string values (env, YAML quirks) to the type of the default."""
        if value is None:
            return None
        try:
            if isinstance(default, bool):
                if isinstance(value, bool):
                    return value
                return str(value).strip().lower() in ("1", "true", "yes", "y", "on")
            if isinstance(default, int):
                if isinstance(value, float) and not value.is_integer():
                    raise ValueError("expected an integer")
                return int(value)
            if isinstance(default, float):
                return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid value for {field_name}: {value!r} ({e})") from e
        return value

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if is_dataclass(obj):
            return {
                f.name: self._dataclass_to_dict(getattr(obj, f.name))
                for f in fields(obj)
            }
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def load_config(
    config_path: Optional[str] = None,
    cli_overrides: Optional[dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None
) -> EngineConfig:
    """Load, merge and validate configuration in one call."""
    return ConfigLoader.create(config_path, environ).load(cli_overrides)
