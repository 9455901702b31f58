"""
Configuration module.

Frozen default parameters, YAML/environment loading with precedence, and
validation that rejects a bad run configuration before the loop starts.
"""

from .defaults import EngineConfig, get_default_config
from .loader import ConfigLoader, load_config
from .validation import ConfigValidator, ValidationError

__all__ = [
    "EngineConfig",
    "get_default_config",
    "ConfigLoader",
    "load_config",
    "ConfigValidator",
    "ValidationError",
]
