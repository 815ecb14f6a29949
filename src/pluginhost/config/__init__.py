"""Config package for pluginhost.

Provides configuration loading, validation, and sensible defaults.
"""
from __future__ import annotations

from pluginhost.config.defaults import DEFAULT_CONFIG
from pluginhost.config.loader import ConfigLoader
from pluginhost.config.schema import HostConfig, validate_config

__all__ = [
    "HostConfig",
    "validate_config",
    "ConfigLoader",
    "DEFAULT_CONFIG",
]
