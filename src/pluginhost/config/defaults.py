"""Default configuration constants for pluginhost.

``DEFAULT_CONFIG`` is the baseline ``HostConfig``: embedded plugins only,
no plugin directories, no allow-list and a 60 second execution deadline.
It is the starting point used by ``ConfigLoader.load_auto()`` before
applying file or environment overrides.
"""
from __future__ import annotations

from pluginhost.schema.config import HostConfig

DEFAULT_CONFIG: HostConfig = HostConfig(
    external_plugins_enabled=False,
    plugin_dirs=[],
    default_timeout=60.0,
    allowed_plugin_dirs=[],
    require_manifest=True,
    restrict_to_known_kinds=False,
    verify_entrypoints=False,
    extra_kinds=[],
    log_level="WARNING",
)
"""Baseline ``HostConfig`` used when no file or env config is present."""
