"""pluginhost — plugin discovery, trust checks and JSON-over-stdio execution.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Quick-start
-----------
>>> import pluginhost
>>> pluginhost.__version__
'0.5.0'

>>> from pluginhost import PluginLoader, HostContext
>>> loader = PluginLoader(HostContext())
>>> loader.load_from_directory("plugins")
[]
"""
from __future__ import annotations

__version__: str = "0.5.0"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------
from pluginhost.schema.config import HostConfig
from pluginhost.schema.errors import (
    ConfigurationError,
    ErrorSeverity,
    ExternalPluginRequiredError,
    IncompatibleVersionError,
    InvalidVersionError,
    ManifestValidationError,
    PluginExecutionError,
    PluginHostError,
    PluginIOError,
    PluginNotFoundError,
    PluginResponseError,
    PluginTimeoutError,
    PluginUnavailableError,
    PluginValidationError,
    ProtocolError,
    SecurityValidationError,
)
from pluginhost.schema.ipc import (
    DetectResult,
    EmitNativeResult,
    EngineSpecResult,
    EnumerateResult,
    ExtractIRResult,
    IngestResult,
    IPCRequest,
    IPCResponse,
)
from pluginhost.schema.manifest import Capabilities, IRCapabilities, PluginManifest

# ---------------------------------------------------------------------------
# Plugins (must precede pluginhost.context)
# ---------------------------------------------------------------------------
from pluginhost.plugins import (
    HOST_VERSION,
    EmbeddedPlugin,
    EmbeddedRegistry,
    FormatHandler,
    Plugin,
    PluginExecutor,
    PluginLoader,
    SecurityConfig,
    ToolHandler,
    Version,
    discover_plugins,
    execute_plugin,
    parse_version,
    register_embedded_plugin,
)

# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------
from pluginhost.context import (
    HostContext,
    disable_external_plugins,
    enable_external_plugins,
    external_plugins_enabled,
    get_default_context,
    get_security_config,
    set_security_config,
)

# ---------------------------------------------------------------------------
# Config and convenience
# ---------------------------------------------------------------------------
from pluginhost.config.loader import ConfigLoader
from pluginhost.convenience import PluginHost

__all__ = [
    "__version__",
    # Convenience
    "PluginHost",
    # Schema
    "HostConfig",
    "PluginManifest",
    "Capabilities",
    "IRCapabilities",
    "IPCRequest",
    "IPCResponse",
    "DetectResult",
    "IngestResult",
    "EnumerateResult",
    "EngineSpecResult",
    "ExtractIRResult",
    "EmitNativeResult",
    # Errors
    "ErrorSeverity",
    "PluginHostError",
    "ConfigurationError",
    "PluginNotFoundError",
    "PluginValidationError",
    "ManifestValidationError",
    "InvalidVersionError",
    "SecurityValidationError",
    "IncompatibleVersionError",
    "PluginIOError",
    "PluginExecutionError",
    "ProtocolError",
    "PluginResponseError",
    "PluginTimeoutError",
    "PluginUnavailableError",
    "ExternalPluginRequiredError",
    # Plugins
    "HOST_VERSION",
    "Version",
    "parse_version",
    "Plugin",
    "discover_plugins",
    "FormatHandler",
    "ToolHandler",
    "EmbeddedPlugin",
    "EmbeddedRegistry",
    "register_embedded_plugin",
    "SecurityConfig",
    "PluginLoader",
    "PluginExecutor",
    "execute_plugin",
    # Context
    "HostContext",
    "get_default_context",
    "enable_external_plugins",
    "disable_external_plugins",
    "external_plugins_enabled",
    "set_security_config",
    "get_security_config",
    # Config
    "ConfigLoader",
]
