"""Schema package for pluginhost.

Exports the complete public schema surface: manifests, wire payloads,
errors, and the validated host configuration model.
"""
from __future__ import annotations

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
    EnumerateEntry,
    EnumerateResult,
    ExtractIRResult,
    IngestResult,
    IPCRequest,
    IPCResponse,
    LossReport,
    LostElement,
)
from pluginhost.schema.manifest import Capabilities, IRCapabilities, PluginManifest

__all__ = [
    # Manifest
    "PluginManifest",
    "Capabilities",
    "IRCapabilities",
    # Wire protocol
    "IPCRequest",
    "IPCResponse",
    "DetectResult",
    "IngestResult",
    "EnumerateEntry",
    "EnumerateResult",
    "EngineSpecResult",
    "ExtractIRResult",
    "EmitNativeResult",
    "LossReport",
    "LostElement",
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
    # Config
    "HostConfig",
]
