"""Error taxonomy for pluginhost.

All exceptions raised by the plugin host derive from ``PluginHostError`` so
that callers can catch the entire family with a single
``except PluginHostError`` clause while still being able to distinguish
individual failure modes.

Shipped in this module
----------------------
- ErrorSeverity               — ordered severity enum
- PluginHostError             — root exception with severity and context payload
- PluginNotFoundError         — unknown plugin id or missing manifest
- PluginValidationError       — base for structural / trust failures
- ManifestValidationError     — missing or malformed manifest field
- InvalidVersionError         — unparsable semantic version
- SecurityValidationError     — path traversal, allow-list or manifest trust
- IncompatibleVersionError    — host/plugin semver mismatch
- PluginIOError               — read, stat and spawn failures
- PluginExecutionError        — external plugin exited non-zero
- ProtocolError               — malformed wire JSON or wrong result shape
- PluginResponseError         — plugin answered with an error status
- PluginTimeoutError          — external plugin exceeded its deadline
- PluginUnavailableError      — no embedded handler and no external binary
- ExternalPluginRequiredError — raised by embedded handlers to defer
"""
from __future__ import annotations

from enum import Enum


class ErrorSeverity(str, Enum):
    """Ordered severity levels for ``PluginHostError`` instances.

    Severity is purely advisory metadata — it does not change the
    exception-handling semantics, but it lets logging and alerting
    infrastructure filter by impact level.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class PluginHostError(Exception):
    """Root exception for all plugin host failures.

    Parameters
    ----------
    message:
        Human-readable description of what went wrong.
    severity:
        Advisory ``ErrorSeverity`` level.  Defaults to ``HIGH``.
    context:
        Optional dict of structured metadata (plugin IDs, paths, etc.)
        that helps diagnostics without requiring log scraping.

    Examples
    --------
    >>> try:
    ...     raise PluginHostError("something broke", ErrorSeverity.MEDIUM)
    ... except PluginHostError as exc:
    ...     print(exc.severity)
    ErrorSeverity.MEDIUM
    """

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        context: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.severity: ErrorSeverity = severity
        self.context: dict[str, object] = context or {}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"message={str(self)!r}, "
            f"severity={self.severity.value!r})"
        )


class ConfigurationError(PluginHostError):
    """Raised when configuration loading or validation fails.

    Examples: bad YAML, negative timeout, unknown boolean literal.
    """


class PluginNotFoundError(PluginHostError):
    """Raised when a plugin id or a manifest file cannot be found.

    Parameters
    ----------
    plugin_id:
        The identifier (or directory, for missing manifests) that was
        looked up.
    message:
        Optional override for the default message.
    """

    def __init__(
        self,
        plugin_id: str,
        message: str | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        self.plugin_id = plugin_id
        merged: dict[str, object] = {"plugin_id": plugin_id}
        merged.update(context or {})
        super().__init__(
            message or f"plugin not found: {plugin_id}",
            severity=ErrorSeverity.MEDIUM,
            context=merged,
        )


class PluginValidationError(PluginHostError):
    """Base class for structural and trust validation failures."""


class ManifestValidationError(PluginValidationError):
    """Raised when a manifest is malformed or misses a required field.

    Parameters
    ----------
    field:
        Name of the offending manifest field, or ``""`` when the whole
        document is unreadable.
    message:
        Human-readable reason.
    """

    def __init__(
        self,
        field: str,
        message: str,
        context: dict[str, object] | None = None,
    ) -> None:
        self.field = field
        merged: dict[str, object] = {"field": field}
        merged.update(context or {})
        text = f"{field}: {message}" if field else message
        super().__init__(text, context=merged)


class InvalidVersionError(PluginValidationError):
    """Raised when a semantic version string cannot be parsed."""


class SecurityValidationError(PluginValidationError):
    """Raised when a plugin path or manifest fails a trust check.

    Security failures are never downgraded to warnings.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message, severity=ErrorSeverity.CRITICAL, context=context)


class IncompatibleVersionError(PluginHostError):
    """Raised when a plugin's ``min_host_version`` is not satisfied."""


class PluginIOError(PluginHostError):
    """Raised for read, stat and process-spawn failures."""


class PluginExecutionError(PluginHostError):
    """Raised when an external plugin exits with a non-zero status.

    Attributes
    ----------
    returncode:
        Process exit status.
    stderr:
        Captured standard error text.
    """

    def __init__(
        self,
        message: str,
        returncode: int,
        stderr: str,
        context: dict[str, object] | None = None,
    ) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message, context=context)


class ProtocolError(PluginHostError):
    """Raised for malformed request/response JSON or a wrong result shape."""


class PluginResponseError(PluginHostError):
    """Raised when a typed result is requested from an ``error`` response."""


class PluginTimeoutError(PluginHostError):
    """Raised when an external plugin does not answer within its deadline.

    Attributes
    ----------
    timeout:
        The configured deadline in seconds.
    """

    def __init__(
        self,
        message: str,
        timeout: float,
        context: dict[str, object] | None = None,
    ) -> None:
        self.timeout = timeout
        super().__init__(message, context=context)


class PluginUnavailableError(PluginHostError):
    """Raised when neither an embedded handler nor an external binary exists."""


class ExternalPluginRequiredError(PluginHostError):
    """Raised by an embedded handler to hand the request to the external binary.

    The executor treats the resulting ``error`` response as a request to
    fall back to the plugin's entrypoint when one is installed.
    """

    def __init__(self, message: str = "requires external plugin") -> None:
        super().__init__(message, severity=ErrorSeverity.INFO)
