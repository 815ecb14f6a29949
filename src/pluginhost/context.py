"""Host context for pluginhost.

A :class:`HostContext` bundles the three pieces of shared, mutable host
state: the embedded plugin registry, the security configuration, and the
flag that enables filesystem (external) plugins.  Loaders and executors take
a context explicitly; when none is given they use the process-wide default
context, which the module-level functions below operate on.

Lifecycle: configure once during host initialisation (``from_config`` or
the setters), then share.  Tests may call :func:`reset_default_context`.

Shipped in this module
----------------------
- HostContext               — lock-protected holder of host state
- get_default_context       — the process-wide context
- enable_external_plugins / disable_external_plugins / external_plugins_enabled
- set_security_config / get_security_config
- reset_default_context     — test helper
"""
from __future__ import annotations

import logging
import threading

from pluginhost.plugins.discovery import register_plugin_kind
from pluginhost.plugins.embedded import EmbeddedRegistry, default_registry
from pluginhost.plugins.security import SecurityConfig
from pluginhost.plugins.version import HOST_VERSION
from pluginhost.schema.config import HostConfig

logger = logging.getLogger(__name__)


class HostContext:
    """Shared state consulted by the loader, executor and security checks.

    Parameters
    ----------
    embedded:
        Embedded plugin registry.  Defaults to the process-wide registry.
    security:
        Trust configuration.  Defaults to ``SecurityConfig()``.
    external_plugins_enabled:
        Whether filesystem plugins are loaded and preferred.
    host_version:
        Version used for ``min_host_version`` gating.
    default_timeout:
        Deadline in seconds for external execution.
    verify_entrypoints:
        Whether the executor validates entrypoints before spawning.
    """

    def __init__(
        self,
        embedded: EmbeddedRegistry | None = None,
        security: SecurityConfig | None = None,
        external_plugins_enabled: bool = False,
        host_version: str = HOST_VERSION,
        default_timeout: float = 60.0,
        verify_entrypoints: bool = False,
    ) -> None:
        self._lock = threading.Lock()
        self.embedded: EmbeddedRegistry = embedded if embedded is not None else default_registry()
        self._security: SecurityConfig = security if security is not None else SecurityConfig()
        self._external_enabled = external_plugins_enabled
        self.host_version = host_version
        self.default_timeout = default_timeout
        self.verify_entrypoints = verify_entrypoints

    @classmethod
    def from_config(
        cls, config: HostConfig, embedded: EmbeddedRegistry | None = None
    ) -> "HostContext":
        """Build a context from a validated :class:`HostConfig`.

        ``config.extra_kinds`` are registered as plugin kinds.
        """
        for kind in config.extra_kinds:
            register_plugin_kind(kind)
        return cls(
            embedded=embedded,
            security=SecurityConfig(
                allowed_plugin_dirs=list(config.allowed_plugin_dirs),
                require_manifest=config.require_manifest,
                restrict_to_known_kinds=config.restrict_to_known_kinds,
            ),
            external_plugins_enabled=config.external_plugins_enabled,
            default_timeout=config.default_timeout,
            verify_entrypoints=config.verify_entrypoints,
        )

    # ------------------------------------------------------------------
    # External plugin flag
    # ------------------------------------------------------------------

    @property
    def external_plugins_enabled(self) -> bool:
        with self._lock:
            return self._external_enabled

    def enable_external_plugins(self) -> None:
        with self._lock:
            self._external_enabled = True
        logger.debug("External plugins enabled.")

    def disable_external_plugins(self) -> None:
        with self._lock:
            self._external_enabled = False
        logger.debug("External plugins disabled.")

    # ------------------------------------------------------------------
    # Security configuration
    # ------------------------------------------------------------------

    @property
    def security(self) -> SecurityConfig:
        with self._lock:
            return self._security

    @security.setter
    def security(self, config: SecurityConfig) -> None:
        with self._lock:
            self._security = config

    def __repr__(self) -> str:
        return (
            f"HostContext(external_plugins_enabled={self.external_plugins_enabled}, "
            f"embedded={len(self.embedded)}, host_version={self.host_version!r})"
        )


_default_lock = threading.Lock()
_default_context = HostContext()


def get_default_context() -> HostContext:
    """Return the process-wide host context."""
    with _default_lock:
        return _default_context


def reset_default_context() -> HostContext:
    """Replace the default context with a fresh one.  Intended for tests.

    The process-wide embedded registry is kept; call
    :func:`~pluginhost.plugins.embedded.clear_embedded_registry` to empty it.
    """
    global _default_context
    with _default_lock:
        _default_context = HostContext()
        return _default_context


def enable_external_plugins() -> None:
    get_default_context().enable_external_plugins()


def disable_external_plugins() -> None:
    get_default_context().disable_external_plugins()


def external_plugins_enabled() -> bool:
    return get_default_context().external_plugins_enabled


def set_security_config(config: SecurityConfig) -> None:
    get_default_context().security = config


def get_security_config() -> SecurityConfig:
    return get_default_context().security
