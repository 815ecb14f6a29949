"""In-process (embedded) plugins for pluginhost.

Embedded plugins are handler objects compiled into the host process.  Each
one carries a manifest and exactly one handler: a :class:`FormatHandler`
serving the five well-known format commands, or a :class:`ToolHandler`
accepting any command.  They self-register at import time into the
process-wide registry returned by :func:`default_registry`.

Dispatch never raises for handler failures: any exception is turned into an
``error`` response so that embedded and external execution look the same to
the caller.  An id with no registered handler yields ``None``, meaning
"not an embedded plugin", which is distinct from "embedded but failed".

Shipped in this module
----------------------
- FormatHandler / ToolHandler — handler ABCs
- EmbeddedPlugin              — ``{manifest, handler}``
- EmbeddedRegistry            — thread-safe registry and dispatcher
- default_registry            — the process-wide registry
- register_embedded_plugin … execute_embedded_plugin — module-level shortcuts
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel

from pluginhost.schema.errors import ExternalPluginRequiredError
from pluginhost.schema.ipc import (
    CMD_DETECT,
    CMD_EMIT_NATIVE,
    CMD_ENUMERATE,
    CMD_EXTRACT_IR,
    CMD_INGEST,
    DetectResult,
    EmitNativeResult,
    EnumerateResult,
    ExtractIRResult,
    IngestResult,
    IPCRequest,
    IPCResponse,
)
from pluginhost.schema.manifest import PluginManifest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Handler contracts
# ---------------------------------------------------------------------------


class FormatHandler(ABC):
    """Capability set of an embedded format plugin."""

    @abstractmethod
    def detect(self, path: str) -> DetectResult:
        """Report whether *path* is in this plugin's format."""

    @abstractmethod
    def ingest(self, path: str, output_dir: str) -> IngestResult:
        """Store *path* byte-for-byte under *output_dir*."""

    @abstractmethod
    def enumerate(self, path: str) -> EnumerateResult:
        """List the entries contained in *path*."""

    @abstractmethod
    def extract_ir(self, path: str, output_dir: str) -> ExtractIRResult:
        """Convert *path* to IR, writing it under *output_dir*."""

    @abstractmethod
    def emit_native(self, ir_path: str, output_dir: str) -> EmitNativeResult:
        """Convert the IR at *ir_path* back to the native format."""


class ToolHandler(ABC):
    """Capability set of an embedded tool plugin."""

    @abstractmethod
    def execute(self, command: str, args: dict[str, Any]) -> Any:  # noqa: ANN401
        """Run *command*; the result must be JSON-encodable."""


Handler = FormatHandler | ToolHandler


@dataclass
class EmbeddedPlugin:
    """An in-process plugin.

    Attributes
    ----------
    manifest:
        Plugin manifest; registration is a no-op when it is ``None`` or has
        an empty ``plugin_id``.
    handler:
        A :class:`FormatHandler` or :class:`ToolHandler`.  ``None`` makes the
        plugin listable but not executable.
    """

    manifest: PluginManifest | None
    handler: Handler | None = None


# ---------------------------------------------------------------------------
# Dispatch helpers
# ---------------------------------------------------------------------------


def _str_arg(args: dict[str, Any], key: str) -> str:
    value = args.get(key, "")
    return value if isinstance(value, str) else ""


def _dump(result: Any) -> Any:  # noqa: ANN401
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", exclude_none=True)
    return result


_FormatCommand = Callable[[FormatHandler, dict[str, Any]], Any]

_FORMAT_COMMANDS: dict[str, _FormatCommand] = {
    CMD_DETECT: lambda h, a: h.detect(_str_arg(a, "path")),
    CMD_INGEST: lambda h, a: h.ingest(_str_arg(a, "path"), _str_arg(a, "output_dir")),
    CMD_ENUMERATE: lambda h, a: h.enumerate(_str_arg(a, "path")),
    CMD_EXTRACT_IR: lambda h, a: h.extract_ir(
        _str_arg(a, "path"), _str_arg(a, "output_dir")
    ),
    CMD_EMIT_NATIVE: lambda h, a: h.emit_native(
        _str_arg(a, "ir_path"), _str_arg(a, "output_dir")
    ),
}


_HANDLER_ROLES: dict[str, type[FormatHandler] | type[ToolHandler]] = {
    "format": FormatHandler,
    "tool": ToolHandler,
}


def _role_mismatch(manifest: PluginManifest, handler: Handler) -> str | None:
    """Describe why *handler* cannot serve *manifest*'s kind, if it cannot.

    ``format`` plugins need a :class:`FormatHandler` and ``tool`` plugins a
    :class:`ToolHandler`; other kinds accept either.
    """
    role = _HANDLER_ROLES.get(manifest.kind)
    if role is None or isinstance(handler, role):
        return None
    return (
        f"embedded plugin {manifest.plugin_id}: kind {manifest.kind!r} "
        f"requires a {role.__name__}"
    )


def _dispatch(handler: Handler, request: IPCRequest) -> IPCResponse:
    args = request.args or {}
    try:
        if isinstance(handler, FormatHandler):
            command = _FORMAT_COMMANDS.get(request.command)
            if command is None:
                return IPCResponse.failure(f"unknown command: {request.command}")
            result = command(handler, args)
        else:
            result = handler.execute(request.command, args)
    except ExternalPluginRequiredError as exc:
        return IPCResponse.failure(str(exc), deferred=True)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Embedded handler for %r failed: %s", request.command, exc)
        return IPCResponse.failure(str(exc))
    return IPCResponse.ok(_dump(result))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class EmbeddedRegistry:
    """Thread-safe table of embedded plugins keyed by ``plugin_id``.

    Re-registering an id replaces the previous entry.

    Examples
    --------
    >>> registry = EmbeddedRegistry()
    >>> registry.register(EmbeddedPlugin(PluginManifest(plugin_id="tool.echo")))
    >>> registry.has("tool.echo")
    True
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._plugins: dict[str, EmbeddedPlugin] = {}

    def register(self, plugin: EmbeddedPlugin | None) -> None:
        """Add or replace *plugin*.  Ignored without a manifest or plugin id."""
        if plugin is None or plugin.manifest is None or not plugin.manifest.plugin_id:
            logger.debug("Ignoring embedded plugin without a plugin_id.")
            return
        if plugin.handler is not None:
            mismatch = _role_mismatch(plugin.manifest, plugin.handler)
            if mismatch is not None:
                logger.warning("%s; its commands will be rejected.", mismatch)
        plugin_id = plugin.manifest.plugin_id
        with self._lock:
            replaced = plugin_id in self._plugins
            self._plugins[plugin_id] = plugin
        logger.debug(
            "%s embedded plugin %r.", "Replaced" if replaced else "Registered", plugin_id
        )

    def get(self, plugin_id: str) -> EmbeddedPlugin | None:
        with self._lock:
            return self._plugins.get(plugin_id)

    def has(self, plugin_id: str) -> bool:
        with self._lock:
            return plugin_id in self._plugins

    def list(self) -> list[EmbeddedPlugin]:
        """Return a snapshot of all registered plugins, sorted by id."""
        with self._lock:
            return [self._plugins[key] for key in sorted(self._plugins)]

    def clear(self) -> None:
        """Remove every registration.  Intended for tests."""
        with self._lock:
            self._plugins.clear()

    def execute(self, plugin_id: str, request: IPCRequest) -> IPCResponse | None:
        """Dispatch *request* to the embedded plugin *plugin_id*.

        Returns
        -------
        IPCResponse | None
            ``None`` when *plugin_id* has no embedded handler; otherwise an
            ``ok`` or ``error`` response.  Handler exceptions never escape,
            and a handler that does not match the manifest kind yields an
            ``error`` response.
        """
        plugin = self.get(plugin_id)
        if plugin is None or plugin.handler is None:
            return None
        mismatch = _role_mismatch(plugin.manifest, plugin.handler)
        if mismatch is not None:
            return IPCResponse.failure(mismatch)
        return _dispatch(plugin.handler, request)

    def __len__(self) -> int:
        with self._lock:
            return len(self._plugins)

    def __contains__(self, plugin_id: object) -> bool:
        with self._lock:
            return plugin_id in self._plugins

    def __repr__(self) -> str:
        return f"EmbeddedRegistry(plugins={[p.manifest.plugin_id for p in self.list()]})"


_default_registry = EmbeddedRegistry()


def default_registry() -> EmbeddedRegistry:
    """Return the process-wide embedded registry."""
    return _default_registry


def register_embedded_plugin(plugin: EmbeddedPlugin) -> None:
    _default_registry.register(plugin)


def get_embedded_plugin(plugin_id: str) -> EmbeddedPlugin | None:
    return _default_registry.get(plugin_id)


def has_embedded_plugin(plugin_id: str) -> bool:
    return _default_registry.has(plugin_id)


def list_embedded_plugins() -> list[EmbeddedPlugin]:
    return _default_registry.list()


def clear_embedded_registry() -> None:
    _default_registry.clear()


def execute_embedded_plugin(plugin_id: str, request: IPCRequest) -> IPCResponse | None:
    return _default_registry.execute(plugin_id, request)
