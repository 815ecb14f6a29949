"""Convenience API for pluginhost — 3-line quickstart.

Example
-------
::

    from pluginhost import PluginHost
    host = PluginHost()
    print(host.detect("format.usfm", "book.usfm").detected)

"""
from __future__ import annotations

from pathlib import Path
from typing import Any

from pluginhost.context import HostContext
from pluginhost.plugins.discovery import Plugin
from pluginhost.plugins.executor import PluginExecutor
from pluginhost.plugins.loader import PluginLoader
from pluginhost.schema.config import HostConfig
from pluginhost.schema.ipc import (
    DetectResult,
    EmitNativeResult,
    EngineSpecResult,
    EnumerateResult,
    ExtractIRResult,
    IngestResult,
    IPCRequest,
    IPCResponse,
    detect_request,
    emit_native_request,
    engine_spec_request,
    enumerate_request,
    extract_ir_request,
    ingest_request,
    parse_detect_result,
    parse_emit_native_result,
    parse_engine_spec_result,
    parse_enumerate_result,
    parse_extract_ir_result,
    parse_ingest_result,
)


class PluginHost:
    """Zero-config plugin host wrapper for the 80% use case.

    Builds a :class:`HostContext` from *config*, loads every directory in
    ``config.plugin_dirs`` (when external plugins are enabled) and wires an
    executor, so that a plugin can be called by id immediately.

    Parameters
    ----------
    config:
        Host configuration.  Defaults to ``HostConfig()``.
    context:
        Pre-built context.  When given, *config* is used only for
        ``plugin_dirs``.

    Example
    -------
    ::

        from pluginhost import HostConfig, PluginHost
        host = PluginHost(HostConfig(external_plugins_enabled=True, plugin_dirs=["plugins"]))
        result = host.extract_ir("format.usfm", "book.usfm", "out/")
    """

    def __init__(
        self,
        config: HostConfig | None = None,
        context: HostContext | None = None,
    ) -> None:
        self.config: HostConfig = config if config is not None else HostConfig()
        self.context: HostContext = (
            context if context is not None else HostContext.from_config(self.config)
        )
        self.loader: PluginLoader = PluginLoader(self.context)
        self.executor: PluginExecutor = PluginExecutor(self.context)
        self.loader.load_from_directories(self.config.plugin_dirs)

    def load(self, directory: str | Path) -> list[str]:
        """Load plugins from *directory*; returns the ids inserted."""
        return self.loader.load_from_directory(directory)

    def get(self, plugin_id: str) -> Plugin:
        return self.loader.get(plugin_id)

    def list(self) -> list[Plugin]:
        return self.loader.list_plugins()

    def execute(
        self, plugin_id: str, request: IPCRequest, timeout: float | None = None
    ) -> IPCResponse:
        """Resolve *plugin_id* and execute *request* against it."""
        return self.executor.execute(self.loader.get(plugin_id), request, timeout)

    def run(
        self,
        plugin_id: str,
        command: str,
        args: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> IPCResponse:
        """Build a request from *command* and *args* and execute it."""
        return self.execute(plugin_id, IPCRequest(command=command, args=args), timeout)

    # ------------------------------------------------------------------
    # Typed commands
    # ------------------------------------------------------------------

    def detect(self, plugin_id: str, path: str) -> DetectResult:
        return parse_detect_result(self.execute(plugin_id, detect_request(path)))

    def ingest(self, plugin_id: str, path: str, output_dir: str) -> IngestResult:
        return parse_ingest_result(self.execute(plugin_id, ingest_request(path, output_dir)))

    def enumerate(self, plugin_id: str, path: str) -> EnumerateResult:
        return parse_enumerate_result(self.execute(plugin_id, enumerate_request(path)))

    def extract_ir(self, plugin_id: str, path: str, output_dir: str) -> ExtractIRResult:
        return parse_extract_ir_result(
            self.execute(plugin_id, extract_ir_request(path, output_dir))
        )

    def emit_native(self, plugin_id: str, ir_path: str, output_dir: str) -> EmitNativeResult:
        return parse_emit_native_result(
            self.execute(plugin_id, emit_native_request(ir_path, output_dir))
        )

    def engine_spec(self, plugin_id: str) -> EngineSpecResult:
        return parse_engine_spec_result(self.execute(plugin_id, engine_spec_request()))

    def __repr__(self) -> str:
        return f"PluginHost(plugins={len(self.loader)}, context={self.context!r})"
