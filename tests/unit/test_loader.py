"""Unit tests for pluginhost.plugins.loader."""
from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from pluginhost.context import HostContext, enable_external_plugins
from pluginhost.plugins.discovery import EMBEDDED_PATH, Plugin
from pluginhost.plugins.embedded import (
    EmbeddedPlugin,
    EmbeddedRegistry,
    ToolHandler,
    register_embedded_plugin,
)
from pluginhost.plugins.executor import PluginExecutor
from pluginhost.plugins.loader import PluginLoader
from pluginhost.schema.errors import PluginNotFoundError, PluginUnavailableError
from pluginhost.schema.ipc import IPCRequest
from pluginhost.schema.manifest import IRCapabilities, PluginManifest

requires_sh = pytest.mark.skipif(
    shutil.which("sh") is None or os.name != "posix",
    reason="external plugin tests need a POSIX shell",
)

WritePlugin = Callable[..., Path]


class _NullTool(ToolHandler):
    def execute(self, command: str, args: dict[str, Any]) -> Any:
        return {"source": "embedded"}


def _embedded(plugin_id: str, **fields: Any) -> EmbeddedPlugin:
    manifest = PluginManifest(plugin_id=plugin_id, version="1.0.0", kind=plugin_id.split(".")[0], **fields)
    return EmbeddedPlugin(manifest, _NullTool())


def _context(*embedded: EmbeddedPlugin, enabled: bool = False) -> HostContext:
    registry = EmbeddedRegistry()
    for plugin in embedded:
        registry.register(plugin)
    return HostContext(embedded=registry, external_plugins_enabled=enabled)


# ---------------------------------------------------------------------------
# Seeding from the embedded registry
# ---------------------------------------------------------------------------


class TestEmbeddedSeeding:
    def test_embedded_plugins_are_loaded_at_construction(self) -> None:
        loader = PluginLoader(_context(_embedded("format.usfm"), _embedded("tool.zip")))
        assert [p.plugin_id for p in loader.list_plugins()] == ["format.usfm", "tool.zip"]
        assert loader.get("format.usfm").path == EMBEDDED_PATH
        assert loader.get("format.usfm").is_embedded

    def test_default_context_uses_default_registry(self) -> None:
        register_embedded_plugin(_embedded("tool.echo"))
        loader = PluginLoader()
        assert "tool.echo" in loader

    def test_registrations_after_construction_are_not_seen(self) -> None:
        context = _context()
        loader = PluginLoader(context)
        context.embedded.register(_embedded("tool.late"))
        assert "tool.late" not in loader


# ---------------------------------------------------------------------------
# Loading from directories
# ---------------------------------------------------------------------------


class TestLoadFromDirectory:
    def test_disabled_is_noop(self, tmp_path: Path, write_plugin: WritePlugin) -> None:
        write_plugin(tmp_path / "usfm", "format.usfm")
        loader = PluginLoader(_context())
        assert loader.load_from_directory(tmp_path) == []
        assert len(loader) == 0

    def test_enabled_loads(self, tmp_path: Path, write_plugin: WritePlugin) -> None:
        write_plugin(tmp_path / "usfm", "format.usfm")
        write_plugin(tmp_path / "tool" / "zip", "tool.zip")
        loader = PluginLoader(_context(enabled=True))
        assert sorted(loader.load_from_directory(tmp_path)) == ["format.usfm", "tool.zip"]
        assert loader.get("format.usfm").path == str(tmp_path / "usfm")

    def test_enabled_via_default_context(self, tmp_path: Path, write_plugin: WritePlugin) -> None:
        write_plugin(tmp_path / "usfm", "format.usfm")
        enable_external_plugins()
        assert PluginLoader().load_from_directory(tmp_path) == ["format.usfm"]

    def test_unconditional_ignores_flag(self, tmp_path: Path, write_plugin: WritePlugin) -> None:
        write_plugin(tmp_path / "usfm", "format.usfm")
        loader = PluginLoader(_context())
        assert loader.load_from_directory_unconditional(tmp_path) == ["format.usfm"]

    def test_external_overrides_embedded(self, tmp_path: Path, write_plugin: WritePlugin) -> None:
        write_plugin(tmp_path / "usfm", "format.usfm", version="2.0.0")
        loader = PluginLoader(_context(_embedded("format.usfm"), enabled=True))
        loader.load_from_directory(tmp_path)
        plugin = loader.get("format.usfm")
        assert not plugin.is_embedded
        assert plugin.manifest.version == "2.0.0"
        assert len(loader) == 1

    def test_missing_directory_loads_nothing(self, tmp_path: Path) -> None:
        loader = PluginLoader(_context(enabled=True))
        assert loader.load_from_directory(tmp_path / "absent") == []

    def test_load_from_directories(self, tmp_path: Path, write_plugin: WritePlugin) -> None:
        write_plugin(tmp_path / "a" / "usfm", "format.usfm")
        write_plugin(tmp_path / "b" / "zip", "tool.zip")
        loader = PluginLoader(_context(enabled=True))
        assert loader.load_from_directories([tmp_path / "a", tmp_path / "b"]) == ["format.usfm", "tool.zip"]


# ---------------------------------------------------------------------------
# Version gating
# ---------------------------------------------------------------------------


class TestVersionGating:
    def test_incompatible_plugin_is_skipped_with_warning(
        self, tmp_path: Path, write_plugin: WritePlugin, caplog: pytest.LogCaptureFixture
    ) -> None:
        write_plugin(tmp_path / "future", "format.future", min_host_version="0.9.0")
        write_plugin(tmp_path / "usfm", "format.usfm", min_host_version="0.1.0")
        loader = PluginLoader(_context(enabled=True))

        with caplog.at_level(logging.WARNING, logger="pluginhost.plugins.loader"):
            loaded = loader.load_from_directory(tmp_path)

        assert loaded == ["format.usfm"]
        assert "format.future" not in loader
        assert any("format.future" in r.getMessage() for r in caplog.records)

    def test_get_reports_skip_stage(self, tmp_path: Path, write_plugin: WritePlugin) -> None:
        write_plugin(tmp_path / "future", "format.future", min_host_version="1.0.0")
        loader = PluginLoader(_context(enabled=True))
        loader.load_from_directory(tmp_path)

        with pytest.raises(PluginNotFoundError) as exc_info:
            loader.get("format.future")
        assert "skipped at load time" in str(exc_info.value)
        assert exc_info.value.context["stage"] == "load"
        assert "format.future" in loader.skipped()

    def test_host_version_comes_from_context(self, tmp_path: Path, write_plugin: WritePlugin) -> None:
        write_plugin(tmp_path / "future", "format.future", min_host_version="0.9.0")
        context = HostContext(embedded=EmbeddedRegistry(), external_plugins_enabled=True, host_version="0.9.2")
        loader = PluginLoader(context)
        assert loader.load_from_directory(tmp_path) == ["format.future"]


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class TestLookup:
    def test_unknown_id_raises(self) -> None:
        with pytest.raises(PluginNotFoundError) as exc_info:
            PluginLoader(_context()).get("format.nope")
        assert exc_info.value.plugin_id == "format.nope"
        assert "skipped" not in str(exc_info.value)

    def test_list_by_kind_and_ir(self) -> None:
        loader = PluginLoader(
            _context(
                _embedded("format.usfm", ir_support=IRCapabilities(can_extract=True)),
                _embedded("format.osis"),
                _embedded("tool.zip"),
            )
        )
        assert [p.plugin_id for p in loader.list_by_kind("format")] == ["format.osis", "format.usfm"]
        assert [p.plugin_id for p in loader.list_ir_capable()] == ["format.usfm"]

    def test_add_inserts_directly(self) -> None:
        loader = PluginLoader(_context())
        plugin = Plugin(manifest=PluginManifest(plugin_id="tool.x", version="1", kind="tool"), path="/x")
        loader.add(plugin)
        assert loader.get("tool.x") is plugin


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


@requires_sh
class TestEndToEnd:
    def test_discover_load_execute(self, tmp_path: Path, write_plugin: WritePlugin) -> None:
        script = """cat >/dev/null
printf '{"status":"ok","result":{"detected":true}}'
"""
        write_plugin(tmp_path / "format" / "demo", "format.demo", script)
        context = _context(enabled=True)
        loader = PluginLoader(context)
        assert loader.load_from_directory(tmp_path) == ["format.demo"]

        response = PluginExecutor(context).execute(
            loader.get("format.demo"), IPCRequest(command="detect", args={"path": "x"})
        )
        assert response.is_ok
        assert response.result == {"detected": True}

    def test_disabled_host_never_sees_directory_plugins(
        self, tmp_path: Path, write_plugin: WritePlugin
    ) -> None:
        write_plugin(tmp_path / "demo", "format.demo", "cat >/dev/null\n")
        loader = PluginLoader(_context())
        loader.load_from_directory(tmp_path)
        with pytest.raises(PluginNotFoundError):
            loader.get("format.demo")

    def test_embedded_record_without_binary_or_handler(self) -> None:
        context = _context()
        context.embedded.register(EmbeddedPlugin(PluginManifest(plugin_id="tool.stub", kind="tool")))
        loader = PluginLoader(context)
        with pytest.raises(PluginUnavailableError):
            PluginExecutor(context).execute(loader.get("tool.stub"), IPCRequest(command="x"))
