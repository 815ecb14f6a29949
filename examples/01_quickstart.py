#!/usr/bin/env python3
"""Example: Quickstart

Demonstrates the minimal setup for pluginhost: register an embedded format
plugin and call it through the PluginHost convenience class.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install pluginhost
"""
from __future__ import annotations

from pathlib import Path

import pluginhost
from pluginhost import (
    DetectResult,
    EmbeddedPlugin,
    EmitNativeResult,
    ExtractIRResult,
    FormatHandler,
    IngestResult,
    PluginHost,
    PluginManifest,
    register_embedded_plugin,
)
from pluginhost.schema.errors import ExternalPluginRequiredError, PluginResponseError
from pluginhost.schema.ipc import EnumerateEntry, EnumerateResult


class TextFormat(FormatHandler):
    """Toy format plugin for ``.txt`` files."""

    def detect(self, path: str) -> DetectResult:
        if path.endswith(".txt"):
            return DetectResult(detected=True, format="text")
        return DetectResult(detected=False, reason="not a .txt file")

    def ingest(self, path: str, output_dir: str) -> IngestResult:
        return IngestResult(artifact_id=Path(path).stem, size_bytes=len(path))

    def enumerate(self, path: str) -> EnumerateResult:
        return EnumerateResult(entries=[EnumerateEntry(path=Path(path).name)])

    def extract_ir(self, path: str, output_dir: str) -> ExtractIRResult:
        # Only the external binary knows how to build IR.
        raise ExternalPluginRequiredError()

    def emit_native(self, ir_path: str, output_dir: str) -> EmitNativeResult:
        raise ExternalPluginRequiredError()


def main() -> None:
    print(f"pluginhost version: {pluginhost.__version__}")

    # Step 1: Register the embedded plugin
    register_embedded_plugin(
        EmbeddedPlugin(
            PluginManifest(plugin_id="format.text", version="1.0.0", kind="format"),
            TextFormat(),
        )
    )

    # Step 2: Create a zero-config host
    host = PluginHost()
    print(f"Plugins: {[p.plugin_id for p in host.list()]}")

    # Step 3: Call typed commands
    for path in ("notes.txt", "image.png"):
        result = host.detect("format.text", path)
        print(f"detect({path!r}) -> detected={result.detected} format={result.format}")

    # Step 4: A deferred command with no external binary installed
    try:
        host.extract_ir("format.text", "notes.txt", "/tmp/out")
    except PluginResponseError as exc:
        print(f"extract-ir unavailable: {exc}")


if __name__ == "__main__":
    main()
