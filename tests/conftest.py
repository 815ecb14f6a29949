"""Shared fixtures for the pluginhost test suite."""
from __future__ import annotations

import json
import stat
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from pluginhost.context import reset_default_context
from pluginhost.plugins.discovery import reset_plugin_kinds
from pluginhost.plugins.embedded import clear_embedded_registry


@pytest.fixture(autouse=True)
def _isolated_host_state() -> Iterator[None]:
    """Give every test a fresh default context, embedded registry and kind set."""
    reset_default_context()
    clear_embedded_registry()
    reset_plugin_kinds()
    yield
    reset_default_context()
    clear_embedded_registry()
    reset_plugin_kinds()


WritePlugin = Callable[..., Path]


@pytest.fixture()
def write_plugin() -> WritePlugin:
    """Return a factory that lays out a plugin directory.

    ``write_plugin(directory, plugin_id, script=None, **manifest_fields)``
    writes ``plugin.json`` into *directory* and, when *script* is given,
    an executable ``run.sh`` entrypoint holding it.
    """

    def _write(
        directory: Path,
        plugin_id: str,
        script: str | None = None,
        **fields: object,
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        manifest: dict[str, object] = {
            "plugin_id": plugin_id,
            "version": "1.0.0",
            "kind": plugin_id.split(".", 1)[0],
            "entrypoint": "run.sh",
        }
        manifest.update(fields)
        (directory / "plugin.json").write_text(json.dumps(manifest), encoding="utf-8")
        if script is not None:
            entrypoint = directory / str(manifest["entrypoint"])
            entrypoint.write_text("#!/bin/sh\n" + script, encoding="utf-8")
            entrypoint.chmod(entrypoint.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP)
        return directory

    return _write
