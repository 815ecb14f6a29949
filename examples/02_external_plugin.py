#!/usr/bin/env python3
"""Example: External plugin

Lays out a kind-nested plugin tree containing a shell-script plugin, loads
it with external plugins enabled, and runs a command over JSON stdio.

Usage:
    python examples/02_external_plugin.py

Requirements:
    pip install pluginhost
    A POSIX shell (``/bin/sh``).
"""
from __future__ import annotations

import json
import stat
import tempfile
from pathlib import Path

from pluginhost import HostConfig, PluginHost

_SCRIPT = """#!/bin/sh
cat >/dev/null
printf '{"status":"ok","result":{"engine_type":"nix","packages":["hello"]}}'
"""


def _write_plugin(root: Path) -> None:
    plugin_dir = root / "tool" / "hello"
    plugin_dir.mkdir(parents=True)
    manifest = {
        "plugin_id": "tool.hello",
        "version": "1.0.0",
        "kind": "tool",
        "entrypoint": "hello.sh",
        "min_host_version": "0.5.0",
    }
    (plugin_dir / "plugin.json").write_text(json.dumps(manifest), encoding="utf-8")
    entrypoint = plugin_dir / "hello.sh"
    entrypoint.write_text(_SCRIPT, encoding="utf-8")
    entrypoint.chmod(entrypoint.stat().st_mode | stat.S_IXUSR)


def main() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        _write_plugin(root)

        config = HostConfig(
            external_plugins_enabled=True,
            plugin_dirs=[str(root)],
            allowed_plugin_dirs=[str(root)],
            verify_entrypoints=True,
            default_timeout=5,
        )
        host = PluginHost(config)
        plugin = host.get("tool.hello")
        print(f"Loaded {plugin.plugin_id} from {plugin.path}")

        spec = host.engine_spec("tool.hello")
        print(f"engine-spec -> engine_type={spec.engine_type} packages={spec.packages}")


if __name__ == "__main__":
    main()
