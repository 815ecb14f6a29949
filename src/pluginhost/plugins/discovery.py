"""Manifest parsing and plugin discovery for pluginhost.

Plugins live in a directory tree in either of two layouts, both accepted
in the same scan::

    plugins/<plugin-dir>/plugin.json          # flat
    plugins/<kind>/<plugin-dir>/plugin.json   # kind-nested

A top-level directory without a direct manifest is only descended into when
its name is a registered kind tag.  Malformed plugins are logged and skipped
so that one bad manifest never blocks discovery of the rest.  Symlinked
directories are not followed.

Shipped in this module
----------------------
- EMBEDDED_PATH          — sentinel path of in-process plugins
- Plugin                 — resolved plugin record ``{manifest, path}``
- plugin_kinds / register_plugin_kind / is_kind_directory
- parse_plugin_manifest  — read and validate one ``plugin.json``
- load_plugin_from_dir   — build a Plugin from a directory
- discover_plugins       — scan a plugin tree
"""
from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from pluginhost.plugins.version import HOST_VERSION, check_plugin_compatibility
from pluginhost.schema.errors import (
    ManifestValidationError,
    PluginHostError,
    PluginIOError,
    PluginNotFoundError,
)
from pluginhost.schema.manifest import MANIFEST_FILENAME, PluginManifest

logger = logging.getLogger(__name__)

EMBEDDED_PATH = "(embedded)"

KIND_FORMAT = "format"
KIND_TOOL = "tool"
KIND_JUNIPER = "juniper"
KIND_EXAMPLE = "example"

_DEFAULT_KINDS: tuple[str, ...] = (KIND_FORMAT, KIND_TOOL, KIND_JUNIPER, KIND_EXAMPLE)

_kinds_lock = threading.Lock()
_kinds: list[str] = list(_DEFAULT_KINDS)


# ---------------------------------------------------------------------------
# Kind tags
# ---------------------------------------------------------------------------


def plugin_kinds() -> tuple[str, ...]:
    """Return a snapshot of the registered kind tags."""
    with _kinds_lock:
        return tuple(_kinds)


def register_plugin_kind(kind: str) -> None:
    """Add *kind* to the registered kind tags (no-op if already present).

    A registered kind is recognised as a kind directory during discovery
    and accepted by ``restrict_to_known_kinds`` manifest checks.
    """
    if not kind:
        raise ValueError("plugin kind must be a non-empty string")
    with _kinds_lock:
        if kind not in _kinds:
            _kinds.append(kind)
            logger.debug("Registered plugin kind %r.", kind)


def reset_plugin_kinds() -> None:
    """Restore the built-in kind tags.  Intended for tests."""
    with _kinds_lock:
        _kinds[:] = list(_DEFAULT_KINDS)


def is_kind_directory(name: str) -> bool:
    """Whether a directory named *name* is scanned as a kind directory."""
    return name in plugin_kinds()


# ---------------------------------------------------------------------------
# Plugin record
# ---------------------------------------------------------------------------


@dataclass
class Plugin:
    """A resolved, loadable plugin.

    Attributes
    ----------
    manifest:
        The plugin's validated manifest.
    path:
        Absolute plugin directory for external plugins, or
        :data:`EMBEDDED_PATH` for plugins resident in this process.
    """

    manifest: PluginManifest
    path: str

    @property
    def plugin_id(self) -> str:
        return self.manifest.plugin_id

    @property
    def is_embedded(self) -> bool:
        return self.path == EMBEDDED_PATH

    def entrypoint_path(self) -> Path:
        """Unchecked join of the plugin directory and its entrypoint.

        Use :func:`pluginhost.plugins.security.secure_entrypoint_path` when
        the result crosses a trust boundary.
        """
        return Path(self.path) / self.manifest.entrypoint

    def has_kind(self, kind: str) -> bool:
        return self.manifest.kind == kind

    @property
    def is_format(self) -> bool:
        return self.has_kind(KIND_FORMAT)

    @property
    def is_tool(self) -> bool:
        return self.has_kind(KIND_TOOL)

    @property
    def is_juniper(self) -> bool:
        return self.has_kind(KIND_JUNIPER)

    @property
    def is_example(self) -> bool:
        return self.has_kind(KIND_EXAMPLE)

    @property
    def supports_ir(self) -> bool:
        return self.manifest.ir_support is not None

    @property
    def can_extract_ir(self) -> bool:
        return self.manifest.ir_support is not None and self.manifest.ir_support.can_extract

    @property
    def can_emit_ir(self) -> bool:
        return self.manifest.ir_support is not None and self.manifest.ir_support.can_emit

    def check_compatibility(self, host_version: str = HOST_VERSION) -> None:
        """Raise ``IncompatibleVersionError`` if the host cannot run this plugin."""
        check_plugin_compatibility(self.manifest, host_version)


# ---------------------------------------------------------------------------
# Manifest parsing
# ---------------------------------------------------------------------------


def parse_plugin_manifest(path: str | Path) -> PluginManifest:
    """Parse and validate a ``plugin.json`` file.

    Parameters
    ----------
    path:
        Path to the manifest file.

    Returns
    -------
    PluginManifest

    Raises
    ------
    PluginNotFoundError
        If the file does not exist.
    PluginIOError
        If the file exists but cannot be read.
    ManifestValidationError
        If the JSON is malformed, a field has the wrong type, or any of
        ``plugin_id``, ``version``, ``kind``, ``entrypoint`` is missing.
    """
    resolved = Path(path)
    try:
        raw = resolved.read_bytes()
    except FileNotFoundError as exc:
        raise PluginNotFoundError(
            str(resolved),
            f"manifest not found: {resolved}",
            context={"path": str(resolved)},
        ) from exc
    except OSError as exc:
        raise PluginIOError(
            f"failed to read manifest {resolved}: {exc}",
            context={"path": str(resolved)},
        ) from exc

    try:
        manifest = PluginManifest.model_validate_json(raw)
    except ValidationError as exc:
        raise ManifestValidationError(
            "",
            f"invalid manifest {resolved}: {exc}",
            context={"path": str(resolved)},
        ) from exc

    manifest.validate_required()
    return manifest


def load_plugin_from_dir(plugin_dir: str | Path) -> Plugin:
    """Build a :class:`Plugin` from a directory containing ``plugin.json``.

    The plugin path is made absolute so the entrypoint stays runnable
    regardless of the caller's working directory.
    """
    directory = Path(os.path.abspath(plugin_dir))
    manifest_path = directory / MANIFEST_FILENAME
    if not manifest_path.exists():
        raise PluginNotFoundError(
            str(directory),
            f"{MANIFEST_FILENAME} not found in {directory}",
            context={"path": str(directory)},
        )
    return Plugin(manifest=parse_plugin_manifest(manifest_path), path=str(directory))


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def _sorted_entries(directory: Path) -> list[os.DirEntry[str]]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


def _discover_in_kind_dir(kind_dir: Path) -> list[Plugin]:
    plugins: list[Plugin] = []
    for entry in _sorted_entries(kind_dir):
        if not entry.is_dir(follow_symlinks=False):
            continue
        try:
            plugins.append(load_plugin_from_dir(entry.path))
        except PluginNotFoundError:
            logger.debug("Skipping %s: no %s.", entry.path, MANIFEST_FILENAME)
        except PluginHostError as exc:
            logger.warning("Failed to load plugin at %s: %s", entry.path, exc)
    return plugins


def discover_plugins(directory: str | Path) -> list[Plugin]:
    """Discover plugins under *directory* (flat and kind-nested layouts).

    Parameters
    ----------
    directory:
        Root of the plugin tree.  Relative paths are made absolute.

    Returns
    -------
    list[Plugin]
        Discovered plugins in directory-name order.  A missing directory
        yields an empty list.

    Raises
    ------
    PluginIOError
        If *directory* exists but cannot be read.
    """
    root = Path(os.path.abspath(directory))
    try:
        entries = _sorted_entries(root)
    except FileNotFoundError:
        logger.debug("Plugin directory %s does not exist.", root)
        return []
    except OSError as exc:
        raise PluginIOError(
            f"failed to read plugin directory {root}: {exc}",
            context={"path": str(root)},
        ) from exc

    plugins: list[Plugin] = []
    for entry in entries:
        if not entry.is_dir(follow_symlinks=False):
            continue

        entry_path = Path(entry.path)
        if (entry_path / MANIFEST_FILENAME).exists():
            try:
                plugins.append(load_plugin_from_dir(entry_path))
            except PluginHostError as exc:
                logger.warning("Failed to load plugin at %s: %s", entry_path, exc)
            continue

        if is_kind_directory(entry.name):
            try:
                plugins.extend(_discover_in_kind_dir(entry_path))
            except OSError as exc:
                logger.warning("Failed to scan kind directory %s: %s", entry_path, exc)

    logger.debug("Discovered %d plugin(s) under %s.", len(plugins), root)
    return plugins
