"""Path and manifest trust checks for pluginhost.

These checks are the host's only security boundary: they reject path
traversal, symlinked or non-regular entrypoints, plugins outside the
configured allow-list, and manifests that fail the configured trust policy.
Every failure raises :class:`~pluginhost.schema.errors.SecurityValidationError`;
nothing here is ever downgraded to a warning.

Each function accepts an explicit :class:`SecurityConfig`.  When omitted,
the process-wide configuration of the default host context is used.

Shipped in this module
----------------------
- SecurityConfig              — allow-list and manifest trust flags
- has_traversal               — detect ``..`` path segments
- validate_plugin_path        — check an entrypoint file
- validate_plugin_directory   — check a path against the allow-list
- validate_manifest_security  — check a manifest against the trust flags
- secure_entrypoint_path      — the sanctioned way to obtain an entrypoint
"""
from __future__ import annotations

import logging
import os
import re
import stat
from pathlib import Path

from pydantic import BaseModel, Field

from pluginhost.plugins.discovery import Plugin, plugin_kinds
from pluginhost.schema.errors import SecurityValidationError
from pluginhost.schema.manifest import PluginManifest

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\\/]")


class SecurityConfig(BaseModel):
    """Process-wide trust configuration.

    Parameters
    ----------
    allowed_plugin_dirs:
        Directories plugins must live under.  Empty means unrestricted.
    require_manifest:
        Reject manifests whose ``plugin_id`` is empty.
    restrict_to_known_kinds:
        Reject manifests whose ``kind`` is not a registered kind tag.
    """

    model_config = {"validate_assignment": True}

    allowed_plugin_dirs: list[str] = Field(default_factory=list)
    require_manifest: bool = Field(default=True)
    restrict_to_known_kinds: bool = Field(default=False)


def _resolve(config: SecurityConfig | None) -> SecurityConfig:
    if config is not None:
        return config
    from pluginhost.context import get_security_config

    return get_security_config()


def has_traversal(path: str | os.PathLike[str]) -> bool:
    """Return ``True`` if any segment of *path* is ``..``.

    Both ``/`` and ``\\`` are treated as separators.
    """
    return ".." in _SEPARATORS.split(os.fspath(path))


def _is_within(path: str, directory: str) -> bool:
    """Whether *path* equals or descends from *directory*.

    Fails closed: a relative-path computation error is never a match.
    """
    try:
        rel = os.path.relpath(path, os.path.abspath(directory))
    except ValueError:
        return False
    return rel == "." or not (rel == os.pardir or rel.startswith(os.pardir + os.sep))


def validate_plugin_directory(
    path: str | os.PathLike[str], config: SecurityConfig | None = None
) -> None:
    """Check *path* against the configured allow-list.

    Passes unconditionally when no allow-list is configured.

    Raises
    ------
    SecurityValidationError
        If *path* is not inside any allowed directory.
    """
    cfg = _resolve(config)
    if not cfg.allowed_plugin_dirs:
        return

    absolute = os.path.abspath(path)
    for allowed in cfg.allowed_plugin_dirs:
        if _is_within(absolute, allowed):
            return

    raise SecurityValidationError(
        f"plugin path {absolute} is not within an allowed plugin directory",
        context={"path": absolute, "allowed_plugin_dirs": list(cfg.allowed_plugin_dirs)},
    )


def validate_plugin_path(
    path: str | os.PathLike[str], config: SecurityConfig | None = None
) -> None:
    """Check that *path* is a safe plugin entrypoint.

    The path must be non-empty, free of ``..`` segments, exist, be a
    regular file (symlinks, directories, devices and sockets are rejected)
    and, when an allow-list is configured, live inside an allowed directory.
    A symlink's target directory is checked against the allow-list before
    the symlink itself is rejected.

    Raises
    ------
    SecurityValidationError
        Describing the first failed check.
    """
    cfg = _resolve(config)
    text = os.fspath(path)
    if not text:
        raise SecurityValidationError("plugin path is empty")
    if has_traversal(text):
        raise SecurityValidationError(
            f"plugin path {text!r} contains a parent-directory traversal",
            context={"path": text},
        )

    absolute = os.path.abspath(text)
    try:
        info = os.lstat(absolute)
    except FileNotFoundError as exc:
        raise SecurityValidationError(
            f"plugin path {absolute} does not exist", context={"path": absolute}
        ) from exc
    except OSError as exc:
        raise SecurityValidationError(
            f"cannot stat plugin path {absolute}: {exc}", context={"path": absolute}
        ) from exc

    if stat.S_ISLNK(info.st_mode):
        target = os.path.realpath(absolute)
        validate_plugin_directory(os.path.dirname(target), cfg)
        logger.debug("Plugin path %s is a symlink to %s.", absolute, target)

    if not stat.S_ISREG(info.st_mode):
        raise SecurityValidationError(
            f"plugin path {absolute} is not a regular file",
            context={"path": absolute, "mode": stat.filemode(info.st_mode)},
        )

    validate_plugin_directory(absolute, cfg)


def validate_manifest_security(
    manifest: PluginManifest | None, config: SecurityConfig | None = None
) -> None:
    """Check *manifest* against the configured trust flags.

    An entrypoint containing ``..`` or an absolute entrypoint is rejected
    regardless of the flags.

    Raises
    ------
    SecurityValidationError
        Describing the first failed check.
    """
    cfg = _resolve(config)
    if manifest is None:
        raise SecurityValidationError("plugin manifest is missing")

    context: dict[str, object] = {"plugin_id": manifest.plugin_id}
    if cfg.require_manifest and not manifest.plugin_id:
        raise SecurityValidationError("plugin manifest has no plugin_id", context=context)
    if cfg.restrict_to_known_kinds and manifest.kind not in plugin_kinds():
        raise SecurityValidationError(
            f"plugin kind {manifest.kind!r} is not a known kind", context=context
        )
    if has_traversal(manifest.entrypoint):
        raise SecurityValidationError(
            f"plugin entrypoint {manifest.entrypoint!r} contains a parent-directory traversal",
            context=context,
        )
    if os.path.isabs(manifest.entrypoint):
        raise SecurityValidationError(
            f"plugin entrypoint {manifest.entrypoint!r} must be relative",
            context=context,
        )


def secure_entrypoint_path(plugin: Plugin, config: SecurityConfig | None = None) -> Path:
    """Return the plugin's entrypoint after manifest and path validation.

    Raises
    ------
    SecurityValidationError
        If the manifest or the resolved entrypoint fails validation, or the
        plugin is embedded and therefore has no entrypoint to run.
    """
    cfg = _resolve(config)
    validate_manifest_security(plugin.manifest, cfg)
    if plugin.is_embedded:
        raise SecurityValidationError(
            f"plugin {plugin.plugin_id} is embedded and has no entrypoint",
            context={"plugin_id": plugin.plugin_id},
        )
    entrypoint = plugin.entrypoint_path()
    validate_plugin_path(entrypoint, cfg)
    return entrypoint
