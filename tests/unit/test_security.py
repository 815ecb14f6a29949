"""Unit tests for pluginhost.plugins.security."""
from __future__ import annotations

import os
from pathlib import Path

import pytest

from pluginhost.context import get_security_config, set_security_config
from pluginhost.plugins.discovery import EMBEDDED_PATH, Plugin, register_plugin_kind
from pluginhost.plugins.security import (
    SecurityConfig,
    has_traversal,
    secure_entrypoint_path,
    validate_manifest_security,
    validate_plugin_directory,
    validate_plugin_path,
)
from pluginhost.schema.errors import ErrorSeverity, SecurityValidationError
from pluginhost.schema.manifest import PluginManifest

needs_symlinks = pytest.mark.skipif(
    not hasattr(os, "symlink") or os.name == "nt", reason="symlinks unavailable"
)


def _entrypoint(directory: Path, name: str = "run") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    return path


def _manifest(**fields: object) -> PluginManifest:
    data: dict[str, object] = {
        "plugin_id": "format.demo",
        "version": "1.0.0",
        "kind": "format",
        "entrypoint": "run",
    }
    data.update(fields)
    return PluginManifest.model_validate(data)


# ---------------------------------------------------------------------------
# SecurityConfig
# ---------------------------------------------------------------------------


class TestSecurityConfig:
    def test_defaults(self) -> None:
        config = SecurityConfig()
        assert config.allowed_plugin_dirs == []
        assert config.require_manifest is True
        assert config.restrict_to_known_kinds is False

    def test_process_wide_config_round_trip(self) -> None:
        config = SecurityConfig(restrict_to_known_kinds=True)
        set_security_config(config)
        assert get_security_config() is config


class TestHasTraversal:
    @pytest.mark.parametrize("path", ["../x", "a/../b", "a\\..\\b", "..", "a/.."])
    def test_detected(self, path: str) -> None:
        assert has_traversal(path)

    @pytest.mark.parametrize("path", ["a/b", "..foo/bar", "foo..", "./run", ""])
    def test_not_detected(self, path: str) -> None:
        assert not has_traversal(path)


# ---------------------------------------------------------------------------
# validate_plugin_path
# ---------------------------------------------------------------------------


class TestValidatePluginPath:
    def test_regular_file_passes(self, tmp_path: Path) -> None:
        validate_plugin_path(_entrypoint(tmp_path), SecurityConfig())

    def test_empty_path_rejected(self) -> None:
        with pytest.raises(SecurityValidationError, match="empty"):
            validate_plugin_path("", SecurityConfig())

    def test_traversal_rejected_before_stat(self, tmp_path: Path) -> None:
        _entrypoint(tmp_path)
        with pytest.raises(SecurityValidationError, match="traversal"):
            validate_plugin_path(f"{tmp_path}/sub/../run", SecurityConfig())

    def test_missing_path_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(SecurityValidationError, match="does not exist"):
            validate_plugin_path(tmp_path / "nope", SecurityConfig())

    def test_directory_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(SecurityValidationError, match="not a regular file"):
            validate_plugin_path(tmp_path, SecurityConfig())

    @needs_symlinks
    def test_symlink_rejected(self, tmp_path: Path) -> None:
        target = _entrypoint(tmp_path / "real")
        link = tmp_path / "link"
        link.symlink_to(target)
        with pytest.raises(SecurityValidationError, match="not a regular file"):
            validate_plugin_path(link, SecurityConfig())

    @needs_symlinks
    def test_symlink_target_outside_allow_list_rejected(self, tmp_path: Path) -> None:
        allowed = tmp_path / "allowed"
        outside = _entrypoint(tmp_path / "outside")
        allowed.mkdir()
        link = allowed / "run"
        link.symlink_to(outside)
        config = SecurityConfig(allowed_plugin_dirs=[str(allowed)])
        with pytest.raises(SecurityValidationError, match="not within an allowed"):
            validate_plugin_path(link, config)

    def test_outside_allow_list_rejected(self, tmp_path: Path) -> None:
        entrypoint = _entrypoint(tmp_path / "elsewhere")
        config = SecurityConfig(allowed_plugin_dirs=[str(tmp_path / "allowed")])
        with pytest.raises(SecurityValidationError) as exc_info:
            validate_plugin_path(entrypoint, config)
        assert exc_info.value.severity is ErrorSeverity.CRITICAL

    def test_inside_allow_list_passes(self, tmp_path: Path) -> None:
        entrypoint = _entrypoint(tmp_path / "allowed" / "demo")
        validate_plugin_path(entrypoint, SecurityConfig(allowed_plugin_dirs=[str(tmp_path / "allowed")]))

    def test_uses_process_wide_config_when_omitted(self, tmp_path: Path) -> None:
        entrypoint = _entrypoint(tmp_path / "elsewhere")
        set_security_config(SecurityConfig(allowed_plugin_dirs=[str(tmp_path / "allowed")]))
        with pytest.raises(SecurityValidationError):
            validate_plugin_path(entrypoint)


# ---------------------------------------------------------------------------
# validate_plugin_directory
# ---------------------------------------------------------------------------


class TestValidatePluginDirectory:
    def test_no_allow_list_passes_everything(self) -> None:
        validate_plugin_directory("/anywhere/at/all", SecurityConfig())

    def test_directory_itself_is_within(self, tmp_path: Path) -> None:
        validate_plugin_directory(tmp_path, SecurityConfig(allowed_plugin_dirs=[str(tmp_path)]))

    def test_sibling_with_shared_prefix_is_not_within(self, tmp_path: Path) -> None:
        config = SecurityConfig(allowed_plugin_dirs=[str(tmp_path / "plugins")])
        with pytest.raises(SecurityValidationError):
            validate_plugin_directory(tmp_path / "plugins-evil" / "x", config)

    def test_any_allowed_entry_matches(self, tmp_path: Path) -> None:
        config = SecurityConfig(allowed_plugin_dirs=[str(tmp_path / "a"), str(tmp_path / "b")])
        validate_plugin_directory(tmp_path / "b" / "plugin", config)


# ---------------------------------------------------------------------------
# validate_manifest_security
# ---------------------------------------------------------------------------


class TestValidateManifestSecurity:
    def test_valid_manifest_passes(self) -> None:
        validate_manifest_security(_manifest(), SecurityConfig())

    def test_missing_manifest_rejected(self) -> None:
        with pytest.raises(SecurityValidationError):
            validate_manifest_security(None, SecurityConfig())

    def test_empty_plugin_id_rejected_when_required(self) -> None:
        with pytest.raises(SecurityValidationError, match="plugin_id"):
            validate_manifest_security(_manifest(plugin_id=""), SecurityConfig())

    def test_empty_plugin_id_allowed_when_not_required(self) -> None:
        validate_manifest_security(_manifest(plugin_id=""), SecurityConfig(require_manifest=False))

    def test_unknown_kind_rejected_when_restricted(self) -> None:
        config = SecurityConfig(restrict_to_known_kinds=True)
        with pytest.raises(SecurityValidationError, match="kind"):
            validate_manifest_security(_manifest(kind="codec"), config)

    def test_registered_kind_accepted_when_restricted(self) -> None:
        register_plugin_kind("codec")
        validate_manifest_security(_manifest(kind="codec"), SecurityConfig(restrict_to_known_kinds=True))

    def test_unknown_kind_allowed_by_default(self) -> None:
        validate_manifest_security(_manifest(kind="codec"), SecurityConfig())

    @pytest.mark.parametrize("entrypoint", ["../evil", "bin/../../evil", "..\\evil"])
    def test_entrypoint_traversal_rejected(self, entrypoint: str) -> None:
        with pytest.raises(SecurityValidationError, match="traversal"):
            validate_manifest_security(_manifest(entrypoint=entrypoint), SecurityConfig())

    def test_absolute_entrypoint_rejected(self) -> None:
        with pytest.raises(SecurityValidationError, match="relative"):
            validate_manifest_security(_manifest(entrypoint="/bin/sh"), SecurityConfig())


# ---------------------------------------------------------------------------
# secure_entrypoint_path
# ---------------------------------------------------------------------------


class TestSecureEntrypointPath:
    def test_returns_validated_path(self, tmp_path: Path) -> None:
        entrypoint = _entrypoint(tmp_path)
        plugin = Plugin(manifest=_manifest(), path=str(tmp_path))
        assert secure_entrypoint_path(plugin, SecurityConfig()) == entrypoint

    def test_embedded_plugin_rejected(self) -> None:
        plugin = Plugin(manifest=_manifest(), path=EMBEDDED_PATH)
        with pytest.raises(SecurityValidationError, match="embedded"):
            secure_entrypoint_path(plugin, SecurityConfig())

    def test_manifest_checked_first(self, tmp_path: Path) -> None:
        plugin = Plugin(manifest=_manifest(entrypoint="../run"), path=str(tmp_path / "sub"))
        _entrypoint(tmp_path)
        with pytest.raises(SecurityValidationError, match="traversal"):
            secure_entrypoint_path(plugin, SecurityConfig())

    def test_missing_entrypoint_rejected(self, tmp_path: Path) -> None:
        plugin = Plugin(manifest=_manifest(), path=str(tmp_path))
        with pytest.raises(SecurityValidationError, match="does not exist"):
            secure_entrypoint_path(plugin, SecurityConfig())
