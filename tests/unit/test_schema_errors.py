"""Unit tests for pluginhost.schema.errors.

Tests cover the full error hierarchy, severity enum, context payload,
repr formatting, and the attributes carried by specific failures.
"""
from __future__ import annotations

import pytest

from pluginhost.schema.errors import (
    ConfigurationError,
    ErrorSeverity,
    ExternalPluginRequiredError,
    IncompatibleVersionError,
    InvalidVersionError,
    ManifestValidationError,
    PluginExecutionError,
    PluginHostError,
    PluginIOError,
    PluginNotFoundError,
    PluginResponseError,
    PluginTimeoutError,
    PluginUnavailableError,
    PluginValidationError,
    ProtocolError,
    SecurityValidationError,
)


# ---------------------------------------------------------------------------
# ErrorSeverity enum
# ---------------------------------------------------------------------------


class TestErrorSeverity:
    def test_expected_members_exist(self) -> None:
        values = {m.value for m in ErrorSeverity}
        assert values == {"critical", "high", "medium", "low", "info"}

    def test_members_are_str_subclass(self) -> None:
        assert isinstance(ErrorSeverity.HIGH, str)
        assert ErrorSeverity.CRITICAL == "critical"


# ---------------------------------------------------------------------------
# PluginHostError base
# ---------------------------------------------------------------------------


class TestPluginHostError:
    def test_defaults(self) -> None:
        exc = PluginHostError("broken")
        assert str(exc) == "broken"
        assert exc.severity is ErrorSeverity.HIGH
        assert exc.context == {}

    def test_context_is_kept(self) -> None:
        exc = PluginHostError("broken", ErrorSeverity.LOW, {"plugin_id": "x"})
        assert exc.context == {"plugin_id": "x"}
        assert exc.severity is ErrorSeverity.LOW

    def test_repr(self) -> None:
        assert repr(PluginHostError("oops")) == "PluginHostError(message='oops', severity='high')"

    def test_chaining(self) -> None:
        try:
            try:
                raise OSError("disk")
            except OSError as inner:
                raise PluginIOError("read failed") from inner
        except PluginHostError as exc:
            assert isinstance(exc.__cause__, OSError)


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [
            ConfigurationError,
            PluginValidationError,
            IncompatibleVersionError,
            PluginIOError,
            ProtocolError,
            PluginResponseError,
            PluginUnavailableError,
        ],
    )
    def test_plain_subclasses(self, cls: type[PluginHostError]) -> None:
        exc = cls("message")
        assert isinstance(exc, PluginHostError)
        assert str(exc) == "message"

    @pytest.mark.parametrize("cls", [ManifestValidationError, InvalidVersionError, SecurityValidationError])
    def test_validation_family(self, cls: type[PluginHostError]) -> None:
        assert issubclass(cls, PluginValidationError)


# ---------------------------------------------------------------------------
# Specific errors
# ---------------------------------------------------------------------------


class TestSpecificErrors:
    def test_plugin_not_found(self) -> None:
        exc = PluginNotFoundError("format.nope")
        assert exc.plugin_id == "format.nope"
        assert str(exc) == "plugin not found: format.nope"
        assert exc.severity is ErrorSeverity.MEDIUM
        assert exc.context["plugin_id"] == "format.nope"

    def test_plugin_not_found_custom_message(self) -> None:
        exc = PluginNotFoundError("x", "gone", context={"stage": "load"})
        assert str(exc) == "gone"
        assert exc.context == {"plugin_id": "x", "stage": "load"}

    def test_manifest_validation_names_field(self) -> None:
        exc = ManifestValidationError("entrypoint", "is required")
        assert exc.field == "entrypoint"
        assert str(exc) == "entrypoint: is required"

    def test_manifest_validation_without_field(self) -> None:
        assert str(ManifestValidationError("", "bad json")) == "bad json"

    def test_security_is_critical(self) -> None:
        assert SecurityValidationError("nope").severity is ErrorSeverity.CRITICAL

    def test_execution_error_attributes(self) -> None:
        exc = PluginExecutionError("failed", returncode=2, stderr="trace")
        assert exc.returncode == 2
        assert exc.stderr == "trace"

    def test_timeout_attribute(self) -> None:
        assert PluginTimeoutError("slow", timeout=1.5).timeout == 1.5

    def test_external_required_default_message(self) -> None:
        exc = ExternalPluginRequiredError()
        assert str(exc) == "requires external plugin"
        assert exc.severity is ErrorSeverity.INFO
