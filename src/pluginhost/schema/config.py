"""Host configuration schema for pluginhost.

``HostConfig`` is a Pydantic v2 model that acts as the validated,
strongly-typed boundary object between raw configuration sources (YAML files,
environment variables, in-memory dicts) and the plugin host runtime.

Shipped in this module
----------------------
- HostConfig     — Pydantic v2 model with class-method loaders
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class HostConfig(BaseModel):
    """Validated runtime configuration for a plugin host.

    All fields have sensible defaults so that a host can start with zero
    configuration: embedded plugins only, no allow-list, 60 second deadline.

    Parameters
    ----------
    external_plugins_enabled:
        Whether filesystem-discovered plugins are loaded and preferred.
    plugin_dirs:
        Directories scanned for plugins at start-up.
    default_timeout:
        Deadline in seconds for external plugin execution.
    allowed_plugin_dirs:
        Security allow-list; empty means unrestricted.
    require_manifest:
        Reject manifests without a ``plugin_id``.
    restrict_to_known_kinds:
        Reject manifests whose ``kind`` is not a registered kind tag.
    verify_entrypoints:
        Resolve entrypoints through the security validator before spawning.
    extra_kinds:
        Additional kind tags to register at start-up.
    log_level:
        Logging level name used by the CLI.
    """

    model_config = {"extra": "allow", "validate_assignment": True}

    external_plugins_enabled: bool = Field(default=False)
    plugin_dirs: list[str] = Field(default_factory=list)
    default_timeout: float = Field(default=60.0, gt=0)
    allowed_plugin_dirs: list[str] = Field(default_factory=list)
    require_manifest: bool = Field(default=True)
    restrict_to_known_kinds: bool = Field(default=False)
    verify_entrypoints: bool = Field(default=False)
    extra_kinds: list[str] = Field(default_factory=list)
    log_level: str = Field(default="WARNING")

    @model_validator(mode="before")
    @classmethod
    def _normalise_lists(cls, values: Any) -> Any:  # noqa: ANN401
        """Ensure list fields are always lists, not None."""
        if isinstance(values, dict):
            for key in ("plugin_dirs", "allowed_plugin_dirs", "extra_kinds"):
                if key in values and values[key] is None:
                    values[key] = []
        return values

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    # ------------------------------------------------------------------
    # Class-method loaders
    # ------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, path: str | Path) -> "HostConfig":
        """Load and validate configuration from a YAML file.

        Raises
        ------
        FileNotFoundError
            If ``path`` does not exist.
        pydantic.ValidationError
            If the parsed data fails validation.
        """
        resolved = Path(path)
        if not resolved.exists():
            raise FileNotFoundError(f"Config file not found: {resolved}")
        with resolved.open(encoding="utf-8") as fh:
            raw: object = yaml.safe_load(fh)
        data: dict[str, object] = dict(raw) if isinstance(raw, dict) else {}
        return cls.model_validate(data)

    @classmethod
    def from_env(cls, prefix: str = "PLUGINHOST_") -> "HostConfig":
        """Build configuration from environment variables.

        Variables are mapped by stripping the ``prefix`` and lower-casing the
        remainder.  For example ``PLUGINHOST_DEFAULT_TIMEOUT=5`` maps to
        ``default_timeout=5.0``.

        Boolean values accept ``"true"`` / ``"1"`` / ``"yes"`` as truthy and
        anything else as falsy (case-insensitive).  List values are
        comma-separated.
        """
        data: dict[str, object] = {}
        bool_fields = {
            "external_plugins_enabled",
            "require_manifest",
            "restrict_to_known_kinds",
            "verify_entrypoints",
        }
        list_fields = {"plugin_dirs", "allowed_plugin_dirs", "extra_kinds"}

        for raw_key, raw_value in os.environ.items():
            if not raw_key.startswith(prefix):
                continue
            key = raw_key[len(prefix):].lower()
            if key in bool_fields:
                data[key] = raw_value.lower() in {"true", "1", "yes"}
            elif key in list_fields:
                data[key] = [item.strip() for item in raw_value.split(",") if item.strip()]
            else:
                data[key] = raw_value

        return cls.model_validate(data)

    def merge(self, overrides: "HostConfig") -> "HostConfig":
        """Produce a new ``HostConfig`` with non-default values from *overrides*.

        Fields in *overrides* that differ from the class default take
        precedence.  List fields are merged as order-preserving unions.
        Neither *self* nor *overrides* is mutated.
        """
        base_data = self.model_dump()
        override_data = overrides.model_dump()
        default_data = HostConfig().model_dump()

        merged = dict(base_data)
        for key, override_value in override_data.items():
            if override_value == default_data.get(key):
                continue
            if isinstance(override_value, list):
                existing = merged.get(key, [])
                combined: list[object] = list(existing) if isinstance(existing, list) else []
                for item in override_value:
                    if item not in combined:
                        combined.append(item)
                merged[key] = combined
            else:
                merged[key] = override_value

        return HostConfig.model_validate(merged)
