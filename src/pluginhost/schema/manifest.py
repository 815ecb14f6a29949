"""Plugin manifest schema for pluginhost.

``PluginManifest`` is the validated form of a plugin's ``plugin.json``.  It
describes the plugin's identity, category, executable entrypoint and the
advisory capability / IR metadata used for filtering.

Shipped in this module
----------------------
- MANIFEST_FILENAME  — name of the manifest file inside a plugin directory
- REQUIRED_FIELDS    — manifest keys that must be present and non-empty
- Capabilities       — advisory input/output/profile tags
- IRCapabilities     — intermediate-representation support description
- PluginManifest     — Pydantic v2 model of ``plugin.json``
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from pluginhost.schema.errors import ManifestValidationError

MANIFEST_FILENAME = "plugin.json"

REQUIRED_FIELDS: tuple[str, ...] = ("plugin_id", "version", "kind", "entrypoint")


class Capabilities(BaseModel):
    """Free-form capability tags declared by a plugin.

    The host never enforces these; they exist for listing and filtering.
    """

    inputs: list[str] = Field(default_factory=list)
    outputs: list[str] = Field(default_factory=list)
    profiles: list[str] = Field(default_factory=list)


class IRCapabilities(BaseModel):
    """Describes whether a plugin can translate to and from the IR.

    Parameters
    ----------
    can_extract:
        Plugin can extract IR from its native format.
    can_emit:
        Plugin can emit its native format from IR.
    loss_class:
        Expected fidelity class, ``"L0"`` (lossless) to ``"L4"``.
    formats:
        Native formats supported by the IR pipeline.
    """

    can_extract: bool = False
    can_emit: bool = False
    loss_class: str = ""
    formats: list[str] = Field(default_factory=list)


class PluginManifest(BaseModel):
    """Declarative identity and capability description of a plugin.

    All fields default to empty so that partially-built manifests (for
    example the ones embedded plugins register) can be constructed; the
    four required fields are enforced by :meth:`validate_required`, which
    manifest parsing always calls.

    Examples
    --------
    >>> m = PluginManifest(plugin_id="format.demo", version="1.0.0",
    ...                    kind="format", entrypoint="demo-bin")
    >>> m.validate_required()
    >>> m.supports_ir
    False
    """

    model_config = {"extra": "ignore", "validate_assignment": True}

    plugin_id: str = Field(default="")
    version: str = Field(default="")
    kind: str = Field(default="")
    entrypoint: str = Field(default="")
    min_host_version: str = Field(default="")
    license: str = Field(default="")
    capabilities: Capabilities = Field(default_factory=Capabilities)
    ir_support: IRCapabilities | None = Field(default=None)

    @field_validator(
        "plugin_id", "version", "kind", "entrypoint", "min_host_version", "license",
        mode="before",
    )
    @classmethod
    def _null_string_is_empty(cls, value: Any) -> Any:  # noqa: ANN401
        return "" if value is None else value

    @field_validator("capabilities", mode="before")
    @classmethod
    def _null_capabilities_are_empty(cls, value: Any) -> Any:  # noqa: ANN401
        return {} if value is None else value

    def validate_required(self) -> None:
        """Check that every required field is present and non-empty.

        Raises
        ------
        ManifestValidationError
            Naming the first missing field.
        """
        for name in REQUIRED_FIELDS:
            if not getattr(self, name):
                raise ManifestValidationError(
                    name,
                    "is required",
                    context={"plugin_id": self.plugin_id},
                )

    @property
    def supports_ir(self) -> bool:
        """``True`` when the manifest declares any IR support block."""
        return self.ir_support is not None
