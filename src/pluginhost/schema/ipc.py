"""Wire protocol payloads for pluginhost.

One JSON object travels each way per invocation.  The request carries a
``command`` and an open-ended ``args`` mapping; the response carries a
``status`` of ``"ok"`` or ``"error"`` plus either a ``result`` or an
``error`` message.  The same models are used for in-process (embedded)
dispatch so that both execution paths look identical to the caller.

Shipped in this module
----------------------
- Well-known command names (``CMD_DETECT`` … ``CMD_ENGINE_SPEC``)
- IPCRequest / IPCResponse   — the request/response envelope
- Typed results              — DetectResult, IngestResult, EnumerateResult,
                               EngineSpecResult, ExtractIRResult,
                               EmitNativeResult, LossReport
- Request builders           — detect_request() … engine_spec_request()
- Result parsers             — parse_detect_result() … parse_emit_native_result()
"""
from __future__ import annotations

import json
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pluginhost.schema.errors import ProtocolError, PluginResponseError

CMD_DETECT = "detect"
CMD_INGEST = "ingest"
CMD_ENUMERATE = "enumerate"
CMD_EXTRACT_IR = "extract-ir"
CMD_EMIT_NATIVE = "emit-native"
CMD_ENGINE_SPEC = "engine-spec"

STATUS_OK = "ok"
STATUS_ERROR = "error"


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class IPCRequest(BaseModel):
    """Request sent to a plugin.

    Parameters
    ----------
    command:
        Command name; one of the well-known format commands or any
        tool-defined string.
    args:
        Argument mapping.  Omitted from the wire form when ``None`` or empty.
    """

    command: str
    args: dict[str, Any] | None = None

    def to_wire(self) -> bytes:
        """Encode the request as a single JSON document.

        Raises
        ------
        ProtocolError
            If an argument value is not JSON-encodable.
        """
        payload: dict[str, Any] = {"command": self.command}
        if self.args:
            payload["args"] = self.args
        try:
            return json.dumps(payload).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise ProtocolError(
                f"failed to encode request: {exc}",
                context={"command": self.command},
            ) from exc


class IPCResponse(BaseModel):
    """Response returned by a plugin.

    ``deferred`` is set in-process only, when an embedded handler raised
    :class:`~pluginhost.schema.errors.ExternalPluginRequiredError`; it is
    never part of the wire form.
    """

    status: Literal["ok", "error"]
    result: Any = None
    error: str = ""
    deferred: bool = Field(default=False, exclude=True)

    @field_validator("error", mode="before")
    @classmethod
    def _null_error_is_empty(cls, value: Any) -> Any:  # noqa: ANN401
        return "" if value is None else value

    @classmethod
    def ok(cls, result: Any = None) -> "IPCResponse":  # noqa: ANN401
        """Build a success response."""
        return cls(status=STATUS_OK, result=result)

    @classmethod
    def failure(cls, message: str, deferred: bool = False) -> "IPCResponse":
        """Build an error response carrying *message*."""
        return cls(status=STATUS_ERROR, error=message, deferred=deferred)

    @property
    def is_ok(self) -> bool:
        return self.status == STATUS_OK

    def to_wire(self) -> bytes:
        """Encode the response the way an external plugin writes it."""
        payload: dict[str, Any] = {"status": self.status}
        if self.result is not None:
            payload["result"] = self.result
        if self.error:
            payload["error"] = self.error
        try:
            return json.dumps(payload).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise ProtocolError(f"failed to encode response: {exc}") from exc

    @classmethod
    def from_wire(cls, data: bytes | str) -> "IPCResponse":
        """Decode a response read from a plugin's standard output.

        Raises
        ------
        ProtocolError
            If *data* is not a valid response document.  The raw output is
            included in the message and the context for diagnosis.
        """
        raw = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
        try:
            return cls.model_validate_json(raw)
        except ValidationError as exc:
            raise ProtocolError(
                f"failed to decode response: {exc} (output: {raw})",
                context={"output": raw},
            ) from exc


# ---------------------------------------------------------------------------
# Typed results
# ---------------------------------------------------------------------------


class _Result(BaseModel):
    """Base for typed results; strict so that e.g. ``"yes"`` is not a bool."""

    model_config = ConfigDict(strict=True, extra="ignore")


class DetectResult(_Result):
    detected: bool = False
    format: str | None = None
    reason: str | None = None


class IngestResult(_Result):
    artifact_id: str = ""
    blob_sha256: str = ""
    size_bytes: int = 0
    metadata: dict[str, str] = Field(default_factory=dict)


class EnumerateEntry(_Result):
    path: str = ""
    size_bytes: int = 0
    is_dir: bool = False
    metadata: dict[str, str] = Field(default_factory=dict)


class EnumerateResult(_Result):
    entries: list[EnumerateEntry] = Field(default_factory=list)


class EngineSpecResult(_Result):
    engine_type: str = ""
    nix_flake: str | None = None
    packages: list[str] = Field(default_factory=list)


class LostElement(_Result):
    """One element dropped or altered during a lossy conversion."""

    path: str = ""
    element_type: str = ""
    reason: str = ""
    original_value: Any = None


class LossReport(_Result):
    """Loss information carried by IR extraction and emission results."""

    source_format: str = ""
    target_format: str = ""
    loss_class: str = ""
    lost_elements: list[LostElement] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ExtractIRResult(_Result):
    ir_path: str = ""
    loss_class: str | None = None
    loss_report: LossReport | None = None


class EmitNativeResult(_Result):
    output_path: str = ""
    format: str = ""
    loss_class: str | None = None
    loss_report: LossReport | None = None


# ---------------------------------------------------------------------------
# Request builders
# ---------------------------------------------------------------------------


def detect_request(path: str) -> IPCRequest:
    return IPCRequest(command=CMD_DETECT, args={"path": path})


def ingest_request(path: str, output_dir: str) -> IPCRequest:
    return IPCRequest(command=CMD_INGEST, args={"path": path, "output_dir": output_dir})


def enumerate_request(path: str) -> IPCRequest:
    return IPCRequest(command=CMD_ENUMERATE, args={"path": path})


def extract_ir_request(path: str, output_dir: str) -> IPCRequest:
    return IPCRequest(
        command=CMD_EXTRACT_IR, args={"path": path, "output_dir": output_dir}
    )


def emit_native_request(ir_path: str, output_dir: str) -> IPCRequest:
    return IPCRequest(
        command=CMD_EMIT_NATIVE, args={"ir_path": ir_path, "output_dir": output_dir}
    )


def engine_spec_request() -> IPCRequest:
    return IPCRequest(command=CMD_ENGINE_SPEC)


# ---------------------------------------------------------------------------
# Result parsers
# ---------------------------------------------------------------------------

_R = TypeVar("_R", bound=_Result)


def _parse_result(response: IPCResponse, model: type[_R], command: str) -> _R:
    """Re-encode ``response.result`` and decode it as *model*.

    The JSON round trip is what rejects wrong field types and values that
    could never have crossed the wire.
    """
    if response.status == STATUS_ERROR:
        raise PluginResponseError(
            f"plugin error: {response.error}",
            context={"command": command},
        )

    try:
        data = json.dumps({} if response.result is None else response.result)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(
            f"failed to re-encode {command} result: {exc}",
            context={"command": command},
        ) from exc

    try:
        return model.model_validate_json(data)
    except ValidationError as exc:
        raise ProtocolError(
            f"failed to parse {command} result: {exc}",
            context={"command": command},
        ) from exc


def parse_detect_result(response: IPCResponse) -> DetectResult:
    return _parse_result(response, DetectResult, CMD_DETECT)


def parse_ingest_result(response: IPCResponse) -> IngestResult:
    return _parse_result(response, IngestResult, CMD_INGEST)


def parse_enumerate_result(response: IPCResponse) -> EnumerateResult:
    return _parse_result(response, EnumerateResult, CMD_ENUMERATE)


def parse_engine_spec_result(response: IPCResponse) -> EngineSpecResult:
    return _parse_result(response, EngineSpecResult, CMD_ENGINE_SPEC)


def parse_extract_ir_result(response: IPCResponse) -> ExtractIRResult:
    return _parse_result(response, ExtractIRResult, CMD_EXTRACT_IR)


def parse_emit_native_result(response: IPCResponse) -> EmitNativeResult:
    return _parse_result(response, EmitNativeResult, CMD_EMIT_NATIVE)
