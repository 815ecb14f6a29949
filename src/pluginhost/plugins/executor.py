"""Plugin execution for pluginhost.

The executor decides, per call, whether a request runs in-process or in a
subprocess, and normalises both into an :class:`IPCResponse`.  In priority
order:

1. External plugins enabled and the entrypoint exists: run it externally.
2. Otherwise ask the embedded registry.  If the embedded handler declines
   ("requires external plugin", "not implemented", "not supported", or an
   :class:`ExternalPluginRequiredError`) and the entrypoint exists, run it
   externally even when external plugins are disabled.
3. No embedded handler at all and the entrypoint exists: run it externally.
4. Otherwise raise :class:`PluginUnavailableError`.

External execution writes one JSON request to the entrypoint's stdin, reads
one JSON response from its stdout and kills the whole process group if the
deadline passes.

Shipped in this module
----------------------
- DEFAULT_TIMEOUT           — 60 second default deadline
- is_not_implemented_error  — classify embedded "please defer" messages
- PluginExecutor            — the embedded/external decision procedure
- execute_plugin            — one-shot helper over the default context
"""
from __future__ import annotations

import contextlib
import logging
import os
import signal
import subprocess
from pathlib import Path

from pluginhost.context import HostContext, get_default_context
from pluginhost.plugins.discovery import Plugin
from pluginhost.plugins.security import secure_entrypoint_path
from pluginhost.schema.errors import (
    PluginExecutionError,
    PluginIOError,
    PluginTimeoutError,
    PluginUnavailableError,
)
from pluginhost.schema.ipc import IPCRequest, IPCResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0

_NOT_IMPLEMENTED_MARKERS: tuple[str, ...] = (
    "requires external plugin",
    "not implemented",
    "not supported",
)

_POSIX = os.name == "posix"


def is_not_implemented_error(message: str) -> bool:
    """Whether an embedded error *message* asks for the external plugin."""
    return any(marker in message for marker in _NOT_IMPLEMENTED_MARKERS)


def _defers_to_external(response: IPCResponse) -> bool:
    return response.status == "error" and (
        response.deferred or is_not_implemented_error(response.error)
    )


def _kill(process: subprocess.Popen[bytes]) -> None:
    """Kill *process* and, on POSIX, every process in its group.  Idempotent."""
    if _POSIX:
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(process.pid, signal.SIGKILL)
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    process.wait()


class PluginExecutor:
    """Runs plugin requests in-process or as subprocesses.

    Parameters
    ----------
    context:
        Host context supplying the embedded registry, the external-plugin
        flag, the default timeout and the security configuration.
        Defaults to the process-wide context.
    """

    def __init__(self, context: HostContext | None = None) -> None:
        self._context = context if context is not None else get_default_context()

    def execute(
        self,
        plugin: Plugin,
        request: IPCRequest,
        timeout: float | None = None,
    ) -> IPCResponse:
        """Execute *request* against *plugin*.

        Parameters
        ----------
        plugin:
            The resolved plugin.
        request:
            The request to run.
        timeout:
            External execution deadline in seconds; defaults to the
            context's ``default_timeout``.

        Returns
        -------
        IPCResponse
            The embedded or external response.  An ``error`` status from
            the plugin is returned, not raised.

        Raises
        ------
        PluginUnavailableError
            Neither an embedded handler nor an external binary exists.
        PluginTimeoutError, PluginExecutionError, PluginIOError, ProtocolError
            External execution failed.
        """
        deadline = self._context.default_timeout if timeout is None else timeout
        plugin_id = plugin.manifest.plugin_id
        entrypoint = self._external_binary(plugin)

        if entrypoint is not None and self._context.external_plugins_enabled:
            return self._execute_external(plugin, request, entrypoint, deadline)

        response = self._context.embedded.execute(plugin_id, request)
        if response is not None:
            if entrypoint is not None and _defers_to_external(response):
                logger.info(
                    "Embedded plugin %r deferred %r (%s); using external binary.",
                    plugin_id,
                    request.command,
                    response.error,
                )
                return self._execute_external(plugin, request, entrypoint, deadline)
            return response

        if entrypoint is not None:
            logger.debug("No embedded handler for %r; using external binary.", plugin_id)
            return self._execute_external(plugin, request, entrypoint, deadline)

        raise PluginUnavailableError(
            f"plugin {plugin_id} is not available as an embedded plugin "
            "and no external binary found",
            context={"plugin_id": plugin_id, "command": request.command},
        )

    # ------------------------------------------------------------------
    # External execution
    # ------------------------------------------------------------------

    def _external_binary(self, plugin: Plugin) -> Path | None:
        if plugin.is_embedded or not plugin.manifest.entrypoint:
            return None
        entrypoint = plugin.entrypoint_path()
        return entrypoint if entrypoint.exists() else None

    def _execute_external(
        self,
        plugin: Plugin,
        request: IPCRequest,
        entrypoint: Path,
        timeout: float,
    ) -> IPCResponse:
        plugin_id = plugin.manifest.plugin_id
        context: dict[str, object] = {
            "plugin_id": plugin_id,
            "command": request.command,
            "entrypoint": str(entrypoint),
        }
        if self._context.verify_entrypoints:
            entrypoint = secure_entrypoint_path(plugin, self._context.security)

        payload = request.to_wire()
        logger.debug("Running %s for %r command %r.", entrypoint, plugin_id, request.command)

        try:
            process = subprocess.Popen(
                [str(entrypoint)],
                cwd=plugin.path,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=_POSIX,
            )
        except OSError as exc:
            raise PluginIOError(
                f"failed to start plugin {plugin_id}: {exc}", context=context
            ) from exc

        with process:
            try:
                stdout, stderr = process.communicate(payload, timeout=timeout)
            except subprocess.TimeoutExpired as exc:
                _kill(process)
                raise PluginTimeoutError(
                    f"plugin {plugin_id} execution timed out after {timeout}s",
                    timeout=timeout,
                    context=context,
                ) from exc
            except BaseException:
                _kill(process)
                raise

        stderr_text = stderr.decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise PluginExecutionError(
                f"plugin {plugin_id} execution failed with exit status "
                f"{process.returncode} (stderr: {stderr_text})",
                returncode=process.returncode,
                stderr=stderr_text,
                context=context,
            )

        return IPCResponse.from_wire(stdout)


def execute_plugin(
    plugin: Plugin,
    request: IPCRequest,
    timeout: float | None = None,
    context: HostContext | None = None,
) -> IPCResponse:
    """Execute *request* against *plugin* with a one-off :class:`PluginExecutor`.

    *timeout* defaults to the context's ``default_timeout``.
    """
    return PluginExecutor(context).execute(plugin, request, timeout)
