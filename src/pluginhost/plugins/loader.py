"""Plugin loader for pluginhost.

The loader owns the table of resolvable plugins.  It is seeded from the
embedded registry when constructed and can be extended from plugin
directories; an external plugin replaces an embedded one with the same id.
Every entry has passed manifest validation and host-version gating, and
incompatible plugins are skipped with a warning rather than failing the load.

Shipped in this module
----------------------
- PluginLoader   — discovers, gates and looks up plugins
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from pluginhost.context import HostContext, get_default_context
from pluginhost.plugins.discovery import EMBEDDED_PATH, Plugin, discover_plugins
from pluginhost.schema.errors import IncompatibleVersionError, PluginNotFoundError

logger = logging.getLogger(__name__)


class PluginLoader:
    """Discovers and holds plugins for lookup by ``plugin_id``.

    Parameters
    ----------
    context:
        Host context supplying the embedded registry, the external-plugin
        flag and the host version.  Defaults to the process-wide context.

    Examples
    --------
    >>> loader = PluginLoader()
    >>> loader.load_from_directory("plugins")  # no-op unless external plugins are enabled
    []
    """

    def __init__(self, context: HostContext | None = None) -> None:
        self._context = context if context is not None else get_default_context()
        self._lock = threading.Lock()
        self._plugins: dict[str, Plugin] = {}
        self._skipped: dict[str, str] = {}

        for embedded in self._context.embedded.list():
            manifest = embedded.manifest
            if manifest is None:
                continue
            self._plugins[manifest.plugin_id] = Plugin(manifest=manifest, path=EMBEDDED_PATH)
            logger.info(
                "Loaded plugin %r version=%s kind=%s source=embedded",
                manifest.plugin_id,
                manifest.version,
                manifest.kind,
            )

    @property
    def context(self) -> HostContext:
        return self._context

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_from_directory(self, directory: str | Path) -> list[str]:
        """Load external plugins from *directory* if external plugins are enabled.

        Returns
        -------
        list[str]
            Ids of the plugins inserted.  Empty (and nothing is scanned)
            when external plugins are disabled.

        Raises
        ------
        PluginIOError
            If *directory* exists but cannot be read.
        """
        if not self._context.external_plugins_enabled:
            logger.debug("External plugins disabled; not scanning %s.", directory)
            return []
        return self.load_from_directory_unconditional(directory)

    def load_from_directory_unconditional(self, directory: str | Path) -> list[str]:
        """Load external plugins from *directory* regardless of the enable flag."""
        loaded: list[str] = []
        for plugin in discover_plugins(directory):
            plugin_id = plugin.manifest.plugin_id
            try:
                plugin.check_compatibility(self._context.host_version)
            except IncompatibleVersionError as exc:
                logger.warning("Skipping incompatible plugin %s: %s", plugin_id, exc)
                with self._lock:
                    self._skipped[plugin_id] = str(exc)
                continue

            with self._lock:
                self._plugins[plugin_id] = plugin
                self._skipped.pop(plugin_id, None)
            loaded.append(plugin_id)
            logger.info(
                "Loaded plugin %r version=%s kind=%s source=external path=%s",
                plugin_id,
                plugin.manifest.version,
                plugin.manifest.kind,
                plugin.path,
            )
        return loaded

    def load_from_directories(self, directories: Iterable[str | Path]) -> list[str]:
        """Call :meth:`load_from_directory` for each of *directories* in order."""
        loaded: list[str] = []
        for directory in directories:
            loaded.extend(self.load_from_directory(directory))
        return loaded

    def add(self, plugin: Plugin) -> None:
        """Insert *plugin* directly, bypassing the enable flag."""
        with self._lock:
            self._plugins[plugin.manifest.plugin_id] = plugin
            self._skipped.pop(plugin.manifest.plugin_id, None)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, plugin_id: str) -> Plugin:
        """Return the plugin registered under *plugin_id*.

        Raises
        ------
        PluginNotFoundError
            If no such plugin is loaded.  When the plugin was skipped at
            load time the message names that stage and its reason.
        """
        with self._lock:
            plugin = self._plugins.get(plugin_id)
            skipped = self._skipped.get(plugin_id)
        if plugin is not None:
            return plugin
        if skipped is not None:
            raise PluginNotFoundError(
                plugin_id,
                f"plugin {plugin_id} was skipped at load time: {skipped}",
                context={"stage": "load", "reason": skipped},
            )
        raise PluginNotFoundError(plugin_id)

    def list_plugins(self) -> list[Plugin]:
        """Return a snapshot of all loaded plugins, sorted by id."""
        with self._lock:
            return [self._plugins[key] for key in sorted(self._plugins)]

    def list_by_kind(self, kind: str) -> list[Plugin]:
        return [p for p in self.list_plugins() if p.manifest.kind == kind]

    def list_ir_capable(self) -> list[Plugin]:
        return [p for p in self.list_plugins() if p.supports_ir]

    def skipped(self) -> dict[str, str]:
        """Return ``{plugin_id: reason}`` for plugins rejected at load time."""
        with self._lock:
            return dict(self._skipped)

    def __len__(self) -> int:
        with self._lock:
            return len(self._plugins)

    def __contains__(self, plugin_id: object) -> bool:
        with self._lock:
            return plugin_id in self._plugins

    def __repr__(self) -> str:
        return f"PluginLoader(plugins={[p.plugin_id for p in self.list_plugins()]})"
