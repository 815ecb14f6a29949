"""Plugin subsystem for pluginhost.

Provides manifest discovery, the embedded plugin registry, version gating,
security validation, the plugin loader and the execution engine.

Example — running a discovered plugin
-------------------------------------
.. code-block:: python

    from pluginhost.context import enable_external_plugins
    from pluginhost.plugins import PluginExecutor, PluginLoader
    from pluginhost.schema.ipc import detect_request, parse_detect_result

    enable_external_plugins()
    loader = PluginLoader()
    loader.load_from_directory("plugins")
    plugin = loader.get("format.usfm")
    response = PluginExecutor().execute(plugin, detect_request("book.usfm"))
    print(parse_detect_result(response).detected)
"""
from __future__ import annotations

# Import order matters: loader and executor depend on pluginhost.context,
# which depends on the modules above them.
from pluginhost.plugins.version import (
    HOST_VERSION,
    Constraint,
    ConstraintSet,
    Version,
    check_plugin_compatibility,
    parse_constraint,
    parse_constraint_set,
    parse_version,
)
from pluginhost.plugins.discovery import (
    EMBEDDED_PATH,
    Plugin,
    discover_plugins,
    is_kind_directory,
    parse_plugin_manifest,
    plugin_kinds,
    register_plugin_kind,
)
from pluginhost.plugins.embedded import (
    EmbeddedPlugin,
    EmbeddedRegistry,
    FormatHandler,
    ToolHandler,
    clear_embedded_registry,
    default_registry,
    execute_embedded_plugin,
    get_embedded_plugin,
    has_embedded_plugin,
    list_embedded_plugins,
    register_embedded_plugin,
)
from pluginhost.plugins.security import (
    SecurityConfig,
    secure_entrypoint_path,
    validate_manifest_security,
    validate_plugin_directory,
    validate_plugin_path,
)
from pluginhost.plugins.loader import PluginLoader
from pluginhost.plugins.executor import (
    DEFAULT_TIMEOUT,
    PluginExecutor,
    execute_plugin,
    is_not_implemented_error,
)

__all__ = [
    # version
    "HOST_VERSION",
    "Version",
    "Constraint",
    "ConstraintSet",
    "parse_version",
    "parse_constraint",
    "parse_constraint_set",
    "check_plugin_compatibility",
    # discovery
    "EMBEDDED_PATH",
    "Plugin",
    "discover_plugins",
    "parse_plugin_manifest",
    "plugin_kinds",
    "register_plugin_kind",
    "is_kind_directory",
    # embedded
    "FormatHandler",
    "ToolHandler",
    "EmbeddedPlugin",
    "EmbeddedRegistry",
    "default_registry",
    "register_embedded_plugin",
    "get_embedded_plugin",
    "has_embedded_plugin",
    "list_embedded_plugins",
    "clear_embedded_registry",
    "execute_embedded_plugin",
    # security
    "SecurityConfig",
    "validate_plugin_path",
    "validate_plugin_directory",
    "validate_manifest_security",
    "secure_entrypoint_path",
    # loader / executor
    "PluginLoader",
    "PluginExecutor",
    "DEFAULT_TIMEOUT",
    "execute_plugin",
    "is_not_implemented_error",
]
