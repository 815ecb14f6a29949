"""CLI entry point for pluginhost.

Invoked as::

    pluginhost [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m pluginhost.cli.main
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pluginhost import __version__
from pluginhost.config.loader import ConfigLoader
from pluginhost.context import HostContext
from pluginhost.convenience import PluginHost
from pluginhost.plugins.discovery import load_plugin_from_dir
from pluginhost.plugins.security import (
    validate_manifest_security,
    validate_plugin_directory,
    validate_plugin_path,
)
from pluginhost.plugins.version import HOST_VERSION
from pluginhost.schema.config import HostConfig
from pluginhost.schema.errors import ConfigurationError, PluginHostError
from pluginhost.schema.manifest import MANIFEST_FILENAME

console = Console()
error_console = Console(stderr=True, style="bold red")


def _configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(
        level=numeric,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_config(ctx: click.Context, config: str | None) -> HostConfig:
    loader = ConfigLoader()
    try:
        cfg = loader.load(config) if config else loader.load_auto()
    except ConfigurationError as exc:
        error_console.print(f"Could not load config: {exc}")
        raise SystemExit(1) from exc
    if not ctx.obj.get("verbose"):
        _configure_logging(cfg.log_level)
    return cfg


def _with_plugin_dirs(cfg: HostConfig, plugin_dirs: tuple[str, ...], external: bool) -> HostConfig:
    return cfg.merge(
        HostConfig(plugin_dirs=list(plugin_dirs), external_plugins_enabled=external)
    )


_config_option = click.option(
    "--config",
    "-c",
    default=None,
    help="Path to pluginhost config file (YAML or JSON).",
)
_plugin_dir_option = click.option(
    "--plugin-dir",
    "-p",
    "plugin_dirs",
    multiple=True,
    help="Directory to scan for plugins (repeatable).",
)
_external_option = click.option(
    "--external",
    is_flag=True,
    help="Enable external (filesystem) plugins.",
)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="pluginhost")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Plugin host: discovery, trust checks and JSON-over-stdio execution"""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        _configure_logging("DEBUG")


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    console.print(f"[bold]pluginhost[/bold] v{__version__}")
    console.print(f"Host version {HOST_VERSION}")
    console.print(f"Python {sys.version}")


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


@cli.command(name="init")
@click.option(
    "--directory",
    "-d",
    default=".",
    show_default=True,
    help="Directory in which to create the config file.",
)
def init_command(directory: str) -> None:
    """Initialise a pluginhost config file in DIRECTORY."""
    target_dir = Path(directory).resolve()
    config_path = target_dir / "pluginhost.yaml"

    if config_path.exists():
        console.print(
            f"[yellow]Config already exists at {config_path}. Skipping.[/yellow]"
        )
        return

    default_yaml = """\
# pluginhost configuration
external_plugins_enabled: false
plugin_dirs:
  - plugins
default_timeout: 60
allowed_plugin_dirs: []
require_manifest: true
restrict_to_known_kinds: false
verify_entrypoints: false
extra_kinds: []
log_level: WARNING
"""
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        config_path.write_text(default_yaml, encoding="utf-8")
        console.print(f"[green]Created pluginhost config at {config_path}[/green]")
    except OSError as exc:
        error_console.print(f"Failed to create config: {exc}")
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


@cli.command(name="list")
@_config_option
@_plugin_dir_option
@_external_option
@click.option("--kind", default=None, help="Only show plugins of this kind.")
@click.option("--ir-only", is_flag=True, help="Only show plugins with IR support.")
@click.option(
    "--format",
    "output_format",
    default="table",
    type=click.Choice(["table", "json"]),
    show_default=True,
    help="Output format.",
)
@click.pass_context
def list_command(
    ctx: click.Context,
    config: str | None,
    plugin_dirs: tuple[str, ...],
    external: bool,
    kind: str | None,
    ir_only: bool,
    output_format: str,
) -> None:
    """List embedded and discovered plugins."""
    cfg = _with_plugin_dirs(_load_config(ctx, config), plugin_dirs, external)
    try:
        host = PluginHost(cfg)
    except PluginHostError as exc:
        error_console.print(f"Could not load plugins: {exc}")
        raise SystemExit(1) from exc

    plugins = host.list()
    if kind:
        plugins = [p for p in plugins if p.has_kind(kind)]
    if ir_only:
        plugins = [p for p in plugins if p.supports_ir]

    if output_format == "json":
        rows = [
            {**p.manifest.model_dump(mode="json"), "path": p.path} for p in plugins
        ]
        console.print_json(json.dumps(rows))
        return

    if not plugins:
        console.print("[dim](No plugins found)[/dim]")
    else:
        table = Table(title="Plugins", header_style="bold cyan")
        table.add_column("plugin_id")
        table.add_column("version")
        table.add_column("kind")
        table.add_column("source")
        table.add_column("IR")
        for plugin in plugins:
            table.add_row(
                plugin.plugin_id,
                plugin.manifest.version,
                plugin.manifest.kind,
                "embedded" if plugin.is_embedded else plugin.path,
                "yes" if plugin.supports_ir else "",
            )
        console.print(table)

    for plugin_id, reason in sorted(host.loader.skipped().items()):
        console.print(f"[yellow]Skipped {plugin_id}: {reason}[/yellow]")


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@click.argument("path", type=click.Path(exists=True))
@_config_option
@click.pass_context
def validate_command(ctx: click.Context, path: str, config: str | None) -> None:
    """Validate the plugin at PATH (a plugin directory or its plugin.json)."""
    cfg = _load_config(ctx, config)
    context = HostContext.from_config(cfg)

    target = Path(path)
    plugin_dir = target.parent if target.name == MANIFEST_FILENAME else target

    table = Table(title=f"Validation of {plugin_dir}", header_style="bold cyan")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Message")
    failed = False

    def _record(check: str, error: PluginHostError | None) -> None:
        nonlocal failed
        if error is None:
            table.add_row(check, "[green]ok[/green]", "")
        else:
            failed = True
            table.add_row(check, "[red]failed[/red]", str(error))

    try:
        plugin = load_plugin_from_dir(plugin_dir)
    except PluginHostError as exc:
        _record("manifest", exc)
        console.print(table)
        raise SystemExit(1) from exc
    _record("manifest", None)

    checks = (
        ("manifest security", lambda: validate_manifest_security(plugin.manifest, context.security)),
        ("plugin directory", lambda: validate_plugin_directory(plugin.path, context.security)),
        ("entrypoint", lambda: validate_plugin_path(plugin.entrypoint_path(), context.security)),
        ("host compatibility", lambda: plugin.check_compatibility(context.host_version)),
    )
    for name, check in checks:
        try:
            check()
        except PluginHostError as exc:
            _record(name, exc)
        else:
            _record(name, None)

    console.print(table)
    if failed:
        raise SystemExit(1)
    console.print(f"[green]Plugin {plugin.plugin_id} is valid.[/green]")


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


def _parse_args(pairs: tuple[str, ...]) -> dict[str, str]:
    args: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--arg")
        args[key] = value
    return args


@cli.command(name="run")
@click.argument("plugin_id")
@click.argument("command")
@click.option("--arg", "-a", "arg_pairs", multiple=True, metavar="KEY=VALUE", help="Request argument (repeatable).")
@click.option("--timeout", "-t", type=float, default=None, help="Execution deadline in seconds.")
@_config_option
@_plugin_dir_option
@_external_option
@click.pass_context
def run_command(
    ctx: click.Context,
    plugin_id: str,
    command: str,
    arg_pairs: tuple[str, ...],
    timeout: float | None,
    config: str | None,
    plugin_dirs: tuple[str, ...],
    external: bool,
) -> None:
    """Run COMMAND against PLUGIN_ID and print the JSON response."""
    args = _parse_args(arg_pairs)
    cfg = _with_plugin_dirs(_load_config(ctx, config), plugin_dirs, external)

    try:
        host = PluginHost(cfg)
        response = host.run(plugin_id, command, args or None, timeout)
    except PluginHostError as exc:
        error_console.print(f"Execution failed: {exc}")
        raise SystemExit(1) from exc

    console.print_json(response.to_wire().decode("utf-8"))
    if not response.is_ok:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@cli.command(name="config")
@click.option("--show", is_flag=True, help="Show the current configuration.")
@click.option("--validate", is_flag=True, help="Validate the config file.")
@_config_option
@click.pass_context
def config_command(
    ctx: click.Context,
    show: bool,
    validate: bool,
    config: str | None,
) -> None:
    """Manage pluginhost configuration."""
    cfg = _load_config(ctx, config)

    if show or not validate:
        console.print_json(cfg.model_dump_json(indent=2))

    if validate:
        from pluginhost.config.schema import validate_config

        try:
            validate_config(cfg.model_dump())
        except ConfigurationError as exc:
            error_console.print(f"Validation failed: {exc}")
            raise SystemExit(1) from exc
        console.print("[green]Configuration is valid.[/green]")


if __name__ == "__main__":
    cli()
