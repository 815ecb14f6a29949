"""Configuration loader for pluginhost.

``ConfigLoader`` reads a ``HostConfig`` from a YAML or JSON file, from
``PLUGINHOST_*`` environment variables, or from whichever well-known config
file it finds first in a directory, with the environment layered on top.

Shipped in this module
----------------------
- ConfigLoader   — file / environment / auto-discovered config loading
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import ValidationError

from pluginhost.config.defaults import DEFAULT_CONFIG
from pluginhost.config.schema import validate_config
from pluginhost.schema.config import HostConfig
from pluginhost.schema.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Searched in order by load_auto(); YAML wins over JSON, visible over hidden.
_AUTO_SEARCH_PATHS: tuple[str, ...] = (
    "pluginhost.yaml",
    "pluginhost.yml",
    "pluginhost.json",
    ".pluginhost.yaml",
    ".pluginhost.yml",
    ".pluginhost.json",
)

_Parser = Callable[[str], Any]

# format label -> (parser, parse error it raises)
_PARSERS: dict[str, tuple[_Parser, type[Exception]]] = {
    "YAML": (yaml.safe_load, yaml.YAMLError),
    "JSON": (json.loads, json.JSONDecodeError),
}


def _format_for(path: Path) -> str:
    return "JSON" if path.suffix == ".json" else "YAML"


class ConfigLoader:
    """Loads ``HostConfig`` from files and the environment.

    Every method returns a validated ``HostConfig``; combine sources with
    ``config.merge(other)``.

    Examples
    --------
    >>> ConfigLoader().load_auto(search_dir="/nonexistent").default_timeout
    60.0
    """

    def load(self, path: str | Path) -> HostConfig:
        """Load *path* as JSON when it ends in ``.json``, otherwise as YAML.

        An empty document yields the defaults.

        Raises
        ------
        ConfigurationError
            If the file is missing or unreadable, does not parse, is not a
            mapping, or fails validation.
        """
        resolved = Path(path)
        return self._load_as(resolved, _format_for(resolved))

    def load_yaml(self, path: str | Path) -> HostConfig:
        """Load *path* as YAML regardless of its suffix."""
        return self._load_as(Path(path), "YAML")

    def load_json(self, path: str | Path) -> HostConfig:
        """Load *path* as JSON regardless of its suffix."""
        return self._load_as(Path(path), "JSON")

    def _load_as(self, path: Path, label: str) -> HostConfig:
        parse, parse_error = _PARSERS[label]
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ConfigurationError(
                f"{label} config file not found: {path}", context={"path": str(path)}
            ) from exc
        except OSError as exc:
            raise ConfigurationError(
                f"Failed to read {label} config at {path}: {exc}",
                context={"path": str(path)},
            ) from exc

        try:
            raw = parse(text)
        except parse_error as exc:
            raise ConfigurationError(
                f"Failed to parse {label} config at {path}: {exc}",
                context={"path": str(path)},
            ) from exc

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"{label} config at {path} must be a mapping, got {type(raw).__name__}",
                context={"path": str(path)},
            )
        logger.debug("Loaded %s config from %s", label, path)
        return validate_config(raw)

    def load_env(self, prefix: str = "PLUGINHOST_") -> HostConfig:
        """Build configuration from environment variables.

        See :meth:`~pluginhost.schema.config.HostConfig.from_env` for the
        variable mapping.

        Raises
        ------
        ConfigurationError
            If a variable holds a value the schema rejects.
        """
        try:
            config = HostConfig.from_env(prefix=prefix)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid environment configuration: {exc}",
                context={"prefix": prefix, "errors": exc.errors()},
            ) from exc
        logger.debug("Loaded config from environment with prefix %r", prefix)
        return config

    def load_auto(
        self,
        search_dir: str | Path | None = None,
        env_prefix: str = "PLUGINHOST_",
    ) -> HostConfig:
        """Load the first usable config file in *search_dir*, then the environment.

        Candidates are tried in ``_AUTO_SEARCH_PATHS`` order; one that fails
        to load is logged and skipped.  Without a usable file the result
        starts from ``DEFAULT_CONFIG``.  Variables starting with
        *env_prefix* are merged on top when any are set.
        """
        base_dir = Path(search_dir) if search_dir is not None else Path.cwd()
        config = self._first_config_file(base_dir)
        if config is None:
            logger.debug("No config file in %s; using DEFAULT_CONFIG.", base_dir)
            config = DEFAULT_CONFIG

        if any(key.startswith(env_prefix) for key in os.environ):
            config = config.merge(self.load_env(prefix=env_prefix))
            logger.debug("Applied environment overlay with prefix %r", env_prefix)
        return config

    def _first_config_file(self, base_dir: Path) -> HostConfig | None:
        for name in _AUTO_SEARCH_PATHS:
            candidate = base_dir / name
            if not candidate.is_file():
                continue
            try:
                config = self.load(candidate)
            except ConfigurationError as exc:
                logger.warning("Skipping config %s: %s", candidate, exc)
                continue
            logger.info("Loaded pluginhost config from %s", candidate)
            return config
        return None
