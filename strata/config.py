"""
Strata Config - Static connection configuration.

Maps a connection name to the engine type serving it and the parameters
passed to that engine's ``setup()``::

    databases:
      default:
        engine: relational
        parameters:
          dsn: sqlite:///app.sqlite3
          transaction_autocommit: true
      events:
        engine: document
        parameters:
          uri: mongodb://localhost:27017

Sources, merged in this order (later overrides earlier):
1. Config files (YAML or JSON; a top-level ``databases`` key is optional)
2. ``.env`` file entries with the ``STRATA_DB__`` prefix
3. Environment variables with the ``STRATA_DB__`` prefix
4. Manual overrides

Environment keys are ``STRATA_DB__<CONNECTION>__<KEY>[__<SUBKEY>...]``.
``ENGINE`` selects the engine type; every other key lands in parameters:

    STRATA_DB__DEFAULT__ENGINE=relational
    STRATA_DB__DEFAULT__DSN=sqlite:///app.sqlite3
    STRATA_DB__DEFAULT__OPTIONS__TIMEOUT=5
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from glob import glob
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

import yaml
from dotenv import dotenv_values

from .faults import ConfigurationFault

logger = logging.getLogger("strata.config")

__all__ = ["DatabaseConfig", "ConnectionConfig", "ENV_PREFIX"]

ENV_PREFIX = "STRATA_DB__"

# Values of these keys are never coerced to bool / number
_VERBATIM_KEYS = frozenset({"engine", "dsn", "uri", "username", "password"})


@dataclass(frozen=True)
class ConnectionConfig:
    """One configured connection."""

    name: str
    engine: str
    parameters: Dict[str, Any] = field(default_factory=dict)


class DatabaseConfig:
    """
    Connection name → ``ConnectionConfig`` mapping.

    Read once, when the ``Database`` registry is built; the registry only
    consults it when neither a live connection nor explicit engine
    parameters satisfy a ``get()`` call.
    """

    def __init__(self, connections: Optional[Mapping[str, Any]] = None, env_prefix: str = ENV_PREFIX):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}
        if connections:
            self._merge_dict(self.config_data, self._unwrap(connections, "<dict>"))
        self._connections: Dict[str, ConnectionConfig] = {}
        self._build()

    # ── Construction ─────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, connections: Mapping[str, Any]) -> "DatabaseConfig":
        return cls(connections)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "DatabaseConfig":
        """Load a single YAML or JSON file. A missing file is a ``ConfigurationFault``."""
        config = cls()
        path = Path(path)
        if not path.exists():
            raise ConfigurationFault(f"Could not load database config. File '{path}' does not exist.")
        config._load_file(path)
        config._build()
        return config

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = ENV_PREFIX,
        env_file: Optional[str] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        use_environ: bool = True,
    ) -> "DatabaseConfig":
        """
        Load configuration from every source, see the module docstring for
        the merge order.

        Args:
            paths: Config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to a .env file
            overrides: Manual overrides (highest precedence)
            use_environ: Read ``os.environ`` (disable for isolated tests)
        """
        config = cls(env_prefix=env_prefix)

        for pattern in paths or []:
            for path_str in sorted(glob(pattern)):
                config._load_file(Path(path_str))

        if env_file:
            config._load_env_file(env_file)

        if use_environ:
            config._load_from_env(os.environ)

        if overrides:
            config._merge_dict(config.config_data, config._unwrap(overrides, "<overrides>"))

        config._build()
        return config

    # ── Sources ──────────────────────────────────────────────────────

    def _load_file(self, path: Path) -> None:
        if path.suffix == ".json":
            self._load_json_file(path)
        elif path.suffix in (".yaml", ".yml"):
            self._load_yaml_file(path)
        else:
            raise ConfigurationFault(f"Could not load database config. Unsupported file type '{path.suffix}'.")

    def _load_json_file(self, path: Path) -> None:
        """Load config from JSON file."""
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigurationFault(f"Could not load database config '{path}': {exc}") from exc
        if data:
            self._merge_dict(self.config_data, self._unwrap(data, str(path)))
        logger.debug(f"Loaded database config from {path}")

    def _load_yaml_file(self, path: Path) -> None:
        """Load config from YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationFault(f"Could not load database config '{path}': {exc}") from exc
        if data:
            self._merge_dict(self.config_data, self._unwrap(data, str(path)))
        logger.debug(f"Loaded database config from {path}")

    def _load_env_file(self, path: str) -> None:
        """Load ``STRATA_DB__`` entries from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return
        self._load_from_env(dotenv_values(env_path))

    def _load_from_env(self, environ: Mapping[str, Optional[str]]) -> None:
        for key, value in environ.items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str) -> None:
        """Convert STRATA_DB__DEFAULT__OPTIONS__TIMEOUT to nested dict."""
        parts = [part for part in key[len(self.env_prefix):].lower().split("__") if part]
        if len(parts) < 2:
            raise ConfigurationFault(f"Could not load database config. Malformed variable '{key}'.")

        connection, keys = parts[0], parts[1:]
        entry = self.config_data.setdefault(connection, {})
        if keys == ["engine"]:
            entry["engine"] = value
            return

        current = entry.setdefault("parameters", {})
        for part in keys[:-1]:
            current = current.setdefault(part, {})
        current[keys[-1]] = value if keys[-1] in _VERBATIM_KEYS else self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        # Boolean
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        # Number
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        # JSON
        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: Mapping[str, Any]) -> None:
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, Mapping):
                self._merge_dict(target[key], value)
            elif isinstance(value, Mapping):
                target[key] = {}
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    @staticmethod
    def _unwrap(data: Any, source: str) -> Mapping[str, Any]:
        if not isinstance(data, Mapping):
            raise ConfigurationFault(f"Could not load database config from {source}. Expected a mapping.")
        inner = data.get("databases", data)
        if not isinstance(inner, Mapping):
            raise ConfigurationFault(f"Could not load database config from {source}. 'databases' must be a mapping.")
        return inner

    # ── Validation ───────────────────────────────────────────────────

    def _build(self) -> None:
        connections: Dict[str, ConnectionConfig] = {}
        for name, entry in self.config_data.items():
            if not isinstance(entry, Mapping):
                raise ConfigurationFault(f"Invalid configuration for connection '{name}'. Expected a mapping.")
            engine = entry.get("engine")
            if not engine or not isinstance(engine, str):
                raise ConfigurationFault(f"Invalid configuration for connection '{name}'. No engine provided.")
            parameters = entry.get("parameters", {})
            if not isinstance(parameters, Mapping):
                raise ConfigurationFault(f"Invalid configuration for connection '{name}'. Parameters must be a mapping.")
            connections[str(name)] = ConnectionConfig(
                name=str(name), engine=engine.lower(), parameters=dict(parameters)
            )
        self._connections = connections

    # ── Access ───────────────────────────────────────────────────────

    def get(self, name: str) -> Optional[ConnectionConfig]:
        return self._connections.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._connections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: {"engine": conn.engine, "parameters": dict(conn.parameters)}
            for name, conn in self._connections.items()
        }

    def __contains__(self, name: object) -> bool:
        return name in self._connections

    def __iter__(self) -> Iterator[str]:
        return iter(self._connections)

    def __len__(self) -> int:
        return len(self._connections)

    def __repr__(self) -> str:
        return f"<DatabaseConfig connections={self.names!r}>"
