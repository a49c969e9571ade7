"""Server configuration management.

Settings come from ~/.woo-mcp/config.yaml, environment variables and CLI
flags. Values are validated here, before they reach the bridge or the
HTTP surface.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .bridge.gateway import DEFAULT_TIMEOUT_MS
from .shared.paths import CONFIG_FILE
from .tools.local import BLOCKED_COMMANDS, DEFAULT_EXEC_TIMEOUT_MS

# Default values
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_LOG_LEVEL = "info"

# Environment variable mappings
ENV_VARS = {
    "host": "HOST",
    "port": "PORT",
    "auth_token": "MCP_AUTH_TOKEN",
    "bridge_key": "BRIDGE_KEY",
    "bridge_timeout_ms": "BRIDGE_TIMEOUT_MS",
    "exec_timeout_ms": "EXEC_TIMEOUT_MS",
    "log_level": "LOG_LEVEL",
}

# Keys never printed in clear
SECRET_KEYS = ("auth_token", "bridge_key")

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class ConfigError(ValueError):
    """Invalid configuration value."""


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    auth_token: str = ""
    bridge_key: str = ""
    bridge_timeout_ms: int = DEFAULT_TIMEOUT_MS
    exec_timeout_ms: int = DEFAULT_EXEC_TIMEOUT_MS
    log_level: str = DEFAULT_LOG_LEVEL
    json_logs: bool = False
    blocked_commands: list[str] = field(default_factory=lambda: list(BLOCKED_COMMANDS))

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict, repr=False)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def set(self, key: str, value: Any, source: str) -> None:
        """Set a value with type coercion and record its source.

        Raises:
            ConfigError: If key is unknown or value cannot be coerced
        """
        if key not in _FIELD_TYPES:
            raise ConfigError(f"Unknown config key: {key}")
        setattr(self, key, _coerce(key, value))
        self._sources[key] = source

    def validate(self) -> None:
        """Check values at the boundary.

        Raises:
            ConfigError: On the first invalid value
        """
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port must be between 0 and 65535, got {self.port}")
        if self.bridge_timeout_ms <= 0:
            raise ConfigError("bridge_timeout_ms must be positive")
        if self.exec_timeout_ms <= 0:
            raise ConfigError("exec_timeout_ms must be positive")
        if self.log_level.lower() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")

    def to_dict(self, mask_secrets: bool = True) -> dict[str, Any]:
        """Values keyed by name, secrets masked unless asked otherwise."""
        values = {name: getattr(self, name) for name in _FIELD_TYPES}
        if mask_secrets:
            for key in SECRET_KEYS:
                if values[key]:
                    values[key] = "****"
        return values


_FIELD_TYPES: dict[str, Any] = {f.name: f.type for f in fields(ServerConfig) if not f.name.startswith("_")}


def _coerce(key: str, value: Any) -> Any:
    expected = _FIELD_TYPES[key]
    try:
        if expected is int or expected == "int":
            return int(value)
        if expected is bool or expected == "bool":
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            return bool(value)
        if key == "blocked_commands":
            if isinstance(value, str):
                return [item.strip() for item in value.split(",") if item.strip()]
            return [str(item) for item in value]
        return "" if value is None else str(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {key}: {value!r}") from e


def get_config_path() -> Path:
    """Get the server config file path.

    Returns:
        Path to ~/.woo-mcp/config.yaml
    """
    return CONFIG_FILE


def load_config(config_path: str | Path | None = None, overrides: dict[str, Any] | None = None) -> ServerConfig:
    """Load server configuration.

    Precedence (highest to lowest):
    1. CLI overrides (None values are ignored)
    2. Environment variables
    3. Config file (~/.woo-mcp/config.yaml or config_path)
    4. Defaults

    Raises:
        ConfigError: If the config file is unreadable or a value is invalid
    """
    config = ServerConfig()

    path = Path(config_path).expanduser() if config_path else get_config_path()
    if config_path and not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    if path.exists():
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        for key, value in file_config.items():
            config.set(key, value, "config file")

    for key, env_var in ENV_VARS.items():
        if os.environ.get(env_var):
            config.set(key, os.environ[env_var], "environment")

    for key, value in (overrides or {}).items():
        if value is not None:
            config.set(key, value, "cli")

    config.validate()
    return config
