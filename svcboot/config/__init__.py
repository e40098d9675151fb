"""
Configuration loading for svcboot services.

Configuration values are resolved using the following precedence:

1. Explicit overrides passed to `load_config`
2. Environment variables (e.g., SVCBOOT_PORT)
3. `svcboot.toml` if present in the working directory
4. Built-in defaults

Example `svcboot.toml`:

    [server]
    host = "127.0.0.1"
    port = 9100
    shutdown_timeout = 5.0

    [logging]
    level = "INFO"
    format = "json"
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import tomllib
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from svcboot.lifecycle.manager import DEFAULT_SHUTDOWN_TIMEOUT

__all__ = [
    "ConfigError",
    "LoggingConfig",
    "ServerConfig",
    "SvcbootConfig",
    "load_config",
]


DEFAULT_CONFIG_FILE = Path("svcboot.toml")
DEFAULT_PORT = 8080


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or validated."""


class ServerConfig(BaseModel):
    """HTTP server and shutdown settings."""

    host: str = Field("0.0.0.0", description="Interface to bind", min_length=1)
    port: int = Field(DEFAULT_PORT, description="Listening port (0 for ephemeral)", ge=0, le=65535)
    shutdown_timeout: float = Field(
        DEFAULT_SHUTDOWN_TIMEOUT,
        description="Seconds allowed for graceful shutdown",
        gt=0,
    )
    surface_start_errors: bool = Field(
        False,
        description="Raise on listener start failure instead of only logging it",
    )
    access_log: bool = Field(False, description="Emit uvicorn access log lines")


class LoggingConfig(BaseModel):
    """Structured logging settings."""

    level: str = Field("INFO", description="Log level name")
    format: Literal["json", "console"] = Field("json", description="Log renderer")
    file: Optional[Path] = Field(None, description="Optional rotating log file")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> str:
        normalized = str(value).upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return normalized

    @field_validator("file", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Optional[Path]:
        if value in (None, ""):
            return None
        return Path(value) if not isinstance(value, Path) else value


class SvcbootConfig(BaseModel):
    """Top-level configuration object."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


_ENV_VARS = {
    ("server", "host"): "SVCBOOT_HOST",
    ("server", "port"): "SVCBOOT_PORT",
    ("server", "shutdown_timeout"): "SVCBOOT_SHUTDOWN_TIMEOUT",
    ("server", "surface_start_errors"): "SVCBOOT_SURFACE_START_ERRORS",
    ("server", "access_log"): "SVCBOOT_ACCESS_LOG",
    ("logging", "level"): "SVCBOOT_LOG_LEVEL",
    ("logging", "format"): "SVCBOOT_LOG_FORMAT",
    ("logging", "file"): "SVCBOOT_LOG_FILE",
}

_BOOL_FIELDS = {("server", "surface_start_errors"), ("server", "access_log")}


def load_config(
    config_path: Optional[Path | str] = None,
    **overrides: Any,
) -> SvcbootConfig:
    """
    Load configuration from overrides/environment/file/defaults.

    Args:
        config_path: Optional explicit path to a `svcboot.toml` file.
        **overrides: Field values that win over every other source, keyed by
            field name (``port``, ``log_level``...). ``None`` values are ignored.

    Returns:
        SvcbootConfig populated with the resolved values.

    Raises:
        ConfigError: if the config path does not exist, parsing fails, or a
            resolved value is invalid.
    """

    raw_data = _load_toml_data(config_path)
    sections: Dict[str, Dict[str, Any]] = {
        "server": dict(raw_data.get("server") or {}),
        "logging": dict(raw_data.get("logging") or {}),
    }

    for (section, key), env_var in _ENV_VARS.items():
        env_value = os.getenv(env_var)
        if env_value is None:
            continue
        if (section, key) in _BOOL_FIELDS:
            sections[section][key] = _parse_bool(env_var, env_value)
        else:
            sections[section][key] = env_value

    for name, value in overrides.items():
        if value is None:
            continue
        section, key = _override_target(name)
        sections[section][key] = value

    try:
        return SvcbootConfig(
            server=ServerConfig(**sections["server"]),
            logging=LoggingConfig(**sections["logging"]),
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _override_target(name: str) -> tuple[str, str]:
    """Map an override keyword to its (section, field) pair."""

    if name in ServerConfig.model_fields:
        return "server", name
    if name.startswith("log_") and name[4:] in LoggingConfig.model_fields:
        return "logging", name[4:]
    raise ConfigError(f"Unknown configuration override: {name}")


def _load_toml_data(config_path: Optional[Path | str]) -> Dict[str, Any]:
    """Load data from a TOML file if one can be resolved."""

    resolved = _resolve_config_path(config_path)
    if resolved is None:
        return {}

    if not resolved.exists():
        raise ConfigError(f"Configuration file not found: {resolved}")

    try:
        with resolved.open("rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Cannot parse {resolved}: {exc}") from exc


def _resolve_config_path(config_path: Optional[Path | str]) -> Optional[Path]:
    """Resolve configuration path with environment fallback."""

    if config_path:
        return Path(config_path)

    env_path = os.getenv("SVCBOOT_CONFIG_FILE")
    if env_path:
        return Path(env_path)

    return DEFAULT_CONFIG_FILE if DEFAULT_CONFIG_FILE.exists() else None


def _parse_bool(env_var: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"Invalid boolean for {env_var}: {value}")
