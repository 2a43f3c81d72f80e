"""
load the relay config from an optional config file, the environment and .env
"""

import json
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import httpx
import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import ConfigError

DEFAULT_LISTEN_ADDR = '127.0.0.1:18888'

# Environment variable -> config field
ENV_MAPPINGS = {
    'SUBRELAY_SUB_URL': 'sub_url',
    'SUBRELAY_PROXY_URL': 'proxy_url',
    'SUBRELAY_LISTEN_ADDR': 'listen_addr',
    'SUBRELAY_VERBOSE_LOG': 'verbose_log',
    'SUBRELAY_FETCH_TIMEOUT': 'fetch_timeout',
    'SUBRELAY_LEGACY_PADDING': 'legacy_padding',
    'LOG_LEVEL': 'log_level',
}


def split_listen_addr(addr: str) -> Tuple[str, int]:
    """Split 'host:port' into its parts. An empty host listens on every interface."""
    host, sep, port = addr.rpartition(':')
    if not sep or not port.isdigit():
        raise ValueError(f"listen address must look like host:port, got {addr!r}")
    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ValueError(f"listen port out of range: {port_number}")
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    return host or '0.0.0.0', port_number


class RelayConfig(BaseModel):
    """Immutable per-process settings, shared read-only by every request."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )

    sub_url: str
    proxy_url: str = ''
    listen_addr: str = DEFAULT_LISTEN_ADDR
    verbose_log: bool = False
    log_level: str = 'INFO'
    fetch_timeout: Optional[float] = 30.0
    legacy_padding: bool = False

    @field_validator('sub_url')
    @classmethod
    def _check_sub_url(cls, value: str) -> str:
        if not value:
            raise ValueError("subscription URL is required")
        try:
            parsed = httpx.URL(value)
        except httpx.InvalidURL as e:
            raise ValueError(f"subscription URL is malformed: {e}") from e
        if parsed.scheme not in ('http', 'https') or not parsed.host:
            raise ValueError(f"subscription URL must be an absolute http(s) URL, got {value!r}")
        return value

    @field_validator('listen_addr')
    @classmethod
    def _check_listen_addr(cls, value: str) -> str:
        split_listen_addr(value)
        return value

    @field_validator('log_level')
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f"unknown log level: {value}")
        return level

    @property
    def host(self) -> str:
        return split_listen_addr(self.listen_addr)[0]

    @property
    def port(self) -> int:
        return split_listen_addr(self.listen_addr)[1]


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Read a .json, .yaml/.yml or .toml config file into a dict."""
    suffix = path.suffix.lower()
    if suffix not in ('.json', '.yaml', '.yml', '.toml'):
        raise ConfigError("unsupported file format")

    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Configuration file not readable: {path}: {e}") from e

    try:
        if suffix == '.json':
            data = json.loads(raw)
        elif suffix == '.toml':
            data = tomllib.loads(raw.decode('utf-8'))
        else:
            data = yaml.safe_load(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
        raise ConfigError(f"Invalid configuration file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return data


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration."""
    for env_var, field in ENV_MAPPINGS.items():
        env_value = os.getenv(env_var)
        if env_value is not None:
            # drop a camelCase spelling from the file so the override wins
            config.pop(to_camel(field), None)
            config[field] = env_value
    return config


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    dotenv: bool = True
) -> RelayConfig:
    """Build the relay config.

    Args:
        config_path: Config file to read first. Skipped when None.
        overrides: Values given explicitly (command line), applied last.
            None values are ignored.
        dotenv: Load a .env file found from the working directory upwards
            into the environment before reading it.

    Raises:
        ConfigError: the file is unusable or the resulting values are invalid.
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))

    config = _read_config_file(Path(config_path)) if config_path is not None else {}
    config = _apply_env_overrides(config)

    for field, value in (overrides or {}).items():
        if value is not None:
            config.pop(to_camel(field), None)
            config[field] = value

    try:
        return RelayConfig.model_validate(config)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
