"""Configuration loading utilities for the file watch exporter."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Tuple

import yaml # type: ignore


logger = logging.getLogger(__name__)

DEFAULT_LISTEN_ADDRESS = ":9100"
DEFAULT_METRICS_PATH = "/metrics"
DEFAULT_CHECK_INTERVAL_SECONDS = 10.0
DEFAULT_RESET_INTERVAL_MINUTES = 30.0


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


@dataclass(frozen=True)
class ServerConfig:
    """Where the metrics endpoint is served."""

    listen_address: str = DEFAULT_LISTEN_ADDRESS
    metrics_path: str = DEFAULT_METRICS_PATH

    @property
    def host(self) -> str:
        return _split_listen_address(self.listen_address)[0]

    @property
    def port(self) -> int:
        return _split_listen_address(self.listen_address)[1]


@dataclass(frozen=True)
class ExporterConfig:
    """Top-level configuration structure."""

    server: ServerConfig = field(default_factory=ServerConfig)
    files: Tuple[str, ...] = ()
    dirs: Tuple[str, ...] = ()
    interval_seconds: float = DEFAULT_CHECK_INTERVAL_SECONDS
    reset_minutes: float = DEFAULT_RESET_INTERVAL_MINUTES

    @property
    def reset_seconds(self) -> float:
        return self.reset_minutes * 60.0


def load_config(path: Path) -> ExporterConfig:
    """Load and validate the YAML configuration file."""

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML configuration: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    config = ExporterConfig(
        server=_parse_server_config(data.get("server")),
        files=tuple(_ensure_str_list(data.get("files", []), "files")),
        dirs=tuple(_ensure_str_list(data.get("dirs", []), "dirs")),
        interval_seconds=_parse_positive_number(
            data.get("check_interval_seconds", DEFAULT_CHECK_INTERVAL_SECONDS),
            field_name="check_interval_seconds",
        ),
        reset_minutes=_parse_positive_number(
            data.get("reset_interval_minutes", DEFAULT_RESET_INTERVAL_MINUTES),
            field_name="reset_interval_minutes",
        ),
    )

    if not config.files and not config.dirs:
        logger.warning("No files or directories configured in %s", path)
    logger.debug(
        "Loaded configuration from %s: %s file patterns, %s directories, interval=%ss, reset=%smin",
        path,
        len(config.files),
        len(config.dirs),
        config.interval_seconds,
        config.reset_minutes,
    )
    return config


def _parse_server_config(raw: Any) -> ServerConfig:
    if raw is None:
        return ServerConfig()
    if not isinstance(raw, dict):
        raise ConfigError("'server' section must be a mapping")

    listen_address = raw.get("listen_address", DEFAULT_LISTEN_ADDRESS)
    if not isinstance(listen_address, str):
        raise ConfigError("server.listen_address must be a string")
    try:
        _split_listen_address(listen_address)
    except ValueError as exc:
        raise ConfigError(f"server.listen_address is invalid: {exc}") from exc

    metrics_path = raw.get("metrics_path", DEFAULT_METRICS_PATH)
    if not isinstance(metrics_path, str) or not metrics_path.startswith("/"):
        raise ConfigError("server.metrics_path must be a string starting with '/'")

    return ServerConfig(listen_address=listen_address, metrics_path=metrics_path)


def _split_listen_address(address: str) -> Tuple[str, int]:
    host, sep, port_raw = address.rpartition(":")
    if not sep:
        raise ValueError(f"expected 'host:port' or ':port', got {address!r}")
    try:
        port = int(port_raw)
    except ValueError as exc:
        raise ValueError(f"port must be numeric, got {port_raw!r}") from exc
    if not 0 < port < 65536:
        raise ValueError(f"port must be between 1 and 65535, got {port}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port


def _parse_positive_number(value: Any, *, field_name: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be numeric")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be numeric") from exc
    if number <= 0:
        raise ConfigError(f"{field_name} must be positive")
    return number


def _ensure_str_list(value: Any, field_name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"{field_name} must be a list of strings")
    items: List[str] = []
    for elem in value:
        if not isinstance(elem, str):
            raise ConfigError(f"{field_name} must contain only strings")
        if not elem:
            raise ConfigError(f"{field_name} must not contain empty paths")
        items.append(elem)
    return items
