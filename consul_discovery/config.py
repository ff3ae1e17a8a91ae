"""Frozen dataclasses for client configuration and a YAML loader with env-var interpolation."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

CONSISTENCY_MODES = ("default", "stale", "consistent")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


def _split_tags(raw: str | list[str] | None) -> list[str] | None:
    """Accept "a,b" or ["a", "b"]; blank entries are dropped."""
    if not raw:
        return None
    parts = raw.split(",") if isinstance(raw, str) else raw
    tags = [str(tag).strip() for tag in parts if str(tag).strip()]
    return tags or None


def _is_tag_spec(value: Any) -> bool:
    if value is None or isinstance(value, str):
        return True
    return isinstance(value, list) and all(isinstance(tag, str) for tag in value)


@dataclass(frozen=True)
class ConsulConfig:
    base_url: str = "http://localhost:8500"
    timeout: int = 10
    verify_ssl: bool = True


@dataclass(frozen=True)
class DiscoveryConfig:
    """Per-query options applied to every health lookup."""

    consistency_mode: str = "default"  # "default", "stale" or "consistent"
    query_passing: bool = False
    acl_token: str | None = None
    default_query_tag: str | list[str] | None = None
    # service name -> tags, e.g. {"orders": "blue,v2"} or {"orders": ["blue", "v2"]}
    server_list_query_tags: dict[str, str | list[str]] = field(default_factory=dict)
    backup: bool = False
    order: int = 0
    max_workers: int = 8

    def query_tags_for_service(self, service_id: str) -> list[str] | None:
        """Tags to filter health results by, or None when no filtering applies."""
        tags = _split_tags(self.server_list_query_tags.get(service_id))
        if tags is not None:
            return tags
        return _split_tags(self.default_query_tag)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    consul: ConsulConfig = field(default_factory=ConsulConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields."""
    if not isinstance(data, dict):
        return data
    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        ft = field_types[key]
        # Annotations are strings under postponed evaluation; only dataclass names resolve here
        if isinstance(ft, str):
            ft = globals().get(ft, ft)
        if isinstance(ft, type) and hasattr(ft, "__dataclass_fields__") and isinstance(value, dict):
            kwargs[key] = _build_nested(ft, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    config = _build_nested(AppConfig, raw)
    validate(config)
    return config


def validate(config: AppConfig) -> None:
    """Validate configuration values."""
    if not config.consul.base_url.startswith(("http://", "https://")):
        raise ConfigError("consul.base_url must start with http:// or https://")

    if config.consul.timeout <= 0:
        raise ConfigError("consul.timeout must be > 0")

    if config.discovery.consistency_mode not in CONSISTENCY_MODES:
        raise ConfigError(
            "discovery.consistency_mode must be one of: " + ", ".join(CONSISTENCY_MODES)
        )

    if not isinstance(config.discovery.server_list_query_tags, dict):
        raise ConfigError("discovery.server_list_query_tags must be a mapping")

    for service_id, tags in config.discovery.server_list_query_tags.items():
        if not _is_tag_spec(tags):
            raise ConfigError(
                f"discovery.server_list_query_tags.{service_id} must be a string or a list of strings"
            )

    if not _is_tag_spec(config.discovery.default_query_tag):
        raise ConfigError("discovery.default_query_tag must be a string or a list of strings")

    if not isinstance(config.discovery.order, int) or isinstance(config.discovery.order, bool):
        raise ConfigError("discovery.order must be an integer")

    if config.discovery.max_workers < 1:
        raise ConfigError("discovery.max_workers must be >= 1")

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")
