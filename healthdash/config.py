"""Dashboard settings loaded from an optional YAML file and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "healthdash" / "config.yaml"
ENV_PREFIX = "HEALTHDASH_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised for unreadable config files or invalid values."""


@dataclass(frozen=True)
class DashboardConfig:
    top_n: int = 5
    flake_path: str = "."
    nix_timeout: float = 30.0
    poll_interval: float = 0.05
    tick_interval: float = 0.1
    log_file: Optional[str] = None
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        object.__setattr__(self, "log_level", self.log_level.upper())
        if self.top_n < 1:
            raise ConfigError("top_n must be at least 1")
        for name in ("nix_timeout", "poll_interval", "tick_interval"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")


def load_config(
    path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None
) -> DashboardConfig:
    """Build the config from defaults, then the YAML file, then ``HEALTHDASH_*`` variables.

    An explicit ``path`` must exist; the default path is optional.
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if config_path.exists():
        values.update(_read_yaml(config_path))
    elif path is not None:
        raise ConfigError(f"config file not found: {config_path}")

    values.update(_read_env(environ))
    return _build(values)


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"unable to read {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    return data


def _read_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for field in fields(DashboardConfig):
        raw = environ.get(ENV_PREFIX + field.name.upper())
        if raw is not None:
            values[field.name] = raw
    return values


def _build(values: Mapping[str, Any]) -> DashboardConfig:
    known = {field.name: field for field in fields(DashboardConfig)}
    unknown = sorted(set(values) - set(known))
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}")

    converted: Dict[str, Any] = {}
    defaults = DashboardConfig()
    for name, raw in values.items():
        current = getattr(defaults, name)
        try:
            if current is None:
                converted[name] = None if raw in (None, "") else str(raw)
            elif isinstance(current, int):
                converted[name] = int(raw)
            elif isinstance(current, float):
                converted[name] = float(raw)
            else:
                converted[name] = str(raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid value for {name}: {raw!r}") from exc
    return replace(defaults, **converted)
