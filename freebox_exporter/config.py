"""Configuration loading.

The configuration is a TOML file validated with a voluptuous schema and
turned into immutable dataclasses. See ``config.toml`` at the repository
root for an annotated example.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import voluptuous as vol
from voluptuous.humanize import humanize_error

from .const import (
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_RETENTION,
    DEFAULT_PORT,
    DEFAULT_PREFIX,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_TIMEOUT,
    LOG_LEVELS,
    MIN_REFRESH_INTERVAL,
)
from .core.categories import ApplianceMode, MetricCategory
from .core.exceptions import ConfigurationError

_LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.toml"

_METRIC_NAME = r"^[a-zA-Z_:][a-zA-Z0-9_:]*$"

API_SCHEMA = vol.Schema(
    {
        vol.Optional("mode", default=ApplianceMode.ROUTER.value): vol.All(
            str, vol.Lower, vol.In([m.value for m in ApplianceMode])
        ),
        vol.Optional("refresh", default=DEFAULT_REFRESH_INTERVAL): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional("host", default=DEFAULT_HOST): vol.All(str, vol.Strip, vol.Length(min=1)),
        vol.Optional("ca_file"): vol.All(str, vol.Length(min=1)),
        vol.Optional("tls_hostname"): vol.All(str, vol.Length(min=1)),
        vol.Optional("timeout", default=DEFAULT_TIMEOUT): vol.All(vol.Coerce(float), vol.Range(min=1)),
    }
)

METRICS_SCHEMA = vol.Schema(
    {
        **{vol.Optional(category.value): bool for category in MetricCategory},
        vol.Optional("prefix", default=DEFAULT_PREFIX): vol.All(
            str, vol.Strip, vol.Length(min=1, msg="prefix must not be empty"), vol.Match(_METRIC_NAME)
        ),
    }
)

CORE_SCHEMA = vol.Schema(
    {
        vol.Required("data_directory"): vol.All(str, vol.Length(min=1)),
        vol.Optional("port", default=DEFAULT_PORT): vol.All(vol.Coerce(int), vol.Range(min=1, max=65535)),
    }
)

LOG_SCHEMA = vol.Schema(
    {
        vol.Optional("level", default=DEFAULT_LOG_LEVEL): vol.All(str, vol.Lower, vol.In(LOG_LEVELS)),
        vol.Optional("retention", default=DEFAULT_LOG_RETENTION): vol.All(vol.Coerce(int), vol.Range(min=0)),
    }
)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional("api", default={}): API_SCHEMA,
        vol.Required("metrics"): METRICS_SCHEMA,
        vol.Required("core"): CORE_SCHEMA,
        vol.Optional("log", default={}): LOG_SCHEMA,
    }
)


@dataclass(frozen=True)
class ApiConfiguration:
    mode: ApplianceMode
    refresh: int
    host: str
    timeout: float
    ca_file: Path | None = None
    tls_hostname: str | None = None


@dataclass(frozen=True)
class MetricsConfiguration:
    enabled: frozenset[MetricCategory]
    prefix: str


@dataclass(frozen=True)
class CoreConfiguration:
    data_directory: Path
    port: int


@dataclass(frozen=True)
class LogConfiguration:
    level: str
    retention: int


@dataclass(frozen=True)
class Configuration:
    api: ApiConfiguration
    metrics: MetricsConfiguration
    core: CoreConfiguration
    log: LogConfiguration


def validate_data_directory(path: Path) -> Path:
    """Check the data directory exists and is writable.

    Raises:
        ConfigurationError: If it is not.
    """
    if not path.is_dir():
        raise ConfigurationError(f"Data directory {path} does not exist or is not a directory")
    if not os.access(path, os.W_OK):
        raise ConfigurationError(f"Data directory {path} is not writable")
    return path


def parse_configuration(data: dict[str, Any], base_dir: Path | None = None) -> Configuration:
    """Validate decoded TOML and build a Configuration.

    Relative paths are resolved against ``base_dir``.

    Raises:
        ConfigurationError: If validation fails.
    """
    try:
        validated = CONFIG_SCHEMA(data)
    except vol.Invalid as err:
        raise ConfigurationError(f"Invalid configuration: {humanize_error(data, err)}") from err

    base_dir = base_dir or Path.cwd()

    def resolve(value: str) -> Path:
        path = Path(value).expanduser()
        return path if path.is_absolute() else base_dir / path

    api = validated["api"]
    refresh = api["refresh"]
    if refresh < MIN_REFRESH_INTERVAL:
        _LOGGER.warning(
            "[api] refresh=%s is below the %ss minimum, using %ss", refresh, MIN_REFRESH_INTERVAL, MIN_REFRESH_INTERVAL
        )
        refresh = MIN_REFRESH_INTERVAL

    metrics = validated["metrics"]
    enabled = set()
    for category in MetricCategory:
        if category.value not in metrics:
            _LOGGER.warning("[metrics] %s is not set, the category is disabled", category.value)
        elif metrics[category.value]:
            enabled.add(category)

    core = validated["core"]
    log = validated["log"]
    return Configuration(
        api=ApiConfiguration(
            mode=ApplianceMode(api["mode"]),
            refresh=refresh,
            host=api["host"],
            timeout=api["timeout"],
            ca_file=resolve(api["ca_file"]) if "ca_file" in api else None,
            tls_hostname=api.get("tls_hostname"),
        ),
        metrics=MetricsConfiguration(enabled=frozenset(enabled), prefix=metrics["prefix"]),
        core=CoreConfiguration(data_directory=validate_data_directory(resolve(core["data_directory"])), port=core["port"]),
        log=LogConfiguration(level=log["level"], retention=log["retention"]),
    )


def load_configuration(path: Path | str = DEFAULT_CONFIG_FILE) -> Configuration:
    """Read, validate and return the configuration at ``path``.

    Raises:
        ConfigurationError: If the file is missing, not TOML or invalid.
    """
    path = Path(path)
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError as err:
        raise ConfigurationError(f"Configuration file {path} not found") from err
    except OSError as err:
        raise ConfigurationError(f"Cannot read configuration file {path}: {err}") from err
    except tomllib.TOMLDecodeError as err:
        raise ConfigurationError(f"Configuration file {path} is not valid TOML: {err}") from err
    return parse_configuration(data, base_dir=path.resolve().parent)
