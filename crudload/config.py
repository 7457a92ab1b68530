"""
Load driver configuration.

Defines configuration classes for the different ways the driver is run
(full comparison run, quick smoke run, unit tests).  Values are read
from environment variables with sensible defaults, and a YAML workload
file can override the workload shape for a single run.

The ``get_config`` factory selects the class from an explicit name or
the ``LOADTEST_ENV`` environment variable; :func:`load_settings` merges
the class, the optional workload file and CLI overrides into one frozen
:class:`RunSettings` that the rest of the driver consumes.

Key Concepts Demonstrated:
- Class-based configuration with inheritance for DRY defaults
- Environment-variable overrides for 12-factor deployability
- Strict workload-file parsing: unknown keys are an error, not ignored
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError
from .models import StageSchedule, UserRecord, parse_duration

logger = logging.getLogger(__name__)


class Config:
    """
    Base (shared) configuration.

    The default stages reproduce the reference comparison: ramp to 50
    workers over 30s, hold for a minute, ramp to 100 over 30s, hold for a
    minute, then ramp down to zero over 30s.
    """

    # Each backend lives behind its own base URL; the JSON server mounts
    # its routes under ``/json``.
    JSON_BASE_URL: str = os.environ.get("JSON_BASE_URL", "http://localhost:8081/json")
    TOON_BASE_URL: str = os.environ.get("TOON_BASE_URL", "http://localhost:8080")

    # Durations in seconds or k6 notation, parsed by settings_from_config.
    REQUEST_TIMEOUT: str | float = os.environ.get("REQUEST_TIMEOUT", "10")
    THINK_TIME: str | float = os.environ.get("THINK_TIME", "1")

    RAMP_POLICY: str = os.environ.get("RAMP_POLICY", "linear")
    TICK_INTERVAL: str | float = os.environ.get("TICK_INTERVAL", "0.5")
    DRAIN_TIMEOUT: str | float = os.environ.get("DRAIN_TIMEOUT", "30")

    STAGES: list[tuple[str, int]] = [
        ("30s", 50),
        ("1m", 50),
        ("30s", 100),
        ("1m", 100),
        ("30s", 0),
    ]

    CREATE_PAYLOAD: dict[str, str] = {"name": "TestUser", "email": "test@example.com"}
    UPDATE_PAYLOAD: dict[str, str] = {"name": "UpdatedUser", "email": "updated@example.com"}

    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")


class DefaultConfig(Config):
    """Full comparison run against locally started backends."""


class SmokeConfig(Config):
    """
    A few workers for a few seconds.

    Useful to confirm both backends are reachable and answering with the
    expected status codes before committing to a full run.
    """

    STAGES: list[tuple[str, int]] = [
        ("5s", 2),
        ("10s", 2),
        ("5s", 0),
    ]


class TestingConfig(Config):
    """Unit-test overrides: unroutable hosts, no think time, short timeouts."""

    JSON_BASE_URL: str = os.environ.get("TEST_JSON_BASE_URL", "http://json-service.test/json")
    TOON_BASE_URL: str = os.environ.get("TEST_TOON_BASE_URL", "http://toon-service.test")
    REQUEST_TIMEOUT: str | float = 1.0
    THINK_TIME: str | float = 0.0
    TICK_INTERVAL: str | float = 0.05
    DRAIN_TIMEOUT: str | float = 5.0
    STAGES: list[tuple[str, int]] = [("1s", 2), ("1s", 0)]


# Configuration mapping for easy access
config = {
    "default": DefaultConfig,
    "smoke": SmokeConfig,
    "testing": TestingConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Get the configuration class for the specified environment.

    Args:
        env: Environment name (default, smoke, testing).  If None, uses
            the ``LOADTEST_ENV`` environment variable.

    Returns:
        Configuration class for the specified environment.

    Raises:
        ConfigError: If an explicit name is not a known environment.
    """
    if env is None:
        env = os.environ.get("LOADTEST_ENV", "default")
    try:
        return config[env]
    except KeyError:
        raise ConfigError(
            f"Unknown environment {env!r}; expected one of {', '.join(config)}"
        ) from None


@dataclass(frozen=True)
class RunSettings:
    """Everything one run needs, resolved and validated."""

    base_urls: Mapping[str, str]
    schedule: StageSchedule
    create_payload: UserRecord
    update_payload: UserRecord
    think_time: float
    request_timeout: float
    tick_interval: float
    drain_timeout: float

    def base_url_for(self, wire_format_name: str) -> str:
        """``toon-exact`` talks to the TOON backend, hence the prefix lookup."""
        family = wire_format_name.split("-", 1)[0]
        try:
            return self.base_urls[family]
        except KeyError:
            raise ConfigError(f"No base URL configured for format {wire_format_name!r}") from None


# Keys accepted at the top level of a workload file.
WORKLOAD_KEYS = {
    "stages",
    "createPayload",
    "updatePayload",
    "thinkTime",
    "baseUrls",
    "requestTimeout",
    "rampPolicy",
}


def _seconds(config_class: type[Config], attribute: str) -> float:
    value = getattr(config_class, attribute)
    try:
        return parse_duration(value)
    except ConfigError as exc:
        raise ConfigError(f"Invalid {attribute} setting {value!r}: {exc}") from exc


def settings_from_config(config_class: type[Config]) -> RunSettings:
    """
    Resolve a configuration class into :class:`RunSettings`.

    Raises:
        ConfigError: If a duration setting (for example ``THINK_TIME`` from
            the environment) is not a valid duration.
    """
    tick_interval = _seconds(config_class, "TICK_INTERVAL")
    if tick_interval <= 0:
        raise ConfigError(f"TICK_INTERVAL must be positive, got {tick_interval}")
    return RunSettings(
        base_urls={"json": config_class.JSON_BASE_URL, "toon": config_class.TOON_BASE_URL},
        schedule=StageSchedule.from_pairs(config_class.STAGES, policy=config_class.RAMP_POLICY),
        create_payload=UserRecord.from_mapping(config_class.CREATE_PAYLOAD),
        update_payload=UserRecord.from_mapping(config_class.UPDATE_PAYLOAD),
        think_time=_seconds(config_class, "THINK_TIME"),
        request_timeout=_seconds(config_class, "REQUEST_TIMEOUT"),
        tick_interval=tick_interval,
        drain_timeout=_seconds(config_class, "DRAIN_TIMEOUT"),
    )


def load_workload_file(path: Path) -> dict[str, Any]:
    """
    Read a YAML workload file.

    Args:
        path: File containing a mapping with any of :data:`WORKLOAD_KEYS`.

    Returns:
        The parsed mapping (empty when the file is empty).

    Raises:
        ConfigError: If the file is unreadable, not a mapping, or contains
            unknown keys.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read workload file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Workload file {path} is not valid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Workload file {path} must contain a mapping")

    unknown = sorted(set(data) - WORKLOAD_KEYS)
    if unknown:
        raise ConfigError(f"Unknown workload option(s) in {path}: {', '.join(unknown)}")
    return data


def apply_workload(settings: RunSettings, workload: Mapping[str, Any]) -> RunSettings:
    """Overlay a parsed workload mapping onto resolved settings."""
    changes: dict[str, Any] = {}

    policy = workload.get("rampPolicy", settings.schedule.policy)
    if "stages" in workload:
        stages = workload["stages"]
        if not isinstance(stages, list):
            raise ConfigError("'stages' must be a list of {duration, target} entries")
        changes["schedule"] = StageSchedule.from_pairs(stages, policy=policy)
    elif policy != settings.schedule.policy:
        changes["schedule"] = StageSchedule(settings.schedule.stages, policy=policy)

    if "createPayload" in workload:
        changes["create_payload"] = UserRecord.from_mapping(workload["createPayload"])
    if "updatePayload" in workload:
        changes["update_payload"] = UserRecord.from_mapping(workload["updatePayload"])
    if "thinkTime" in workload:
        changes["think_time"] = parse_duration(workload["thinkTime"])
    if "requestTimeout" in workload:
        changes["request_timeout"] = parse_duration(workload["requestTimeout"])

    if "baseUrls" in workload:
        base_urls = workload["baseUrls"]
        if not isinstance(base_urls, dict) or not set(base_urls) <= {"json", "toon"}:
            raise ConfigError("'baseUrls' must map 'json' and/or 'toon' to URLs")
        changes["base_urls"] = {**settings.base_urls, **{k: str(v) for k, v in base_urls.items()}}

    return replace(settings, **changes)


def load_settings(
    config_name: str | None = None,
    workload_path: Path | None = None,
    base_urls: Mapping[str, str | None] | None = None,
) -> RunSettings:
    """
    Build the settings for a run.

    Precedence, lowest first: configuration class, workload file, explicit
    ``base_urls`` (typically from the command line).
    """
    config_class = get_config(config_name)
    logger.info("Loading settings from %s", config_class.__name__)
    settings = settings_from_config(config_class)

    if workload_path is not None:
        settings = apply_workload(settings, load_workload_file(workload_path))

    overrides = {key: value for key, value in (base_urls or {}).items() if value}
    if overrides:
        settings = replace(settings, base_urls={**settings.base_urls, **overrides})
    return settings
