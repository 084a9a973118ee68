"""
env-resolver — runtime settings for the resolver itself.

File: src/env_resolver/settings.py
Last updated: 2026-10-18

Purpose
- Read the resolver's own knobs (runtime environment indicator, log level,
  log format, audit toggle) from ``ENV_RESOLVER_``-prefixed variables.

Functional requirements
- The runtime indicator falls back through ``APP_ENV``, ``PYTHON_ENV`` and
  ``ENVIRONMENT`` before defaulting to ``development``.
- Auditing defaults to on in production.
- Invalid values fail fast with the variable name in the message.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final, Literal

from env_resolver.constants import (
    DEFAULT_ENVIRONMENT,
    PRODUCTION_ENVIRONMENT,
    RUNTIME_ENV_VARIABLES,
    SETTINGS_ENV_PREFIX,
)
from env_resolver.errors import EnvResolverError

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})
_LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")


class SettingsError(EnvResolverError, ValueError):
    """Raised when a resolver setting cannot be coerced."""


@dataclass(frozen=True, slots=True)
class RuntimeSettings:
    environment: str = DEFAULT_ENVIRONMENT
    log_level: str = "WARNING"
    log_format: Literal["json", "text"] = "json"
    audit: bool = False

    @property
    def is_production(self) -> bool:
        return is_production(self.environment)

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RuntimeSettings:
        """Build settings from ``environ`` (defaults to ``os.environ``)."""

        env_map = os.environ if environ is None else environ
        environment = runtime_environment(env_map)

        log_level = _read(env_map, "LOG_LEVEL", "WARNING").upper()
        if log_level not in _LOG_LEVELS:
            raise SettingsError(
                f"{SETTINGS_ENV_PREFIX}LOG_LEVEL must be one of: {', '.join(_LOG_LEVELS)}"
            )

        log_format = _read(env_map, "LOG_FORMAT", "json").lower()
        if log_format not in _LOG_FORMATS:
            raise SettingsError(f"{SETTINGS_ENV_PREFIX}LOG_FORMAT must be 'json' or 'text'")

        raw_audit = env_map.get(f"{SETTINGS_ENV_PREFIX}AUDIT")
        audit = is_production(environment) if raw_audit is None else _as_bool(raw_audit, "AUDIT")

        return cls(
            environment=environment,
            log_level=log_level,
            log_format="json" if log_format == "json" else "text",
            audit=audit,
        )


def runtime_environment(environ: Mapping[str, str] | None = None) -> str:
    """Return the runtime environment indicator, lower-cased."""

    env_map = os.environ if environ is None else environ
    for name in RUNTIME_ENV_VARIABLES:
        value = env_map.get(name)
        if value is not None and value.strip():
            return value.strip().lower()
    return DEFAULT_ENVIRONMENT


def is_production(environment: str | None) -> bool:
    return (environment or "").strip().lower() == PRODUCTION_ENVIRONMENT


def _read(environ: Mapping[str, str], suffix: str, default: str) -> str:
    value = environ.get(f"{SETTINGS_ENV_PREFIX}{suffix}")
    if value is None or not value.strip():
        return default
    return value.strip()


def _as_bool(raw: str, suffix: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _BOOLEAN_TRUE:
        return True
    if lowered in _BOOLEAN_FALSE:
        return False
    raise SettingsError(
        f"{SETTINGS_ENV_PREFIX}{suffix} must be a boolean (true/false/1/0/yes/no/on/off)"
    )


__all__ = [
    "RuntimeSettings",
    "SettingsError",
    "is_production",
    "runtime_environment",
]
