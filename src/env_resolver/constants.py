"""Stable constants shared across resolver components."""

from __future__ import annotations

from typing import Final

# Logger namespace for every module in the package.
LOGGER_NAME: Final[str] = "env_resolver"

# Prefix for the resolver's own runtime settings.
SETTINGS_ENV_PREFIX: Final[str] = "ENV_RESOLVER_"

# Variables consulted, in order, for the runtime environment indicator.
RUNTIME_ENV_VARIABLES: Final[tuple[str, ...]] = (
    "ENV_RESOLVER_ENVIRONMENT",
    "APP_ENV",
    "PYTHON_ENV",
    "ENVIRONMENT",
)
DEFAULT_ENVIRONMENT: Final[str] = "development"
PRODUCTION_ENVIRONMENT: Final[str] = "production"

# Interpolation recursion bound.
INTERPOLATION_MAX_DEPTH: Final[int] = 10

# Audit trail bound.
AUDIT_MAX_EVENTS: Final[int] = 1000

# Cache durations, in seconds.
TTL_SHORT: Final[float] = 30.0
TTL_MINUTE: Final[float] = 60.0
TTL_5_MINUTES: Final[float] = 5 * 60.0
TTL_15_MINUTES: Final[float] = 15 * 60.0
TTL_HOUR: Final[float] = 60 * 60.0
TTL_6_HOURS: Final[float] = 6 * 60 * 60.0
TTL_DAY: Final[float] = 24 * 60 * 60.0

DEFAULT_CACHE_TTL: Final[float] = TTL_5_MINUTES
DEFAULT_CACHE_MAX_AGE: Final[float] = TTL_HOUR

# Upper bound accepted for ``timestamp`` fields (9999-12-31T23:59:59Z).
MAX_TIMESTAMP_SECONDS: Final[int] = 253_402_300_799

__all__ = [
    "AUDIT_MAX_EVENTS",
    "DEFAULT_CACHE_MAX_AGE",
    "DEFAULT_CACHE_TTL",
    "DEFAULT_ENVIRONMENT",
    "INTERPOLATION_MAX_DEPTH",
    "LOGGER_NAME",
    "MAX_TIMESTAMP_SECONDS",
    "PRODUCTION_ENVIRONMENT",
    "RUNTIME_ENV_VARIABLES",
    "SETTINGS_ENV_PREFIX",
    "TTL_15_MINUTES",
    "TTL_5_MINUTES",
    "TTL_6_HOURS",
    "TTL_DAY",
    "TTL_HOUR",
    "TTL_MINUTE",
    "TTL_SHORT",
]
