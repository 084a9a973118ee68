"""
env-resolver — error taxonomy.

File: src/env_resolver/errors.py
Last updated: 2026-10-18

Purpose
- Define every error kind surfaced by schema compilation, provider loading,
  policy gating and field validation.

Functional requirements
- Field-level issues are structured (key + kind + message) so one error can
  report every invalid field at once.
- Messages never embed secret values; callers build messages from key names
  and violated rules only.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass


class IssueKind(str, enum.Enum):
    """Closed set of field-level validation failures."""

    MISSING_REQUIRED = "MissingRequired"
    INVALID_ENUM = "InvalidEnum"
    INVALID_NUMBER = "InvalidNumber"
    OUT_OF_RANGE = "OutOfRange"
    INVALID_PORT = "InvalidPort"
    INVALID_BOOLEAN = "InvalidBoolean"
    INVALID_URL = "InvalidUrl"
    INVALID_EMAIL = "InvalidEmail"
    INVALID_JSON = "InvalidJson"
    PATTERN_MISMATCH = "PatternMismatch"
    INVALID_DATE = "InvalidDate"
    INVALID_TIMESTAMP = "InvalidTimestamp"
    INVALID_DURATION = "InvalidDuration"
    INVALID_VALUE = "InvalidValue"
    UNKNOWN_KEY = "UnknownKey"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Single structured validation failure for one key."""

    key: str
    kind: IssueKind
    message: str

    def render(self) -> str:
        return f"{self.key}: {self.message} [{self.kind.value}]"


@dataclass(frozen=True, slots=True)
class PolicyBreach:
    """One key rejected by a source policy."""

    key: str
    source: str
    message: str


class EnvResolverError(Exception):
    """Base class for every error raised by env-resolver."""


class SchemaError(EnvResolverError, ValueError):
    """Raised when a schema declaration cannot be compiled."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        self.key = key
        super().__init__(f"{key}: {message}" if key else message)


class DuplicateKeyError(SchemaError):
    """Raised when a key is declared twice with different rules."""


class ProviderError(EnvResolverError):
    """Raised when a provider fails to produce its raw environment."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"provider {provider!r} failed: {message}")


class PolicyViolation(EnvResolverError):
    """Raised when a value comes from a source that policy forbids."""

    def __init__(self, breaches: Sequence[PolicyBreach]) -> None:
        self.breaches = tuple(breaches)
        rendered = "\n".join(f"- {item.key}: {item.message}" for item in self.breaches)
        super().__init__(f"configuration policy violated:\n{rendered}")


class AsyncProviderInSyncContext(EnvResolverError):
    """Raised when the synchronous API meets a provider that can only load asynchronously."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(
            f"provider {provider!r} does not support synchronous loading; "
            "use resolve() or warm its cache first"
        )


class ValidationError(EnvResolverError, ValueError):
    """Raised when one or more declared fields fail validation."""

    def __init__(self, issues: Sequence[ValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.render()}" for item in self.issues)
        super().__init__(f"invalid configuration:\n{rendered}")

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(item.key for item in self.issues))


__all__ = [
    "AsyncProviderInSyncContext",
    "DuplicateKeyError",
    "EnvResolverError",
    "IssueKind",
    "PolicyBreach",
    "PolicyViolation",
    "ProviderError",
    "SchemaError",
    "ValidationError",
    "ValidationIssue",
]
