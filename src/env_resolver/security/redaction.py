"""
env-resolver — security redaction utilities

File: src/env_resolver/security/redaction.py
Last updated: 2026-10-18

Purpose
- Mask secret configuration values before they reach logs, audit events,
  error messages or ``repr`` output.

What should be included in this file
- The sensitive-key denylist (exact names, prefixes and suffixes) applied to
  environment-variable names.
- Deterministic text rules for secret-looking substrings.
- Mapping redaction that honours both explicit secret keys and the denylist.

Functional requirements
- Must ensure no secrets leak into logs by default.

Non-functional requirements
- Must minimize false positives while prioritizing safety.
"""

from __future__ import annotations

import re
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Final

REDACTED_VALUE: Final[str] = "***REDACTED***"

DEFAULT_SENSITIVE_KEY_DENYLIST: Final[frozenset[str]] = frozenset(
    {
        "access_token",
        "api_key",
        "apikey",
        "auth_token",
        "authorization",
        "client_secret",
        "credential",
        "credentials",
        "database_url",
        "password",
        "passwd",
        "private_key",
        "refresh_token",
        "secret",
        "secret_key",
        "session_token",
        "token",
    }
)

_SENSITIVE_KEY_SUFFIXES: Final[tuple[str, ...]] = (
    "_api_key",
    "_access_token",
    "_refresh_token",
    "_auth_token",
    "_client_secret",
    "_private_key",
    "_password",
    "_passwd",
    "_secret",
    "_token",
    "_dsn",
)

_SENSITIVE_KEY_PREFIXES: Final[tuple[str, ...]] = (
    "api_key_",
    "access_token_",
    "password_",
    "private_key_",
    "secret_",
)

_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True, slots=True)
class _TextRule:
    name: str
    pattern: re.Pattern[str]
    sensitive_group: int | None = None


_TEXT_RULES: Final[tuple[_TextRule, ...]] = (
    _TextRule(
        name="private_key_block",
        pattern=re.compile(
            r"-----BEGIN(?: [A-Z0-9]+)* PRIVATE KEY-----"
            r"[\s\S]+?"
            r"-----END(?: [A-Z0-9]+)* PRIVATE KEY-----"
        ),
    ),
    _TextRule(
        name="url_credentials",
        pattern=re.compile(r"(\b[a-z][a-z0-9+.-]*://[^:/@\s]+:)([^@\s]+)(@)"),
        sensitive_group=2,
    ),
    _TextRule(
        name="authorization_bearer",
        pattern=re.compile(r"(?i)(\bbearer\s+)([A-Za-z0-9\-._~+/=]{8,})"),
        sensitive_group=2,
    ),
    _TextRule(
        name="explicit_secret_assignment",
        pattern=re.compile(
            r"(?i)(\b(?:password|passwd|secret|api[_-]?key|client[_-]?secret|"
            r"access[_-]?token|refresh[_-]?token)\b\s*[:=]\s*[\"']?)"
            r"([A-Za-z0-9._~+/=-]{6,})"
        ),
        sensitive_group=2,
    ),
    _TextRule(name="aws_access_key", pattern=re.compile(r"\b(?:AKIA|ASIA)[A-Z0-9]{16}\b")),
    _TextRule(name="github_token", pattern=re.compile(r"\bgh[pousr]_[A-Za-z0-9]{20,255}\b")),
    _TextRule(
        name="jwt",
        pattern=re.compile(r"\beyJ[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\b"),
    ),
)


def is_sensitive_key(key: str) -> bool:
    """Return whether ``key`` looks like it names a secret.

    ``DB_PASSWORD``, ``stripeApiKey`` and ``SECRET_TOKEN`` match; ``PORT`` does not.
    """

    normalized = _normalize_key(key)
    if not normalized:
        return False
    if normalized in DEFAULT_SENSITIVE_KEY_DENYLIST:
        return True
    if any(normalized.endswith(suffix) for suffix in _SENSITIVE_KEY_SUFFIXES):
        return True
    return any(normalized.startswith(prefix) for prefix in _SENSITIVE_KEY_PREFIXES)


def redact_text(text: str) -> str:
    """Redact secret-like substrings. Deterministic and idempotent."""

    if not isinstance(text, str):
        raise TypeError(f"text must be a string, got {type(text).__name__}")
    redacted = text
    for rule in _TEXT_RULES:
        redacted = _apply_text_rule(redacted, rule)
    return redacted


def redact_mapping(
    values: Mapping[str, object],
    *,
    secret_keys: Collection[str] = (),
    use_denylist: bool = True,
) -> dict[str, object]:
    """Return a copy of ``values`` with secret entries replaced.

    Keys in ``secret_keys`` are always masked. With ``use_denylist`` keys that
    look sensitive are masked too, and remaining strings go through
    ``redact_text``.
    """

    out: dict[str, object] = {}
    for key, value in values.items():
        if value is None:
            out[key] = None
        elif key in secret_keys or (use_denylist and is_sensitive_key(key)):
            out[key] = REDACTED_VALUE
        elif isinstance(value, str) and use_denylist:
            out[key] = redact_text(value)
        else:
            out[key] = value
    return out


def redact_value(value: object) -> object:
    """Deep-redact JSON-like structures for log output."""

    return _redact_structure(value, key=None)


def _redact_structure(value: object, *, key: str | None) -> object:
    if key is not None and value is not None and is_sensitive_key(key):
        return REDACTED_VALUE
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, Mapping):
        return {str(k): _redact_structure(v, key=str(k)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact_structure(item, key=None) for item in value]
    return value


def _apply_text_rule(text: str, rule: _TextRule) -> str:
    def repl(match: re.Match[str]) -> str:
        if rule.sensitive_group is None:
            return REDACTED_VALUE
        parts = list(match.groups())
        parts[rule.sensitive_group - 1] = REDACTED_VALUE
        return "".join(part or "" for part in parts)

    return rule.pattern.sub(repl, text)


def _normalize_key(key: str) -> str:
    with_boundaries = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key.strip())
    return _NON_ALNUM.sub("_", with_boundaries.lower()).strip("_")


__all__ = [
    "DEFAULT_SENSITIVE_KEY_DENYLIST",
    "REDACTED_VALUE",
    "is_sensitive_key",
    "redact_mapping",
    "redact_text",
    "redact_value",
]
