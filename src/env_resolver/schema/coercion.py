"""
env-resolver — coercion and validation engine.

File: src/env_resolver/schema/coercion.py
Last updated: 2026-10-18

Purpose
- Turn one raw string value into its declared typed value, or into a list of
  structured validation issues.

What should be included in this file
- Missing-value handling (defaults, optional fields).
- Per-type converters and the shared enum/pattern/bounds checks.
- The ``Url`` value type returned by URL-like fields.

Functional requirements
- Never raise for bad input: failures are returned so a whole schema can be
  validated in one pass.
- Issues for ``secret`` fields mention the key and the violated rule only.

Non-functional requirements
- No I/O, no logging, no global state.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Final
from urllib.parse import SplitResult, urlsplit

from env_resolver.constants import MAX_TIMESTAMP_SECONDS
from env_resolver.errors import IssueKind, ValidationIssue
from env_resolver.schema.rules import FieldRule, FieldType

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"true", "1"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"false", "0"})

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
_DIGITS_PATTERN = re.compile(r"^\d+$")
_EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
_EMAIL_MAX_LENGTH: Final[int] = 254
_ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_DATETIME_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})?$"
)
_DURATION_SIMPLE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h|d)$")
_DURATION_COMBINED = re.compile(
    r"^(?:(\d+(?:\.\d+)?)h)?(?:(\d+(?:\.\d+)?)m)?(?:(\d+(?:\.\d+)?)s)?(?:(\d+(?:\.\d+)?)ms)?$"
)
_DURATION_UNIT_MS: Final[dict[str, float]] = {
    "ms": 1.0,
    "s": 1000.0,
    "m": 60_000.0,
    "h": 3_600_000.0,
    "d": 86_400_000.0,
}

_GENERIC_URL_SCHEMES: Final[frozenset[str]] = frozenset(
    {
        "http",
        "https",
        "ws",
        "wss",
        "ftp",
        "ftps",
        "file",
        "postgres",
        "postgresql",
        "mysql",
        "mongodb",
        "mongodb+srv",
        "redis",
        "rediss",
    }
)
_URL_SCHEMES: Final[dict[FieldType, frozenset[str]]] = {
    FieldType.URL: _GENERIC_URL_SCHEMES,
    FieldType.HTTP: frozenset({"http", "https"}),
    FieldType.HTTPS: frozenset({"https"}),
    FieldType.POSTGRES: frozenset({"postgres", "postgresql"}),
    FieldType.MYSQL: frozenset({"mysql"}),
    FieldType.MONGODB: frozenset({"mongodb", "mongodb+srv"}),
    FieldType.REDIS: frozenset({"redis", "rediss"}),
}
# Replica-set host lists ("h1:1,h2:2") cannot be port-checked.
_MULTI_HOST_SCHEMES: Final[frozenset[str]] = frozenset({"mongodb", "mongodb+srv"})


class Url(str):
    """A validated absolute URL that still behaves as the original string."""

    @property
    def parts(self) -> SplitResult:
        return urlsplit(str(self))

    @property
    def scheme(self) -> str:
        return self.parts.scheme

    @property
    def host(self) -> str | None:
        return self.parts.hostname

    @property
    def port(self) -> int | None:
        return self.parts.port

    @property
    def path(self) -> str:
        return self.parts.path

    @property
    def username(self) -> str | None:
        return self.parts.username

    @property
    def password(self) -> str | None:
        return self.parts.password


@dataclass(frozen=True, slots=True)
class CoercionResult:
    """Typed value or the issues that prevented producing one."""

    value: object
    issues: tuple[ValidationIssue, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.issues


class _Rejected(Exception):
    def __init__(self, kind: IssueKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


def coerce(rule: FieldRule, raw: str | None, *, key: str = "<value>") -> CoercionResult:
    """Coerce ``raw`` according to ``rule``.

    ``None`` and the empty string both count as missing.
    """

    if raw is None or raw == "":
        return _coerce_missing(rule, key)

    try:
        value = _coerce_present(rule, raw)
    except _Rejected as rejected:
        message = rejected.message
        if not rule.secret:
            message = f"{message} (got {raw!r})"
        return CoercionResult(None, (ValidationIssue(key, rejected.kind, message),))
    return CoercionResult(value)


def _coerce_missing(rule: FieldRule, key: str) -> CoercionResult:
    if rule.has_default:
        default = rule.default
        if isinstance(default, str) and rule.type is not FieldType.STRING and default:
            return coerce(rule, default, key=key)
        return CoercionResult(default)
    if rule.optional:
        return CoercionResult(None)
    return CoercionResult(
        None,
        (ValidationIssue(key, IssueKind.MISSING_REQUIRED, "required value is missing"),),
    )


def _coerce_present(rule: FieldRule, raw: str) -> object:
    if rule.pattern is not None and re.search(rule.pattern, raw) is None:
        raise _Rejected(
            IssueKind.PATTERN_MISMATCH, f"does not match required pattern /{rule.pattern}/"
        )
    if rule.enum is not None and raw not in rule.enum:
        raise _Rejected(IssueKind.INVALID_ENUM, "must be one of: " + ", ".join(rule.enum))

    converter = _CONVERTERS.get(rule.type)
    if converter is None:
        return _to_url(rule, raw)
    return converter(rule, raw)


def _to_string(rule: FieldRule, raw: str) -> str:
    if rule.min is not None and len(raw) < rule.min:
        raise _Rejected(IssueKind.OUT_OF_RANGE, f"must be at least {_fmt(rule.min)} characters")
    if rule.max is not None and len(raw) > rule.max:
        raise _Rejected(IssueKind.OUT_OF_RANGE, f"must be at most {_fmt(rule.max)} characters")
    return raw


def _to_number(rule: FieldRule, raw: str) -> float:
    text = raw.strip()
    try:
        if "_" in text:
            raise ValueError(text)
        parsed = float(text)
    except ValueError as exc:
        raise _Rejected(IssueKind.INVALID_NUMBER, "must be a number") from exc
    if math.isnan(parsed) or math.isinf(parsed):
        raise _Rejected(IssueKind.INVALID_NUMBER, "must be a finite number")
    _check_bounds(rule, parsed)
    return parsed


def _to_integer(rule: FieldRule, raw: str) -> int:
    text = raw.strip()
    if not _INTEGER_PATTERN.match(text):
        raise _Rejected(IssueKind.INVALID_NUMBER, "must be an integer")
    parsed = _parse_int(text, IssueKind.INVALID_NUMBER, "must be an integer")
    _check_bounds(rule, parsed)
    return parsed


def _to_port(rule: FieldRule, raw: str) -> int:
    text = raw.strip()
    if not _DIGITS_PATTERN.match(text):
        raise _Rejected(IssueKind.INVALID_PORT, "must be a port number between 1 and 65535")
    parsed = _parse_int(text, IssueKind.INVALID_PORT, "must be a port number between 1 and 65535")
    if parsed < 1 or parsed > 65535:
        raise _Rejected(IssueKind.INVALID_PORT, "must be a port number between 1 and 65535")
    _check_bounds(rule, parsed)
    return parsed


def _to_boolean(rule: FieldRule, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _BOOLEAN_TRUE:
        return True
    if lowered in _BOOLEAN_FALSE:
        return False
    raise _Rejected(IssueKind.INVALID_BOOLEAN, "must be a boolean (true/false/1/0)")


def _to_url(rule: FieldRule, raw: str) -> Url:
    allowed = _URL_SCHEMES.get(rule.type, _GENERIC_URL_SCHEMES)
    label = "URL" if rule.type is FieldType.URL else f"{rule.type.value} URL"
    try:
        parts = urlsplit(raw.strip())
        scheme = parts.scheme.lower()
        if scheme not in _MULTI_HOST_SCHEMES:
            _ = parts.port
    except ValueError as exc:
        raise _Rejected(IssueKind.INVALID_URL, f"must be a valid {label}") from exc

    if not scheme:
        raise _Rejected(IssueKind.INVALID_URL, f"must be an absolute {label}")
    if scheme not in allowed:
        raise _Rejected(
            IssueKind.INVALID_URL,
            f"must be a {label} with scheme " + "/".join(sorted(allowed)),
        )
    if not parts.netloc and not (scheme == "file" and parts.path):
        raise _Rejected(IssueKind.INVALID_URL, f"must be an absolute {label}")
    return Url(raw.strip())


def _to_email(rule: FieldRule, raw: str) -> str:
    if len(raw) > _EMAIL_MAX_LENGTH or not _EMAIL_PATTERN.match(raw):
        raise _Rejected(IssueKind.INVALID_EMAIL, "must be a valid email address")
    return raw


def _to_json(rule: FieldRule, raw: str) -> object:
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise _Rejected(IssueKind.INVALID_JSON, "must be valid JSON") from exc


def _to_date(rule: FieldRule, raw: str) -> date | datetime:
    text = raw.strip()
    try:
        if _ISO_DATE_PATTERN.match(text):
            return date.fromisoformat(text)
        if _ISO_DATETIME_PATTERN.match(text):
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            return datetime.fromisoformat(text)
    except ValueError as exc:
        raise _Rejected(IssueKind.INVALID_DATE, "must be a valid calendar date") from exc
    raise _Rejected(
        IssueKind.INVALID_DATE,
        "must be an ISO 8601 date (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SSZ)",
    )


def _to_timestamp(rule: FieldRule, raw: str) -> int:
    text = raw.strip()
    if not _DIGITS_PATTERN.match(text):
        raise _Rejected(IssueKind.INVALID_TIMESTAMP, "must be a Unix timestamp in seconds")
    parsed = _parse_int(text, IssueKind.INVALID_TIMESTAMP, "must be a Unix timestamp in seconds")
    if parsed > MAX_TIMESTAMP_SECONDS:
        raise _Rejected(IssueKind.INVALID_TIMESTAMP, "timestamp is too large")
    _check_bounds(rule, parsed)
    return parsed


def _to_duration(rule: FieldRule, raw: str) -> timedelta:
    text = raw.strip()
    simple = _DURATION_SIMPLE.match(text)
    if simple:
        millis = float(simple.group(1)) * _DURATION_UNIT_MS[simple.group(2)]
        return _duration_from_ms(millis)

    combined = _DURATION_COMBINED.match(text)
    if combined and combined.group(0):
        hours, minutes, seconds, millis = (float(part) if part else 0.0 for part in combined.groups())
        total = hours * 3_600_000 + minutes * 60_000 + seconds * 1000 + millis
        if total > 0:
            return _duration_from_ms(total)

    raise _Rejected(IssueKind.INVALID_DURATION, "must be a duration such as 5s, 2h, 30m or 1h30m")


def _to_custom(rule: FieldRule, raw: str) -> object:
    if rule.validator is None:
        return raw
    try:
        return rule.validator(raw)
    except (ValueError, TypeError) as exc:
        message = "rejected by custom validator"
        if not rule.secret and str(exc):
            message = f"{message}: {exc}"
        raise _Rejected(IssueKind.INVALID_VALUE, message) from exc


def _parse_int(text: str, kind: IssueKind, message: str) -> int:
    # int() refuses strings past the interpreter's digit limit.
    try:
        return int(text)
    except ValueError as exc:
        raise _Rejected(kind, message) from exc


def _duration_from_ms(millis: float) -> timedelta:
    try:
        return timedelta(milliseconds=math.floor(millis))
    except (OverflowError, ValueError) as exc:
        raise _Rejected(IssueKind.INVALID_DURATION, "duration is too large") from exc


def _check_bounds(rule: FieldRule, value: float) -> None:
    if rule.min is not None and value < rule.min:
        raise _Rejected(IssueKind.OUT_OF_RANGE, f"must be at least {_fmt(rule.min)}")
    if rule.max is not None and value > rule.max:
        raise _Rejected(IssueKind.OUT_OF_RANGE, f"must be at most {_fmt(rule.max)}")


def _fmt(bound: float) -> str:
    if float(bound).is_integer():
        return str(int(bound))
    return str(bound)


_CONVERTERS: Final[dict[FieldType, Callable[[FieldRule, str], object]]] = {
    FieldType.STRING: _to_string,
    FieldType.NUMBER: _to_number,
    FieldType.INTEGER: _to_integer,
    FieldType.PORT: _to_port,
    FieldType.BOOLEAN: _to_boolean,
    FieldType.EMAIL: _to_email,
    FieldType.JSON: _to_json,
    FieldType.DATE: _to_date,
    FieldType.TIMESTAMP: _to_timestamp,
    FieldType.DURATION: _to_duration,
    FieldType.CUSTOM: _to_custom,
}


__all__ = [
    "CoercionResult",
    "Url",
    "coerce",
]
