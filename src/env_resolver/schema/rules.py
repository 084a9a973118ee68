"""Field rule vocabulary shared by the coercion engine and the schema compiler."""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final


class FieldType(str, enum.Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    PORT = "port"
    URL = "url"
    HTTP = "http"
    HTTPS = "https"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    MONGODB = "mongodb"
    REDIS = "redis"
    EMAIL = "email"
    JSON = "json"
    DATE = "date"
    TIMESTAMP = "timestamp"
    DURATION = "duration"
    CUSTOM = "custom"

    def __str__(self) -> str:
        return self.value


# Accepted spellings beyond the canonical names.
TYPE_ALIASES: Final[dict[str, FieldType]] = {
    "str": FieldType.STRING,
    "float": FieldType.NUMBER,
    "int": FieldType.INTEGER,
    "bool": FieldType.BOOLEAN,
    "postgresql": FieldType.POSTGRES,
}

NUMERIC_TYPES: Final[frozenset[FieldType]] = frozenset(
    {FieldType.NUMBER, FieldType.INTEGER, FieldType.PORT, FieldType.TIMESTAMP}
)


def parse_field_type(name: str) -> FieldType | None:
    """Return the ``FieldType`` named by ``name`` or ``None`` when unknown."""

    token = name.strip().lower()
    if not token:
        return None
    if token in TYPE_ALIASES:
        return TYPE_ALIASES[token]
    try:
        return FieldType(token)
    except ValueError:
        return None


class _NoDefault:
    __slots__ = ()

    def __repr__(self) -> str:
        return "NO_DEFAULT"

    def __bool__(self) -> bool:
        return False


NO_DEFAULT: Final = _NoDefault()


@dataclass(frozen=True, slots=True)
class FieldRule:
    """Declarative description of one configuration key.

    A rule with a default is implicitly optional. ``min``/``max`` bound the
    value of numeric types and the length of ``string`` values.
    """

    type: FieldType = FieldType.STRING
    default: object = NO_DEFAULT
    optional: bool = False
    secret: bool = False
    enum: tuple[str, ...] | None = None
    pattern: str | None = None
    min: float | None = None
    max: float | None = None
    description: str | None = None
    validator: Callable[[str], object] | None = None

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    @property
    def is_optional(self) -> bool:
        return self.optional or self.has_default

    def describe(self) -> str:
        """Short human-readable summary, safe to log."""

        parts = [self.type.value]
        if self.enum is not None:
            parts.append("one of " + "|".join(self.enum))
        if self.is_optional:
            parts.append("optional")
        if self.secret:
            parts.append("secret")
        return ", ".join(parts)


__all__ = [
    "FieldRule",
    "FieldType",
    "NO_DEFAULT",
    "NUMERIC_TYPES",
    "TYPE_ALIASES",
    "parse_field_type",
]
