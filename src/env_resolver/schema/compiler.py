"""
env-resolver — schema compiler.

File: src/env_resolver/schema/compiler.py
Last updated: 2026-10-18

Purpose
- Normalize verbose and shorthand schema declarations into ``FieldRule``
  objects before any provider I/O happens.

What should be included in this file
- Shape-based classification of each declared value into one rule variant.
- Schema-level checks: key names, empty enums, inverted bounds, defaults that
  contradict their type or enum, uncompilable patterns.
- ``CompiledSchema`` (read-only ordered mapping) and ``merge_schemas``.

Functional requirements
- Verbose and shorthand forms of the same field compile to equal rules.
- Malformed declarations raise ``SchemaError`` at compile time.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import replace
from types import MappingProxyType
from typing import Any, Final, TypeAlias

from env_resolver.errors import DuplicateKeyError, SchemaError
from env_resolver.schema.coercion import coerce
from env_resolver.schema.rules import (
    NO_DEFAULT,
    NUMERIC_TYPES,
    FieldRule,
    FieldType,
    parse_field_type,
)

DeclaredValue: TypeAlias = object

_ENV_NAME_PATTERN = re.compile(r"^[A-Z_][A-Z0-9_]*$")
# Only ``string`` takes the /regex/ form; "url:/path/" is a default.
_SHORTHAND_PATTERN = re.compile(r"^string:/(.*)/$")

_VERBOSE_KEYS: Final[frozenset[str]] = frozenset(
    {
        "type",
        "default",
        "optional",
        "secret",
        "enum",
        "pattern",
        "min",
        "max",
        "description",
        "validator",
    }
)


class CompiledSchema(Mapping[str, FieldRule]):
    """Immutable, ordered mapping of key name to compiled ``FieldRule``."""

    __slots__ = ("_rules",)

    def __init__(self, rules: Mapping[str, FieldRule]) -> None:
        self._rules: Mapping[str, FieldRule] = MappingProxyType(dict(rules))

    def __getitem__(self, key: str) -> FieldRule:
        return self._rules[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        body = ", ".join(f"{key}: {rule.describe()}" for key, rule in self._rules.items())
        return f"CompiledSchema({{{body}}})"

    @property
    def secret_keys(self) -> frozenset[str]:
        return frozenset(key for key, rule in self._rules.items() if rule.secret)

    @property
    def required_keys(self) -> tuple[str, ...]:
        return tuple(key for key, rule in self._rules.items() if not rule.is_optional)


SchemaDeclaration: TypeAlias = (
    Mapping[str, DeclaredValue] | Sequence[tuple[str, DeclaredValue]] | CompiledSchema
)


def compile_schema(declaration: SchemaDeclaration) -> CompiledSchema:
    """Compile a schema declaration, raising ``SchemaError`` on the first problem."""

    if isinstance(declaration, CompiledSchema):
        return declaration

    rules: dict[str, FieldRule] = {}
    for key, value in _iter_declaration(declaration):
        if key in rules:
            raise DuplicateKeyError("declared more than once in the same schema", key=key)
        _check_key_name(key)
        rules[key] = compile_field(key, value)
    return CompiledSchema(rules)


def compile_field(key: str, value: DeclaredValue) -> FieldRule:
    """Classify one declared value and return its validated ``FieldRule``."""

    if isinstance(value, FieldRule):
        rule = value
    elif isinstance(value, Mapping):
        rule = _from_verbose(key, value)
    elif isinstance(value, bool):
        rule = FieldRule(type=FieldType.BOOLEAN, default=value)
    elif isinstance(value, (int, float)):
        rule = FieldRule(type=FieldType.NUMBER, default=value)
    elif isinstance(value, str):
        rule = _from_shorthand(key, value)
    elif isinstance(value, (list, tuple)):
        rule = _from_enum_literal(key, value)
    elif callable(value):
        rule = FieldRule(type=FieldType.CUSTOM, validator=value)
    else:
        raise SchemaError(
            f"unsupported declaration of type {type(value).__name__}", key=key
        )

    _check_rule(key, rule)
    return rule


def merge_schemas(*schemas: CompiledSchema) -> CompiledSchema:
    """Merge compiled schemas; a key may repeat only with an identical rule."""

    merged: dict[str, FieldRule] = {}
    for schema in schemas:
        for key, rule in schema.items():
            existing = merged.get(key)
            if existing is None:
                merged[key] = rule
                continue
            if existing != rule:
                raise DuplicateKeyError(
                    f"declared in several schemas with different rules "
                    f"({existing.describe()} vs {rule.describe()})",
                    key=key,
                )
    return CompiledSchema(merged)


def enum_of(
    values: Sequence[str],
    *,
    default: str | None = None,
    default_first: bool = False,
    optional: bool = False,
    secret: bool = False,
    description: str | None = None,
) -> FieldRule:
    """Build an enum rule; ``default_first`` makes the first member the default."""

    members = tuple(values)
    if default_first and default is not None:
        raise SchemaError("pass either default or default_first, not both")
    resolved_default: object = NO_DEFAULT
    if default is not None:
        resolved_default = default
    elif default_first:
        if not members:
            raise SchemaError("enum must have at least one member")
        resolved_default = members[0]
    return FieldRule(
        type=FieldType.STRING,
        enum=members,
        default=resolved_default,
        optional=optional,
        secret=secret,
        description=description,
    )


def secret(value: DeclaredValue) -> FieldRule:
    """Mark a declared field as secret, whatever its declaration style."""

    rule = compile_field("<secret>", value)
    return replace(rule, secret=True)


def _iter_declaration(declaration: object) -> Iterator[tuple[str, DeclaredValue]]:
    if isinstance(declaration, Mapping):
        for key, value in declaration.items():
            if not isinstance(key, str):
                raise SchemaError(f"schema keys must be strings, got {type(key).__name__}")
            yield key, value
        return
    if isinstance(declaration, (list, tuple)):
        for item in declaration:
            if not (isinstance(item, (list, tuple)) and len(item) == 2):
                raise SchemaError("schema pairs must be (key, declaration) tuples")
            key, value = item
            if not isinstance(key, str):
                raise SchemaError(f"schema keys must be strings, got {type(key).__name__}")
            yield key, value
        return
    raise SchemaError(f"schema must be a mapping, got {type(declaration).__name__}")


def _check_key_name(key: str) -> None:
    if not _ENV_NAME_PATTERN.match(key):
        raise SchemaError(
            "invalid environment variable name; use uppercase letters, digits and "
            "underscores, not starting with a digit",
            key=key,
        )


def _from_verbose(key: str, payload: Mapping[str, Any]) -> FieldRule:
    unknown = sorted(str(name) for name in payload if name not in _VERBOSE_KEYS)
    if unknown:
        raise SchemaError("unknown rule option(s): " + ", ".join(unknown), key=key)

    raw_type = payload.get("type", FieldType.STRING)
    if isinstance(raw_type, FieldType):
        field_type = raw_type
    elif isinstance(raw_type, str):
        parsed = parse_field_type(raw_type)
        if parsed is None:
            raise SchemaError(f"unknown type {raw_type!r}", key=key)
        field_type = parsed
    else:
        raise SchemaError("type must be a string", key=key)

    validator = payload.get("validator")
    if validator is not None:
        if not callable(validator):
            raise SchemaError("validator must be callable", key=key)
        if "type" not in payload:
            field_type = FieldType.CUSTOM

    enum_values = payload.get("enum")
    if enum_values is not None:
        if isinstance(enum_values, str) or not isinstance(enum_values, (list, tuple)):
            raise SchemaError("enum must be a list of strings", key=key)
        enum_values = tuple(enum_values)

    return FieldRule(
        type=field_type,
        default=payload.get("default", NO_DEFAULT),
        optional=_as_flag(key, payload, "optional"),
        secret=_as_flag(key, payload, "secret"),
        enum=enum_values,
        pattern=payload.get("pattern"),
        min=_as_bound(key, payload, "min"),
        max=_as_bound(key, payload, "max"),
        description=payload.get("description"),
        validator=validator,
    )


def _from_shorthand(key: str, text: str) -> FieldRule:
    pattern_match = _SHORTHAND_PATTERN.match(text)
    if pattern_match:
        return FieldRule(type=FieldType.STRING, pattern=pattern_match.group(1))

    head, sep, default_text = text.partition(":")
    optional = head.endswith("?")
    type_token = head[:-1] if optional else head
    field_type = _shorthand_type(key, type_token, text)

    if not sep:
        return FieldRule(type=field_type, optional=optional)
    if not default_text:
        raise SchemaError(f"shorthand {text!r} has an empty default", key=key)
    return FieldRule(
        type=field_type,
        default=_shorthand_default(key, field_type, default_text),
        optional=optional,
    )


def _shorthand_type(key: str, token: str, text: str) -> FieldType:
    if "?" in token:
        raise SchemaError(f"ambiguous shorthand {text!r}", key=key)
    field_type = parse_field_type(token)
    if field_type is None:
        raise SchemaError(
            f"ambiguous shorthand {text!r}: {token!r} is not a known type "
            "(string defaults are written 'string:<value>')",
            key=key,
        )
    if field_type is FieldType.CUSTOM:
        raise SchemaError("custom fields need a validator callable", key=key)
    return field_type


def _shorthand_default(key: str, field_type: FieldType, text: str) -> object:
    try:
        if field_type in (FieldType.PORT, FieldType.INTEGER, FieldType.TIMESTAMP):
            return int(text)
        if field_type is FieldType.NUMBER:
            return float(text)
    except ValueError as exc:
        raise SchemaError(
            f"default {text!r} is not a valid {field_type.value}", key=key
        ) from exc
    if field_type is FieldType.BOOLEAN:
        lowered = text.lower()
        if lowered in {"true", "1"}:
            return True
        if lowered in {"false", "0"}:
            return False
        raise SchemaError(f"default {text!r} is not a valid boolean", key=key)
    return text


def _from_enum_literal(key: str, values: Sequence[object]) -> FieldRule:
    if not all(isinstance(item, str) for item in values):
        raise SchemaError("enum literals must be strings", key=key)
    return FieldRule(type=FieldType.STRING, enum=tuple(str(item) for item in values))


def _check_rule(key: str, rule: FieldRule) -> None:
    if rule.enum is not None:
        if not rule.enum:
            raise SchemaError("enum must have at least one member", key=key)
        if not all(isinstance(item, str) for item in rule.enum):
            raise SchemaError("enum members must be strings", key=key)
        if len(set(rule.enum)) != len(rule.enum):
            raise SchemaError("enum members must be unique", key=key)

    if rule.min is not None and rule.max is not None and rule.min > rule.max:
        raise SchemaError(f"min ({rule.min}) is greater than max ({rule.max})", key=key)

    if rule.pattern is not None:
        if not isinstance(rule.pattern, str):
            raise SchemaError("pattern must be a string", key=key)
        try:
            re.compile(rule.pattern)
        except re.error as exc:
            raise SchemaError(f"pattern does not compile: {exc}", key=key) from exc

    if rule.validator is not None and rule.type is not FieldType.CUSTOM:
        raise SchemaError("validator is only allowed on custom fields", key=key)
    if rule.type is FieldType.CUSTOM and rule.validator is None:
        raise SchemaError("custom fields need a validator callable", key=key)

    if rule.has_default:
        _check_default(key, rule)


def _check_default(key: str, rule: FieldRule) -> None:
    default = rule.default
    if rule.enum is not None:
        if default not in rule.enum:
            raise SchemaError(f"default {default!r} is not one of the enum members", key=key)
        return
    if isinstance(default, str):
        # String defaults are coerced like raw input, so pattern and bounds apply too.
        if rule.type is not FieldType.CUSTOM and default != "":
            result = coerce(replace(rule, default=NO_DEFAULT), default, key=key)
            if not result.ok:
                raise SchemaError(
                    f"default is invalid: {result.issues[0].message}", key=key
                )
        return

    if rule.type is FieldType.BOOLEAN:
        valid = isinstance(default, bool)
    elif rule.type in NUMERIC_TYPES:
        valid = (
            isinstance(default, (int, float))
            and not isinstance(default, bool)
            and math.isfinite(default)
        )
        if valid and rule.type is not FieldType.NUMBER:
            valid = float(default).is_integer()
        if valid and rule.type is FieldType.PORT:
            valid = 1 <= default <= 65535
    elif rule.type in (FieldType.JSON, FieldType.CUSTOM):
        valid = True
    else:
        valid = default is None
    if not valid:
        raise SchemaError(
            f"default {default!r} conflicts with type {rule.type.value}", key=key
        )

    if rule.type in NUMERIC_TYPES and isinstance(default, (int, float)):
        if (rule.min is not None and default < rule.min) or (
            rule.max is not None and default > rule.max
        ):
            raise SchemaError(f"default {default!r} is outside min/max", key=key)


def _as_flag(key: str, payload: Mapping[str, Any], name: str) -> bool:
    value = payload.get(name, False)
    if not isinstance(value, bool):
        raise SchemaError(f"{name} must be a boolean", key=key)
    return value


def _as_bound(key: str, payload: Mapping[str, Any], name: str) -> float | None:
    value = payload.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError(f"{name} must be a number", key=key)
    return value


__all__ = [
    "CompiledSchema",
    "DeclaredValue",
    "SchemaDeclaration",
    "compile_field",
    "compile_schema",
    "enum_of",
    "merge_schemas",
    "secret",
]
