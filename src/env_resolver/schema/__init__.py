"""Schema compilation and value coercion."""

from env_resolver.schema.coercion import CoercionResult, Url, coerce
from env_resolver.schema.compiler import (
    CompiledSchema,
    SchemaDeclaration,
    compile_field,
    compile_schema,
    enum_of,
    merge_schemas,
    secret,
)
from env_resolver.schema.rules import NO_DEFAULT, FieldRule, FieldType, parse_field_type

__all__ = [
    "CoercionResult",
    "CompiledSchema",
    "FieldRule",
    "FieldType",
    "NO_DEFAULT",
    "SchemaDeclaration",
    "Url",
    "coerce",
    "compile_field",
    "compile_schema",
    "enum_of",
    "merge_schemas",
    "parse_field_type",
    "secret",
]
