"""
env-resolver — typed, validated environment configuration

File: src/env_resolver/__init__.py
Last updated: 2026-10-18

Purpose
- Package root. Declare what a service needs from its environment, read it
  from one or more providers, and get back a typed, read-only configuration
  or a report of everything that is wrong.

What should be included in this file
- Version export and the public API surface.

Functional requirements
- Must not have side effects at import time beyond attaching a
  ``NullHandler`` to the package logger.
"""

import logging

from env_resolver.constants import LOGGER_NAME
from env_resolver.errors import (
    AsyncProviderInSyncContext,
    DuplicateKeyError,
    EnvResolverError,
    IssueKind,
    PolicyBreach,
    PolicyViolation,
    ProviderError,
    SchemaError,
    ValidationError,
    ValidationIssue,
)
from env_resolver.observability import AuditEvent, AuditEventType, AuditLog, setup_logging
from env_resolver.providers import (
    TTL_5_MINUTES,
    TTL_6_HOURS,
    TTL_15_MINUTES,
    TTL_DAY,
    TTL_HOUR,
    TTL_MINUTE,
    TTL_SHORT,
    CachedProvider,
    CacheOptions,
    CacheState,
    Provider,
    ProviderSource,
    SyncProvider,
    cached,
    dotenv,
    process_env,
    retry,
    secrets_cache_options,
    static,
    timeout,
    yaml_file,
)
from env_resolver.resolution import (
    ConfigHandle,
    PolicyOptions,
    Provenance,
    ResolvedConfig,
    ResolveFailure,
    ResolveOptions,
    ResolveSuccess,
    resolve,
    resolve_sync,
    safe_resolve,
    safe_resolve_sync,
)
from env_resolver.schema import (
    NO_DEFAULT,
    FieldRule,
    FieldType,
    Url,
    compile_schema,
    enum_of,
    merge_schemas,
    secret,
)
from env_resolver.settings import RuntimeSettings, SettingsError

__version__ = "0.1.0"

logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())

__all__ = [
    "NO_DEFAULT",
    "TTL_15_MINUTES",
    "TTL_5_MINUTES",
    "TTL_6_HOURS",
    "TTL_DAY",
    "TTL_HOUR",
    "TTL_MINUTE",
    "TTL_SHORT",
    "AsyncProviderInSyncContext",
    "AuditEvent",
    "AuditEventType",
    "AuditLog",
    "CacheOptions",
    "CacheState",
    "CachedProvider",
    "ConfigHandle",
    "DuplicateKeyError",
    "EnvResolverError",
    "FieldRule",
    "FieldType",
    "IssueKind",
    "PolicyBreach",
    "PolicyOptions",
    "PolicyViolation",
    "Provenance",
    "Provider",
    "ProviderError",
    "ProviderSource",
    "ResolveFailure",
    "ResolveOptions",
    "ResolveSuccess",
    "ResolvedConfig",
    "RuntimeSettings",
    "SchemaError",
    "SettingsError",
    "SyncProvider",
    "Url",
    "ValidationError",
    "ValidationIssue",
    "__version__",
    "cached",
    "compile_schema",
    "dotenv",
    "enum_of",
    "merge_schemas",
    "process_env",
    "resolve",
    "resolve_sync",
    "retry",
    "safe_resolve",
    "safe_resolve_sync",
    "secret",
    "secrets_cache_options",
    "setup_logging",
    "static",
    "timeout",
    "yaml_file",
]
