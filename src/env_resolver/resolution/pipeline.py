"""
env-resolver — resolution pipeline.

File: src/env_resolver/resolution/pipeline.py
Last updated: 2026-10-18

Purpose
- Turn ``(provider, schema)`` pairs into one validated, typed, read-only
  configuration.

What should be included in this file
- ``ResolveOptions`` and the ``ResolvedConfig`` result type.
- ``resolve`` / ``resolve_sync`` and their non-raising ``safe_*`` variants.

Functional requirements
- Schemas are compiled and merged before any provider is loaded.
- Providers load concurrently; the first failure cancels the rest and
  surfaces as ``ProviderError`` naming the provider.
- Precedence follows declaration order, never completion order.
- Policies run before coercion; every field issue is reported at once.

Non-functional requirements
- Secret values never reach logs, audit events, error messages or ``repr``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, TypeAlias

from env_resolver.errors import (
    AsyncProviderInSyncContext,
    EnvResolverError,
    IssueKind,
    PolicyViolation,
    ProviderError,
    SchemaError,
    ValidationError,
    ValidationIssue,
)
from env_resolver.observability.audit import AuditEventType, AuditLog
from env_resolver.providers.base import (
    Provider,
    RawEnvironment,
    normalize_raw_environment,
    provider_name,
    provider_source,
    supports_sync,
)
from env_resolver.providers.cache import CachedProvider
from env_resolver.providers.local import process_env
from env_resolver.resolution.interpolation import interpolate
from env_resolver.resolution.merge import (
    LoadedEnvironment,
    Priority,
    Provenance,
    merge_environments,
)
from env_resolver.resolution.policy import PolicyOptions, check_policies
from env_resolver.schema.coercion import coerce
from env_resolver.schema.compiler import (
    CompiledSchema,
    SchemaDeclaration,
    compile_schema,
    merge_schemas,
)
from env_resolver.security.redaction import REDACTED_VALUE
from env_resolver.settings import RuntimeSettings, runtime_environment
from env_resolver.utils.concurrency import gather_fail_fast

_module_logger = logging.getLogger(__name__)

ResolvePair: TypeAlias = tuple[Provider, SchemaDeclaration]


@dataclass(frozen=True, slots=True)
class ResolveOptions:
    """Pipeline switches.

    ``environment`` overrides the runtime indicator read from the process
    environment. ``audit`` and ``logger`` are caller-owned sinks.
    """

    interpolate: bool = False
    strict: bool = False
    priority: Priority = "last"
    environment: str | None = None
    policies: PolicyOptions | None = None
    audit: AuditLog | None = None
    logger: logging.Logger | None = None

    def __post_init__(self) -> None:
        if self.priority not in ("last", "first"):
            raise ValueError(f"priority must be 'last' or 'first', got {self.priority!r}")

    @property
    def resolved_environment(self) -> str:
        if self.environment is not None and self.environment.strip():
            return self.environment.strip().lower()
        return runtime_environment()

    @classmethod
    def from_settings(
        cls, settings: RuntimeSettings | None = None, **overrides: Any
    ) -> ResolveOptions:
        """Options bound to ``settings``: its environment, plus a fresh ``AuditLog``
        when auditing is enabled. ``overrides`` win over both."""

        resolved = settings if settings is not None else RuntimeSettings.from_env()
        options = cls(
            environment=resolved.environment,
            audit=AuditLog() if resolved.audit else None,
        )
        return replace(options, **overrides) if overrides else options


class ResolvedConfig(Mapping[str, Any]):
    """Read-only mapping of every declared key to its typed value.

    Keys are also readable as attributes (``config.PORT``). ``repr`` and
    ``redacted()`` mask secret fields.
    """

    __slots__ = ("_provenance", "_schema", "_values")

    def __init__(
        self,
        values: Mapping[str, Any],
        *,
        schema: CompiledSchema,
        provenance: Mapping[str, Provenance] | None = None,
    ) -> None:
        object.__setattr__(self, "_values", dict(values))
        object.__setattr__(self, "_schema", schema)
        object.__setattr__(self, "_provenance", dict(provenance or {}))

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        values = object.__getattribute__(self, "_values")
        try:
            return values[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!s} has no key {name!r}") from None

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __repr__(self) -> str:
        return f"ResolvedConfig({self.redacted()!r})"

    @property
    def schema(self) -> CompiledSchema:
        return self._schema

    def provenance(self, key: str) -> Provenance | None:
        """Provider that supplied ``key``; ``None`` for defaults and absent optionals."""
        return self._provenance.get(key)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def redacted(self) -> dict[str, Any]:
        secret_keys = self._schema.secret_keys
        return {
            key: (REDACTED_VALUE if key in secret_keys and value is not None else value)
            for key, value in self._values.items()
        }


@dataclass(frozen=True, slots=True)
class ResolveSuccess:
    config: ResolvedConfig
    ok: bool = True


@dataclass(frozen=True, slots=True)
class ResolveFailure:
    error: EnvResolverError
    ok: bool = False

    @property
    def message(self) -> str:
        return str(self.error)


ResolveResult: TypeAlias = ResolveSuccess | ResolveFailure


@dataclass(frozen=True, slots=True)
class _Plan:
    providers: tuple[Provider, ...]
    schema: CompiledSchema


async def resolve(
    *pairs: ResolvePair | SchemaDeclaration,
    options: ResolveOptions | None = None,
) -> ResolvedConfig:
    """Load, merge, check and coerce; raise on the first structural failure.

    A bare schema in place of a pair reads from the process environment.
    """

    opts = options or ResolveOptions()
    plan = _plan(pairs)
    loaded = await gather_fail_fast([_load(provider, opts) for provider in plan.providers])
    return _finish(plan, loaded, opts)


def resolve_sync(
    *pairs: ResolvePair | SchemaDeclaration,
    options: ResolveOptions | None = None,
) -> ResolvedConfig:
    """Synchronous ``resolve``; every provider must support ``load_sync()``.

    Providers load sequentially in declaration order.
    """

    opts = options or ResolveOptions()
    plan = _plan(pairs)
    for provider in plan.providers:
        if not supports_sync(provider):
            raise AsyncProviderInSyncContext(provider_name(provider))
    loaded = [_load_sync(provider, opts) for provider in plan.providers]
    return _finish(plan, loaded, opts)


async def safe_resolve(
    *pairs: ResolvePair | SchemaDeclaration,
    options: ResolveOptions | None = None,
) -> ResolveResult:
    try:
        return ResolveSuccess(await resolve(*pairs, options=options))
    except EnvResolverError as exc:
        return ResolveFailure(exc)


def safe_resolve_sync(
    *pairs: ResolvePair | SchemaDeclaration,
    options: ResolveOptions | None = None,
) -> ResolveResult:
    try:
        return ResolveSuccess(resolve_sync(*pairs, options=options))
    except EnvResolverError as exc:
        return ResolveFailure(exc)


def _plan(pairs: Sequence[ResolvePair | SchemaDeclaration]) -> _Plan:
    if not pairs:
        raise SchemaError("at least one (provider, schema) pair is required")
    providers: list[Provider] = []
    schemas: list[CompiledSchema] = []
    for item in pairs:
        if _is_pair(item):
            provider, declaration = item  # type: ignore[misc]
        else:
            provider, declaration = process_env(), item
        providers.append(provider)
        schemas.append(compile_schema(declaration))
    return _Plan(providers=tuple(providers), schema=merge_schemas(*schemas))


def _is_pair(item: object) -> bool:
    return (
        isinstance(item, tuple)
        and len(item) == 2
        and callable(getattr(item[0], "load", None))
    )


async def _load(provider: Provider, options: ResolveOptions) -> LoadedEnvironment:
    name = provider_name(provider)
    cached = False
    try:
        if isinstance(provider, CachedProvider):
            result = await provider.load_detailed()
            values, cached = result.value, result.cached
        else:
            values = normalize_raw_environment(name, await provider.load())
    except ProviderError as exc:
        _report_failure(name, exc, options)
        raise
    except Exception as exc:
        error = ProviderError(name, str(exc) or type(exc).__name__)
        _report_failure(name, error, options)
        raise error from exc
    return _loaded(provider, values, cached, options)


def _load_sync(provider: Provider, options: ResolveOptions) -> LoadedEnvironment:
    name = provider_name(provider)
    cached = False
    try:
        if isinstance(provider, CachedProvider):
            result = provider.load_sync_detailed()
            values, cached = result.value, result.cached
        else:
            payload = provider.load_sync()  # type: ignore[attr-defined]
            values = normalize_raw_environment(name, payload)
    except AsyncProviderInSyncContext:
        raise
    except ProviderError as exc:
        _report_failure(name, exc, options)
        raise
    except Exception as exc:
        error = ProviderError(name, str(exc) or type(exc).__name__)
        _report_failure(name, error, options)
        raise error from exc
    return _loaded(provider, values, cached, options)


def _report_failure(name: str, error: ProviderError, options: ResolveOptions) -> None:
    _logger(options).error(
        "provider load failed", extra={"provider": name, "error": str(error)}
    )
    if options.audit is not None:
        options.audit.record(AuditEventType.PROVIDER_ERROR, source=name, error=str(error))


def _loaded(
    provider: Provider, values: RawEnvironment, cached: bool, options: ResolveOptions
) -> LoadedEnvironment:
    name = provider_name(provider)
    _logger(options).debug(
        "provider loaded", extra={"provider": name, "keys": len(values), "cached": cached}
    )
    if options.audit is not None:
        options.audit.record(
            AuditEventType.ENV_LOADED,
            source=name,
            metadata={"key_count": len(values), "cached": cached},
        )
    return LoadedEnvironment(
        provider=name, source=provider_source(provider), values=values, cached=cached
    )


def _finish(
    plan: _Plan, loaded: Sequence[LoadedEnvironment], options: ResolveOptions
) -> ResolvedConfig:
    log = _logger(options)
    schema = plan.schema
    merged, provenance = merge_environments(loaded, priority=options.priority)

    environment = options.resolved_environment
    breaches = check_policies(
        schema.keys(), provenance, environment=environment, policies=options.policies
    )
    if breaches:
        for breach in breaches:
            if options.audit is not None:
                options.audit.record(
                    AuditEventType.POLICY_VIOLATION,
                    key=breach.key,
                    source=breach.source,
                    error=breach.message,
                )
        log.error(
            "configuration policy violated",
            extra={"keys": [breach.key for breach in breaches], "environment": environment},
        )
        raise PolicyViolation(breaches)

    if options.interpolate:
        merged = interpolate(merged)

    values: dict[str, Any] = {}
    issues: list[ValidationIssue] = []
    for key, rule in schema.items():
        result = coerce(rule, merged.get(key), key=key)
        if result.ok:
            values[key] = result.value
        else:
            issues.extend(result.issues)

    if options.strict:
        for key in merged:
            if key not in schema:
                issues.append(
                    ValidationIssue(key, IssueKind.UNKNOWN_KEY, "key is not declared in any schema")
                )

    if issues:
        if options.audit is not None:
            for issue in issues:
                options.audit.record(
                    AuditEventType.VALIDATION_FAILURE,
                    key=issue.key,
                    source=_provider_of(provenance, issue.key),
                    error=f"{issue.kind.value}: {issue.message}",
                )
        log.warning(
            "configuration validation failed",
            extra={"keys": list(dict.fromkeys(issue.key for issue in issues))},
        )
        raise ValidationError(issues)

    declared_provenance = {key: provenance[key] for key in schema if key in provenance}
    if options.audit is not None:
        options.audit.record(
            AuditEventType.VALIDATION_SUCCESS,
            metadata={"key_count": len(values), "environment": environment},
        )
    log.info(
        "configuration resolved",
        extra={"key_count": len(values), "providers": [item.provider for item in loaded]},
    )
    return ResolvedConfig(values, schema=schema, provenance=declared_provenance)


def _provider_of(provenance: Mapping[str, Provenance], key: str) -> str | None:
    origin = provenance.get(key)
    return origin.provider if origin is not None else None


def _logger(options: ResolveOptions) -> logging.Logger:
    return options.logger if options.logger is not None else _module_logger


__all__ = [
    "ResolveFailure",
    "ResolveOptions",
    "ResolvePair",
    "ResolveResult",
    "ResolveSuccess",
    "ResolvedConfig",
    "resolve",
    "resolve_sync",
    "safe_resolve",
    "safe_resolve_sync",
]
