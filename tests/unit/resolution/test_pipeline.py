"""
env-resolver — unit tests for the resolution pipeline

File: tests/unit/resolution/test_pipeline.py
Last updated: 2026-10-18

Purpose
- Validate load, merge, policy, interpolation and coercion end to end over
  in-memory providers.

What this test file should cover
- Declaration-order precedence independent of completion order.
- Aggregated validation issues, strict mode and fail-fast provider errors.
- Production source policies and per-key source pinning.
- Sync resolution, safe variants, provenance, audit and redaction.

Non-functional requirements
- Deterministic: the runtime environment is always passed explicitly.
"""

from __future__ import annotations

import asyncio

import pytest

from env_resolver.errors import (
    AsyncProviderInSyncContext,
    DuplicateKeyError,
    IssueKind,
    PolicyViolation,
    ProviderError,
    SchemaError,
    ValidationError,
)
from env_resolver.observability.audit import AuditEventType, AuditLog
from env_resolver.providers.base import ProviderSource, StaticProvider
from env_resolver.providers.cache import cached
from env_resolver.resolution.pipeline import (
    ResolvedConfig,
    ResolveFailure,
    ResolveOptions,
    ResolveSuccess,
    resolve,
    resolve_sync,
    safe_resolve,
    safe_resolve_sync,
)
from env_resolver.resolution.policy import PolicyOptions
from env_resolver.schema.compiler import secret
from env_resolver.security.redaction import REDACTED_VALUE
from env_resolver.settings import RuntimeSettings

DEV = ResolveOptions(environment="development")
PROD = ResolveOptions(environment="production")


class DelayedProvider:
    """Async-only provider that answers after ``delay`` seconds."""

    source = ProviderSource.REMOTE

    def __init__(self, name: str, values: dict[str, str], delay: float = 0.0) -> None:
        self.name = name
        self.values = values
        self.delay = delay
        self.calls = 0
        self.finished = False

    async def load(self) -> dict[str, str]:
        self.calls += 1
        await asyncio.sleep(self.delay)
        self.finished = True
        return dict(self.values)


class BrokenProvider:
    name = "vault"

    async def load(self) -> dict[str, str]:
        raise RuntimeError("permission denied")


def _static(values: dict[str, str], *, name: str = "static", source=ProviderSource.MEMORY):
    return StaticProvider(values, name=name, source=source)


async def test_defaults_fill_an_empty_environment() -> None:
    schema = {
        "PORT": {"type": "port", "default": 3000},
        "NODE_ENV": {
            "type": "string",
            "enum": ["development", "production", "test"],
            "default": "development",
        },
    }
    config = await resolve((_static({}), schema), options=DEV)
    assert config.to_dict() == {"PORT": 3000, "NODE_ENV": "development"}


async def test_out_of_range_port_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        await resolve((_static({"PORT": "99999"}), {"PORT": "port"}), options=DEV)
    assert [issue.kind for issue in exc_info.value.issues] == [IssueKind.INVALID_PORT]


async def test_every_field_issue_is_reported_together() -> None:
    with pytest.raises(ValidationError) as exc_info:
        await resolve((_static({"A": "abc"}), {"A": "number", "B": "url"}), options=DEV)
    issues = exc_info.value.issues
    assert [(issue.key, issue.kind) for issue in issues] == [
        ("A", IssueKind.INVALID_NUMBER),
        ("B", IssueKind.MISSING_REQUIRED),
    ]
    assert exc_info.value.keys == ("A", "B")


async def test_declaration_order_wins_over_completion_order() -> None:
    file_provider = DelayedProvider("file", {"DATABASE_URL": "postgres://file/app"}, delay=0.02)
    secrets_provider = DelayedProvider("secrets", {"DATABASE_URL": "postgres://vault/app"})
    schema = {"DATABASE_URL": "url"}

    config = await resolve((file_provider, schema), (secrets_provider, schema), options=DEV)

    assert config["DATABASE_URL"] == "postgres://vault/app"
    assert config.provenance("DATABASE_URL").provider == "secrets"


async def test_priority_first_keeps_earliest_value() -> None:
    options = ResolveOptions(environment="development", priority="first")
    config = await resolve(
        (_static({"HOST": "a"}, name="one"), {"HOST": "string"}),
        (_static({"HOST": "b"}, name="two"), {}),
        options=options,
    )
    assert config.HOST == "a"


async def test_later_empty_string_clears_earlier_value() -> None:
    config = await resolve(
        (_static({"HOST": "db"}, name="one"), {"HOST": "string?"}),
        (_static({"HOST": ""}, name="two"), {}),
        options=DEV,
    )
    assert config.HOST is None

    with pytest.raises(ValidationError) as exc_info:
        await resolve(
            (_static({"HOST": "db"}, name="one"), {"HOST": "string"}),
            (_static({"HOST": ""}, name="two"), {}),
            options=DEV,
        )
    assert exc_info.value.issues[0].kind is IssueKind.MISSING_REQUIRED


async def test_provider_failure_fails_fast_and_names_the_provider() -> None:
    slow = DelayedProvider("slow", {"A": "1"}, delay=5)
    audit = AuditLog()
    options = ResolveOptions(environment="development", audit=audit)

    with pytest.raises(ProviderError) as exc_info:
        await resolve((slow, {"A": "string"}), (BrokenProvider(), {"B": "string"}), options=options)

    assert exc_info.value.provider == "vault"
    assert "permission denied" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert not slow.finished
    assert [event.type for event in audit.events()] == [AuditEventType.PROVIDER_ERROR]


async def test_schema_conflict_is_raised_before_any_load() -> None:
    provider = DelayedProvider("remote", {})
    with pytest.raises(DuplicateKeyError):
        await resolve((provider, {"PORT": "port"}), (provider, {"PORT": "string"}), options=DEV)
    assert provider.calls == 0


async def test_no_pairs_is_a_schema_error() -> None:
    with pytest.raises(SchemaError):
        await resolve(options=DEV)


async def test_dotenv_secret_in_production_is_a_policy_violation() -> None:
    provider = _static({"API_KEY": "not-valid"}, name="dotenv(.env)", source=ProviderSource.DOTENV)
    schema = {"API_KEY": secret({"type": "string", "pattern": "^sk_"})}

    with pytest.raises(PolicyViolation) as exc_info:
        await resolve((provider, schema), options=PROD)

    breach = exc_info.value.breaches[0]
    assert breach.key == "API_KEY"
    assert breach.source == "dotenv(.env)"
    assert "not-valid" not in str(exc_info.value)


async def test_dotenv_values_are_accepted_outside_production() -> None:
    provider = _static({"PORT": "8080"}, name="dotenv(.env)", source=ProviderSource.DOTENV)
    config = await resolve((provider, {"PORT": "port"}), options=DEV)
    assert config.PORT == 8080


@pytest.mark.unit
def test_dotenv_allowance_by_key_and_globally() -> None:
    provider = _static(
        {"PORT": "8080", "TOKEN": "abc"}, name="dotenv(.env)", source=ProviderSource.DOTENV
    )
    schema = {"PORT": "port", "TOKEN": "string"}

    per_key = ResolveOptions(
        environment="production",
        policies=PolicyOptions(allow_dotenv_in_production=["PORT"]),
    )
    with pytest.raises(PolicyViolation) as exc_info:
        resolve_sync((provider, schema), options=per_key)
    assert [breach.key for breach in exc_info.value.breaches] == ["TOKEN"]

    everything = ResolveOptions(
        environment="production",
        policies=PolicyOptions(allow_dotenv_in_production=True),
    )
    assert resolve_sync((provider, schema), options=everything).to_dict() == {
        "PORT": 8080,
        "TOKEN": "abc",
    }


@pytest.mark.unit
def test_enforced_sources_apply_in_every_environment() -> None:
    schema = {"API_KEY": "string"}
    pinned = PolicyOptions(enforce_allowed_sources={"API_KEY": ["vault"]})

    with pytest.raises(PolicyViolation, match="must be sourced from one of: vault"):
        resolve_sync(
            (_static({"API_KEY": "x"}), schema),
            options=ResolveOptions(environment="development", policies=pinned),
        )

    by_tag = PolicyOptions(enforce_allowed_sources={"API_KEY": ["memory"]})
    config = resolve_sync(
        (_static({"API_KEY": "x"}), schema),
        options=ResolveOptions(environment="development", policies=by_tag),
    )
    assert config.API_KEY == "x"


async def test_policy_is_checked_before_validation() -> None:
    provider = _static({"PORT": "not-a-port"}, name="config.yaml", source=ProviderSource.FILE)
    with pytest.raises(PolicyViolation):
        await resolve((provider, {"PORT": "port"}), options=PROD)


@pytest.mark.unit
def test_strict_mode_rejects_undeclared_keys() -> None:
    provider = _static({"PORT": "80", "EXTRA": "1", "OTHER": "2"})
    options = ResolveOptions(environment="development", strict=True)
    with pytest.raises(ValidationError) as exc_info:
        resolve_sync((provider, {"PORT": "port"}), options=options)
    assert [(issue.key, issue.kind) for issue in exc_info.value.issues] == [
        ("EXTRA", IssueKind.UNKNOWN_KEY),
        ("OTHER", IssueKind.UNKNOWN_KEY),
    ]

    lenient = resolve_sync((provider, {"PORT": "port"}), options=DEV)
    assert dict(lenient) == {"PORT": 80}


@pytest.mark.unit
def test_interpolation_is_opt_in() -> None:
    provider = _static({"HOST": "db", "PORT": "5432", "URL": "postgres://${HOST}:${PORT}/app"})
    schema = {"HOST": "string", "PORT": "port", "URL": "string"}

    off = resolve_sync((provider, schema), options=DEV)
    assert off.URL == "postgres://${HOST}:${PORT}/app"

    on = resolve_sync(
        (provider, schema), options=ResolveOptions(environment="development", interpolate=True)
    )
    assert on.URL == "postgres://db:5432/app"


@pytest.mark.unit
def test_secret_values_are_not_rewritten_by_default() -> None:
    provider = _static({"PASSWORD": "a${HOME}b", "HOME": "/root"})
    config = resolve_sync((provider, {"PASSWORD": secret("string")}), options=DEV)
    assert config.PASSWORD == "a${HOME}b"


@pytest.mark.unit
def test_unresolved_reference_is_left_for_validation() -> None:
    provider = _static({"URL": "${MISSING_HOST}/v1"})
    with pytest.raises(ValidationError) as exc_info:
        resolve_sync((provider, {"URL": "url"}), options=DEV)
    assert exc_info.value.issues[0].kind is IssueKind.INVALID_URL


@pytest.mark.unit
def test_resolve_sync_rejects_async_only_providers_before_loading() -> None:
    remote = DelayedProvider("remote", {"A": "1"})
    with pytest.raises(AsyncProviderInSyncContext) as exc_info:
        resolve_sync((_static({}), {}), (remote, {"A": "string"}), options=DEV)
    assert exc_info.value.provider == "remote"
    assert remote.calls == 0


@pytest.mark.unit
def test_resolve_sync_wraps_unexpected_errors() -> None:
    class Exploding:
        name = "exploding"

        async def load(self) -> dict[str, str]:
            return {}

        def load_sync(self) -> dict[str, str]:
            raise OSError("disk unavailable")

    with pytest.raises(ProviderError, match="disk unavailable"):
        resolve_sync((Exploding(), {"A": "string?"}), options=DEV)


@pytest.mark.unit
def test_bare_schema_reads_the_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENV_RESOLVER_PIPELINE_PORT", "8080")
    config = resolve_sync({"ENV_RESOLVER_PIPELINE_PORT": "port"}, options=DEV)
    assert config["ENV_RESOLVER_PIPELINE_PORT"] == 8080
    assert config.provenance("ENV_RESOLVER_PIPELINE_PORT").source is ProviderSource.PROCESS


async def test_safe_resolve_returns_discriminated_results() -> None:
    success = await safe_resolve((_static({"A": "1"}), {"A": "number"}), options=DEV)
    assert isinstance(success, ResolveSuccess)
    assert success.ok
    assert success.config.A == 1.0

    failure = await safe_resolve((_static({}), {"A": "number"}), options=DEV)
    assert isinstance(failure, ResolveFailure)
    assert not failure.ok
    assert isinstance(failure.error, ValidationError)
    assert "MissingRequired" in failure.message


async def test_safe_resolve_reports_oversized_values_as_validation_failures() -> None:
    result = await safe_resolve(
        (_static({"PORT": "9" * 5000, "TTL": "99999999999999d"}), {"PORT": "port", "TTL": "duration"}),
        options=DEV,
    )
    assert isinstance(result, ResolveFailure)
    assert isinstance(result.error, ValidationError)
    assert result.error.keys == ("PORT", "TTL")


@pytest.mark.unit
def test_safe_resolve_sync_captures_sync_misuse() -> None:
    result = safe_resolve_sync((DelayedProvider("remote", {}), {}), options=DEV)
    assert not result.ok
    assert isinstance(result.error, AsyncProviderInSyncContext)


@pytest.mark.unit
def test_resolved_config_is_read_only_mapping() -> None:
    config = resolve_sync((_static({"PORT": "80"}), {"PORT": "port", "NAME": "string?"}), options=DEV)
    assert isinstance(config, ResolvedConfig)
    assert config.PORT == 80
    assert config.NAME is None
    assert len(config) == 2
    with pytest.raises(AttributeError):
        config.PORT = 81  # type: ignore[misc]
    with pytest.raises(TypeError):
        config["PORT"] = 81  # type: ignore[index]
    with pytest.raises(AttributeError):
        _ = config.MISSING


@pytest.mark.unit
def test_provenance_tracks_supplier_and_skips_defaults() -> None:
    config = resolve_sync(
        (_static({"HOST": "db"}, name="defaults"), {"HOST": "string", "PORT": "port:5432"}),
        options=DEV,
    )
    origin = config.provenance("HOST")
    assert origin is not None
    assert origin.provider == "defaults"
    assert origin.source is ProviderSource.MEMORY
    assert config.provenance("PORT") is None


@pytest.mark.unit
def test_secret_values_are_masked_in_repr_and_errors() -> None:
    config = resolve_sync(
        (_static({"TOKEN": "sk_live_123", "HOST": "db"}), {"TOKEN": secret("string"), "HOST": "string"}),
        options=DEV,
    )
    assert config.TOKEN == "sk_live_123"
    assert "sk_live_123" not in repr(config)
    assert config.redacted() == {"TOKEN": REDACTED_VALUE, "HOST": "db"}

    with pytest.raises(ValidationError) as exc_info:
        resolve_sync((_static({"TOKEN": "hunter2"}), {"TOKEN": secret("port")}), options=DEV)
    assert "hunter2" not in str(exc_info.value)


@pytest.mark.unit
def test_audit_log_records_the_resolution() -> None:
    audit = AuditLog()
    options = ResolveOptions(environment="development", audit=audit)
    resolve_sync(
        (_static({"A": "1"}, name="one"), {"A": "number"}),
        (_static({}, name="two"), {}),
        options=options,
    )
    events = audit.events()
    assert [event.type for event in events] == [
        AuditEventType.ENV_LOADED,
        AuditEventType.ENV_LOADED,
        AuditEventType.VALIDATION_SUCCESS,
    ]
    assert [event.source for event in events[:2]] == ["one", "two"]

    audit.clear()
    with pytest.raises(ValidationError):
        resolve_sync((_static({"A": "x"}, name="one"), {"A": "number"}), options=options)
    failures = audit.events(AuditEventType.VALIDATION_FAILURE)
    assert [(event.key, event.source) for event in failures] == [("A", "one")]


async def test_repeat_resolution_within_ttl_fetches_once() -> None:
    inner = DelayedProvider("secrets", {"TOKEN": "abc"})
    provider = cached(inner, ttl=60)
    schema = {"TOKEN": secret("string")}

    first = await resolve((provider, schema), options=DEV)
    second = await resolve((provider, schema), options=DEV)

    assert first == second
    assert inner.calls == 1
    assert first.provenance("TOKEN").cached is False
    assert second.provenance("TOKEN").cached is True


@pytest.mark.unit
def test_invalid_priority_is_rejected() -> None:
    with pytest.raises(ValueError, match="priority"):
        ResolveOptions(priority="middle")  # type: ignore[arg-type]


@pytest.mark.unit
def test_explicit_environment_overrides_process_indicator(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ENV_RESOLVER_ENVIRONMENT", raising=False)
    monkeypatch.setenv("APP_ENV", "production")
    assert ResolveOptions().resolved_environment == "production"
    assert ResolveOptions(environment=" Staging ").resolved_environment == "staging"


@pytest.mark.unit
def test_options_from_settings_enable_audit_in_production() -> None:
    production = ResolveOptions.from_settings(RuntimeSettings(environment="production", audit=True))
    assert production.resolved_environment == "production"
    assert isinstance(production.audit, AuditLog)

    development = ResolveOptions.from_settings(RuntimeSettings(), strict=True)
    assert development.audit is None
    assert development.strict is True
    assert development.resolved_environment == "development"
