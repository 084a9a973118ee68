"""Unit tests for the resolver's own runtime settings."""

from __future__ import annotations

import logging

import pytest

from env_resolver.settings import RuntimeSettings, SettingsError, is_production, runtime_environment


@pytest.mark.unit
def test_defaults() -> None:
    settings = RuntimeSettings.from_env({})
    assert settings.environment == "development"
    assert settings.log_level == "WARNING"
    assert settings.log_level_number == logging.WARNING
    assert settings.log_format == "json"
    assert settings.audit is False


@pytest.mark.unit
def test_values_are_read_from_prefixed_variables() -> None:
    settings = RuntimeSettings.from_env(
        {
            "ENV_RESOLVER_ENVIRONMENT": "Staging",
            "ENV_RESOLVER_LOG_LEVEL": "debug",
            "ENV_RESOLVER_LOG_FORMAT": "TEXT",
            "ENV_RESOLVER_AUDIT": "yes",
        }
    )
    assert settings == RuntimeSettings(
        environment="staging", log_level="DEBUG", log_format="text", audit=True
    )


@pytest.mark.unit
def test_audit_defaults_on_in_production() -> None:
    assert RuntimeSettings.from_env({"APP_ENV": "production"}).audit is True
    assert RuntimeSettings.from_env({"APP_ENV": "production", "ENV_RESOLVER_AUDIT": "off"}).audit is False


@pytest.mark.unit
@pytest.mark.parametrize(
    ("environ", "message"),
    [
        ({"ENV_RESOLVER_LOG_LEVEL": "verbose"}, "ENV_RESOLVER_LOG_LEVEL"),
        ({"ENV_RESOLVER_LOG_FORMAT": "xml"}, "ENV_RESOLVER_LOG_FORMAT"),
        ({"ENV_RESOLVER_AUDIT": "sometimes"}, "ENV_RESOLVER_AUDIT"),
    ],
)
def test_invalid_values_name_the_variable(environ: dict[str, str], message: str) -> None:
    with pytest.raises(SettingsError, match=message):
        RuntimeSettings.from_env(environ)


@pytest.mark.unit
def test_runtime_environment_precedence() -> None:
    environ = {"ENVIRONMENT": "test", "PYTHON_ENV": "staging", "APP_ENV": " "}
    assert runtime_environment(environ) == "staging"
    environ["ENV_RESOLVER_ENVIRONMENT"] = "PRODUCTION"
    assert runtime_environment(environ) == "production"
    assert runtime_environment({}) == "development"


@pytest.mark.unit
@pytest.mark.parametrize(("value", "expected"), [("production", True), (" Production ", True), ("prod", False), (None, False)])
def test_is_production(value: str | None, expected: bool) -> None:
    assert is_production(value) is expected
