"""
env-resolver — provider capability contract.

File: src/env_resolver/providers/base.py
Last updated: 2026-10-18

Purpose
- Define the single capability every configuration source implements:
  a name plus an asynchronous ``load()`` returning raw string values.

What should be included in this file
- ``Provider`` / ``SyncProvider`` protocols and the ``ProviderSource`` tag used
  by source policies.
- Raw-environment normalization shared by the pipeline and the cache wrapper.
- ``StaticProvider`` for in-memory values.

Functional requirements
- Providers never retry, cache, or validate; decorators and the pipeline do.
- Malformed provider output is reported as ``ProviderError``.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Protocol, TypeAlias, runtime_checkable

from env_resolver.errors import ProviderError

RawEnvironment: TypeAlias = dict[str, str]


class ProviderSource(str, enum.Enum):
    """Where a provider's values come from; drives source policies."""

    PROCESS = "process"
    DOTENV = "dotenv"
    FILE = "file"
    REMOTE = "remote"
    MEMORY = "memory"
    UNKNOWN = "unknown"

    @property
    def is_file_based(self) -> bool:
        return self in (ProviderSource.DOTENV, ProviderSource.FILE)


@runtime_checkable
class Provider(Protocol):
    """Asynchronously produce a mapping of raw string key to value."""

    name: str

    async def load(self) -> Mapping[str, str]: ...


@runtime_checkable
class SyncProvider(Provider, Protocol):
    """A provider that can also load without an event loop."""

    def load_sync(self) -> Mapping[str, str]: ...


def provider_source(provider: object) -> ProviderSource:
    source = getattr(provider, "source", None)
    if isinstance(source, ProviderSource):
        return source
    if isinstance(source, str):
        try:
            return ProviderSource(source)
        except ValueError:
            return ProviderSource.UNKNOWN
    return ProviderSource.UNKNOWN


def provider_name(provider: object) -> str:
    name = getattr(provider, "name", None)
    if isinstance(name, str) and name.strip():
        return name
    return type(provider).__name__


def supports_sync(provider: object) -> bool:
    """Whether ``provider`` offers ``load_sync()``.

    Decorators set ``sync_capable`` to mirror the provider they wrap.
    """
    declared = getattr(provider, "sync_capable", None)
    if isinstance(declared, bool):
        return declared and callable(getattr(provider, "load_sync", None))
    return callable(getattr(provider, "load_sync", None))


def normalize_raw_environment(name: str, payload: object) -> RawEnvironment:
    """Validate provider output; ``None`` values are dropped as absent."""

    if not isinstance(payload, Mapping):
        raise ProviderError(name, f"load() must return a mapping, got {type(payload).__name__}")
    out: RawEnvironment = {}
    for key, value in payload.items():
        if not isinstance(key, str):
            raise ProviderError(name, f"keys must be strings, got {type(key).__name__}")
        if value is None:
            continue
        if not isinstance(value, str):
            raise ProviderError(
                name, f"value for {key!r} must be a string, got {type(value).__name__}"
            )
        out[key] = value
    return out


class StaticProvider:
    """Serve a fixed in-memory mapping."""

    def __init__(
        self,
        values: Mapping[str, str],
        *,
        name: str = "static",
        source: ProviderSource = ProviderSource.MEMORY,
    ) -> None:
        self.name = name
        self.source = source
        self._values = normalize_raw_environment(name, values)

    async def load(self) -> RawEnvironment:
        return dict(self._values)

    def load_sync(self) -> RawEnvironment:
        return dict(self._values)

    def __repr__(self) -> str:
        return f"StaticProvider(name={self.name!r}, keys={sorted(self._values)!r})"


def static(
    values: Mapping[str, str],
    *,
    name: str = "static",
    source: ProviderSource = ProviderSource.MEMORY,
) -> StaticProvider:
    return StaticProvider(values, name=name, source=source)


__all__ = [
    "Provider",
    "ProviderSource",
    "RawEnvironment",
    "StaticProvider",
    "SyncProvider",
    "normalize_raw_environment",
    "provider_name",
    "provider_source",
    "static",
    "supports_sync",
]
