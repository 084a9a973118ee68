"""Unit tests for the resolve-once configuration handle."""

from __future__ import annotations

import asyncio

import pytest

from env_resolver.errors import ValidationError
from env_resolver.providers.base import StaticProvider
from env_resolver.resolution.handle import ConfigHandle
from env_resolver.resolution.pipeline import ResolveOptions

DEV = ResolveOptions(environment="development")


class GatedProvider:
    name = "gated"

    def __init__(self, values: dict[str, str]) -> None:
        self.values = values
        self.calls = 0
        self.gate = asyncio.Event()

    async def load(self) -> dict[str, str]:
        self.calls += 1
        await self.gate.wait()
        return dict(self.values)


async def test_concurrent_first_calls_share_one_resolution() -> None:
    provider = GatedProvider({"PORT": "8080"})
    handle = ConfigHandle((provider, {"PORT": "port"}), options=DEV)

    waiters = [asyncio.create_task(handle.get()) for _ in range(5)]
    for _ in range(3):
        await asyncio.sleep(0)
    provider.gate.set()
    results = await asyncio.gather(*waiters)

    assert provider.calls == 1
    assert all(result is results[0] for result in results)
    assert handle.resolved
    assert handle.value.PORT == 8080
    assert await handle.get() is results[0]


@pytest.mark.unit
def test_value_before_resolution_raises() -> None:
    handle = ConfigHandle((StaticProvider({}), {"A": "string?"}), options=DEV)
    assert not handle.resolved
    with pytest.raises(RuntimeError, match="not been resolved"):
        _ = handle.value


@pytest.mark.unit
def test_get_sync_resolves_once() -> None:
    handle = ConfigHandle((StaticProvider({"A": "1"}), {"A": "number"}), options=DEV)
    first = handle.get_sync()
    assert handle.get_sync() is first
    assert first.A == 1.0


@pytest.mark.unit
def test_failed_resolution_is_not_kept() -> None:
    values: dict[str, str] = {}

    class Mutable:
        name = "mutable"

        async def load(self) -> dict[str, str]:
            return dict(values)

        def load_sync(self) -> dict[str, str]:
            return dict(values)

    handle = ConfigHandle((Mutable(), {"TOKEN": "string"}), options=DEV)
    with pytest.raises(ValidationError):
        handle.get_sync()
    assert not handle.resolved

    values["TOKEN"] = "abc"
    assert handle.get_sync().TOKEN == "abc"


@pytest.mark.unit
def test_reset_forces_a_new_resolution() -> None:
    handle = ConfigHandle((StaticProvider({"A": "x"}), {"A": "string"}), options=DEV)
    first = handle.get_sync()
    handle.reset()
    assert not handle.resolved
    assert handle.get_sync() is not first


@pytest.mark.unit
def test_handle_requires_pairs() -> None:
    with pytest.raises(ValueError):
        ConfigHandle()
