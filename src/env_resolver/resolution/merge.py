"""Precedence merge of provider outputs with per-key provenance."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from env_resolver.providers.base import ProviderSource, RawEnvironment

Priority = Literal["last", "first"]


@dataclass(frozen=True, slots=True)
class Provenance:
    """Which provider supplied a key's raw value."""

    provider: str
    source: ProviderSource
    cached: bool = False


@dataclass(frozen=True, slots=True)
class LoadedEnvironment:
    """One provider's output, tagged for merging."""

    provider: str
    source: ProviderSource
    values: RawEnvironment
    cached: bool = False


def merge_environments(
    loaded: Sequence[LoadedEnvironment],
    *,
    priority: Priority = "last",
) -> tuple[RawEnvironment, dict[str, Provenance]]:
    """Merge in declaration order; ``last`` lets later providers override earlier ones.

    Any supplied string takes part, including ``""``: a later empty value clears
    an earlier one, and under ``first`` an early empty value holds the key.
    """

    if priority not in ("last", "first"):
        raise ValueError(f"priority must be 'last' or 'first', got {priority!r}")

    merged: RawEnvironment = {}
    provenance: dict[str, Provenance] = {}
    for item in loaded:
        origin = Provenance(provider=item.provider, source=item.source, cached=item.cached)
        for key, value in item.values.items():
            if priority == "first" and key in merged:
                continue
            merged[key] = value
            provenance[key] = origin
    return merged, provenance


__all__ = [
    "LoadedEnvironment",
    "Priority",
    "Provenance",
    "merge_environments",
]
