"""
env-resolver — source policies.

File: src/env_resolver/resolution/policy.py
Last updated: 2026-10-18

Purpose
- Production-safety gate run on the merged environment before coercion.

Functional requirements
- In production, a declared key whose winning value came from a dotenv or
  config file is rejected unless ``allow_dotenv_in_production`` permits it.
- ``enforce_allowed_sources`` pins keys to named providers in every environment.
- All breaches are reported together.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from env_resolver.errors import PolicyBreach
from env_resolver.resolution.merge import Provenance
from env_resolver.settings import is_production


@dataclass(frozen=True, slots=True)
class PolicyOptions:
    """``allow_dotenv_in_production``: ``None``/``False`` forbid, ``True`` allows,
    a collection of keys allows only those keys.

    ``enforce_allowed_sources`` maps a key to the provider names (or source tags
    such as ``"process"``) it may come from.
    """

    allow_dotenv_in_production: bool | Collection[str] | None = None
    enforce_allowed_sources: Mapping[str, Collection[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        allow = self.allow_dotenv_in_production
        if isinstance(allow, str):
            raise TypeError("allow_dotenv_in_production must be a bool or a collection of keys")
        if allow is not None and not isinstance(allow, bool):
            object.__setattr__(self, "allow_dotenv_in_production", frozenset(allow))
        sources: dict[str, tuple[str, ...]] = {}
        for key, names in self.enforce_allowed_sources.items():
            if isinstance(names, str) or any(not isinstance(name, str) for name in names):
                raise TypeError(f"enforce_allowed_sources[{key!r}] must be a collection of names")
            sources[key] = tuple(names)
        object.__setattr__(self, "enforce_allowed_sources", MappingProxyType(sources))

    def allows_file_source(self, key: str) -> bool:
        allow = self.allow_dotenv_in_production
        if allow is None or allow is False:
            return False
        if allow is True:
            return True
        return key in allow


def check_policies(
    keys: Iterable[str],
    provenance: Mapping[str, Provenance],
    *,
    environment: str,
    policies: PolicyOptions | None = None,
) -> list[PolicyBreach]:
    """Return every breach for declared ``keys``; an empty list means compliant."""

    options = policies or PolicyOptions()
    production = is_production(environment)
    breaches: list[PolicyBreach] = []

    for key in keys:
        origin = provenance.get(key)
        if origin is None:
            continue

        if production and origin.source.is_file_based and not options.allows_file_source(key):
            breaches.append(
                PolicyBreach(
                    key=key,
                    source=origin.provider,
                    message=(
                        f"cannot be sourced from {origin.source.value} provider "
                        f"{origin.provider!r} in production; allow it with "
                        "PolicyOptions(allow_dotenv_in_production=...)"
                    ),
                )
            )
            continue

        allowed = options.enforce_allowed_sources.get(key)
        if allowed and origin.provider not in allowed and origin.source.value not in allowed:
            breaches.append(
                PolicyBreach(
                    key=key,
                    source=origin.provider,
                    message=(
                        f"must be sourced from one of: {', '.join(allowed)} "
                        f"(actual: {origin.provider})"
                    ),
                )
            )
    return breaches


__all__ = [
    "PolicyOptions",
    "check_policies",
]
