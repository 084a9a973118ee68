"""``${KEY}`` substitution over the merged raw environment."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Final

from env_resolver.constants import INTERPOLATION_MAX_DEPTH
from env_resolver.providers.base import RawEnvironment

_REFERENCE: Final[re.Pattern[str]] = re.compile(r"\$\{([^}]+)\}")


def interpolate(
    env: Mapping[str, str],
    *,
    max_depth: int = INTERPOLATION_MAX_DEPTH,
) -> RawEnvironment:
    """Return a copy of ``env`` with references substituted.

    Substitution repeats until nothing changes or ``max_depth`` passes have run,
    so chains resolve and cycles terminate. References to unknown or empty keys
    stay literal.
    """

    if max_depth < 1:
        raise ValueError("max_depth must be >= 1")

    current: RawEnvironment = dict(env)
    for _ in range(max_depth):
        changed = False
        following: RawEnvironment = {}
        for key, value in current.items():
            replaced = interpolate_value(value, current)
            changed = changed or replaced != value
            following[key] = replaced
        current = following
        if not changed:
            break
    return current


def interpolate_value(value: str, env: Mapping[str, str]) -> str:
    """Single substitution pass over one value."""

    if "${" not in value:
        return value

    def substitute(match: re.Match[str]) -> str:
        replacement = env.get(match.group(1).strip())
        return replacement if replacement else match.group(0)

    return _REFERENCE.sub(substitute, value)


__all__ = [
    "interpolate",
    "interpolate_value",
]
