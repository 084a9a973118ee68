"""Resolution pipeline: merge, policy, interpolation, coercion."""

from env_resolver.resolution.handle import ConfigHandle
from env_resolver.resolution.interpolation import interpolate, interpolate_value
from env_resolver.resolution.merge import (
    LoadedEnvironment,
    Priority,
    Provenance,
    merge_environments,
)
from env_resolver.resolution.pipeline import (
    ResolvedConfig,
    ResolveFailure,
    ResolveOptions,
    ResolvePair,
    ResolveResult,
    ResolveSuccess,
    resolve,
    resolve_sync,
    safe_resolve,
    safe_resolve_sync,
)
from env_resolver.resolution.policy import PolicyOptions, check_policies

__all__ = [
    "ConfigHandle",
    "LoadedEnvironment",
    "PolicyOptions",
    "Priority",
    "Provenance",
    "ResolveFailure",
    "ResolveOptions",
    "ResolvePair",
    "ResolveResult",
    "ResolveSuccess",
    "ResolvedConfig",
    "check_policies",
    "interpolate",
    "interpolate_value",
    "merge_environments",
    "resolve",
    "resolve_sync",
    "safe_resolve",
    "safe_resolve_sync",
]
