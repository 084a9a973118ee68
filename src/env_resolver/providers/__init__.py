"""Configuration sources and the decorators that wrap them."""

from env_resolver.providers.base import (
    Provider,
    ProviderSource,
    RawEnvironment,
    StaticProvider,
    SyncProvider,
    normalize_raw_environment,
    provider_name,
    provider_source,
    static,
    supports_sync,
)
from env_resolver.providers.cache import (
    TTL_5_MINUTES,
    TTL_6_HOURS,
    TTL_15_MINUTES,
    TTL_DAY,
    TTL_HOUR,
    TTL_MINUTE,
    TTL_SHORT,
    CachedProvider,
    CacheEntry,
    CacheLoad,
    CacheOptions,
    CacheState,
    CacheStats,
    cached,
    secrets_cache_options,
)
from env_resolver.providers.local import (
    DotenvProvider,
    ProcessEnvProvider,
    YamlFileProvider,
    dotenv,
    process_env,
    yaml_file,
)
from env_resolver.providers.wrappers import RetryingProvider, TimeoutProvider, retry, timeout

__all__ = [
    "TTL_15_MINUTES",
    "TTL_5_MINUTES",
    "TTL_6_HOURS",
    "TTL_DAY",
    "TTL_HOUR",
    "TTL_MINUTE",
    "TTL_SHORT",
    "CacheEntry",
    "CacheLoad",
    "CacheOptions",
    "CacheState",
    "CacheStats",
    "CachedProvider",
    "DotenvProvider",
    "ProcessEnvProvider",
    "Provider",
    "ProviderSource",
    "RawEnvironment",
    "RetryingProvider",
    "StaticProvider",
    "SyncProvider",
    "TimeoutProvider",
    "YamlFileProvider",
    "cached",
    "dotenv",
    "normalize_raw_environment",
    "process_env",
    "provider_name",
    "provider_source",
    "retry",
    "secrets_cache_options",
    "static",
    "supports_sync",
    "timeout",
    "yaml_file",
]
