"""
env-resolver — caching provider decorator.

File: src/env_resolver/providers/cache.py
Last updated: 2026-10-18

Purpose
- Wrap any provider in TTL memoization with optional stale-while-revalidate
  and request coalescing.

What should be included in this file
- ``CacheOptions`` validation and presets.
- The per-key state machine: Empty -> Fresh -> Stale/Refreshing, with
  ``max_age`` forcing a blocking refetch.
- Synchronous access for warmed caches and sync-capable inner providers.

Functional requirements
- At most one inner fetch is in flight per wrapper; concurrent callers share it.
- A background refresh failure is logged, never surfaced; the stale value
  keeps serving and the next call retries.
- A failure with no prior value reaches every coalesced caller.

Non-functional requirements
- Entries live for the lifetime of the wrapper; no eviction beyond ``invalidate``.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from env_resolver.constants import (
    DEFAULT_CACHE_MAX_AGE,
    DEFAULT_CACHE_TTL,
    TTL_5_MINUTES,
    TTL_6_HOURS,
    TTL_15_MINUTES,
    TTL_DAY,
    TTL_HOUR,
    TTL_MINUTE,
    TTL_SHORT,
)
from env_resolver.errors import AsyncProviderInSyncContext, ProviderError
from env_resolver.observability.audit import AuditEventType, AuditLog
from env_resolver.providers.base import (
    Provider,
    RawEnvironment,
    normalize_raw_environment,
    provider_name,
    provider_source,
    supports_sync,
)
from env_resolver.utils.concurrency import SingleFlight

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class CacheOptions:
    """Cache tuning; durations are seconds.

    ``max_age`` left unset bounds staleness at ``DEFAULT_CACHE_MAX_AGE`` (or
    ``ttl`` when that is longer); a cached value is never served forever.
    """

    ttl: float = DEFAULT_CACHE_TTL
    max_age: float | None = None
    stale_while_revalidate: bool = False
    key: str | None = None

    def __post_init__(self) -> None:
        if self.ttl < 0:
            raise ValueError("ttl must be >= 0")
        if self.max_age is not None and self.max_age < self.ttl:
            raise ValueError("max_age must be >= ttl")

    @property
    def staleness_bound(self) -> float:
        if self.max_age is not None:
            return self.max_age
        return max(self.ttl, DEFAULT_CACHE_MAX_AGE)


def secrets_cache_options(
    *,
    ttl: float = DEFAULT_CACHE_TTL,
    max_age: float = DEFAULT_CACHE_MAX_AGE,
    stale_while_revalidate: bool = True,
) -> CacheOptions:
    """Preset for remote secret stores: 5 minute TTL, 1 hour bound, SWR on."""

    return CacheOptions(
        ttl=ttl,
        max_age=max_age,
        stale_while_revalidate=stale_while_revalidate,
        key="secrets",
    )


class CacheState(str, enum.Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"
    REFRESHING = "refreshing"


@dataclass(frozen=True, slots=True)
class CacheEntry:
    value: RawEnvironment
    fetched_at: float
    ttl: float
    max_age: float | None

    @property
    def stale_at(self) -> float:
        return self.fetched_at + self.ttl

    @property
    def stale_until(self) -> float | None:
        if self.max_age is None:
            return None
        return self.fetched_at + self.max_age

    def is_fresh(self, now: float) -> bool:
        return now - self.fetched_at < self.ttl

    def is_expired(self, now: float) -> bool:
        return self.max_age is not None and now - self.fetched_at > self.max_age


@dataclass(frozen=True, slots=True)
class CacheLoad:
    """Result of one load through the cache, with how it was served."""

    value: RawEnvironment
    cached: bool
    stale: bool = False


class CacheStats:
    """Thread-safe counters for one cache wrapper."""

    __slots__ = ("_lock", "_values")

    _FIELDS = ("hits", "stale_hits", "misses", "refreshes", "failures")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values = dict.fromkeys(self._FIELDS, 0)

    def increment(self, name: str) -> None:
        with self._lock:
            self._values[name] += 1

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._values)


class CachedProvider:
    """Provider decorator adding TTL caching, SWR and request coalescing."""

    def __init__(
        self,
        inner: Provider,
        options: CacheOptions | None = None,
        *,
        clock: Clock = time.monotonic,
        audit: AuditLog | None = None,
    ) -> None:
        self.inner = inner
        self.options = options or CacheOptions()
        inner_name = provider_name(inner)
        self.name = f"cached({inner_name})"
        self.source = provider_source(inner)
        self.key = self.options.key or inner_name
        self._clock = clock
        self._audit = audit
        self._lock = threading.Lock()
        self._sync_fetch_lock = threading.Lock()
        self._entry: CacheEntry | None = None
        self._flight: SingleFlight[RawEnvironment] = SingleFlight()
        self._stats = CacheStats()

    def __repr__(self) -> str:
        return f"CachedProvider(key={self.key!r}, state={self.state().value!r})"

    @property
    def entry(self) -> CacheEntry | None:
        with self._lock:
            return self._entry

    def state(self) -> CacheState:
        entry = self.entry
        if entry is None:
            return CacheState.EMPTY
        now = self._clock()
        if entry.is_fresh(now):
            return CacheState.FRESH
        if entry.is_expired(now):
            return CacheState.EMPTY
        return CacheState.REFRESHING if self._flight.in_flight else CacheState.STALE

    def stats(self) -> dict[str, int]:
        return self._stats.snapshot()

    def invalidate(self) -> None:
        """Drop the cached value; the next load performs a blocking fetch."""
        with self._lock:
            self._entry = None

    async def load(self) -> RawEnvironment:
        return (await self.load_detailed()).value

    async def load_detailed(self) -> CacheLoad:
        entry = self.entry
        now = self._clock()

        if entry is not None and entry.is_fresh(now):
            self._stats.increment("hits")
            return CacheLoad(dict(entry.value), cached=True)

        if (
            entry is not None
            and not entry.is_expired(now)
            and self.options.stale_while_revalidate
        ):
            self._stats.increment("stale_hits")
            self._start_background_refresh()
            return CacheLoad(dict(entry.value), cached=True, stale=True)

        self._stats.increment("misses")
        value = await self._flight.run(self._fetch)
        return CacheLoad(dict(value), cached=False)

    def load_sync(self) -> RawEnvironment:
        return self.load_sync_detailed().value

    def load_sync_detailed(self) -> CacheLoad:
        entry = self.entry
        now = self._clock()
        if entry is not None and entry.is_fresh(now):
            self._stats.increment("hits")
            return CacheLoad(dict(entry.value), cached=True)

        serve_stale = (
            entry is not None
            and not entry.is_expired(now)
            and self.options.stale_while_revalidate
        )
        if serve_stale and _running_loop() is not None:
            self._stats.increment("stale_hits")
            self._start_background_refresh()
            return CacheLoad(dict(entry.value), cached=True, stale=True)

        if supports_sync(self.inner):
            self._stats.increment("misses")
            return CacheLoad(dict(self._fetch_sync()), cached=False)

        if serve_stale:
            # No loop to refresh on and no sync path: keep serving within max_age.
            self._stats.increment("stale_hits")
            return CacheLoad(dict(entry.value), cached=True, stale=True)
        raise AsyncProviderInSyncContext(self.name)

    def _start_background_refresh(self) -> None:
        task, started = self._flight.launch(self._fetch)
        if started:
            logger.debug("background refresh started", extra={"cache_key": self.key})
            task.add_done_callback(self._log_background_result)

    def _log_background_result(self, task: asyncio.Task[RawEnvironment]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "background refresh failed; serving stale value",
                extra={"cache_key": self.key, "error": str(exc)},
            )
            if self._audit is not None:
                self._audit.record(
                    AuditEventType.CACHE_REFRESH_FAILED,
                    source=self.name,
                    metadata={"cache_key": self.key, "error": str(exc)},
                )

    async def _fetch(self) -> RawEnvironment:
        name = provider_name(self.inner)
        try:
            payload = await self.inner.load()
            value = normalize_raw_environment(name, payload)
        except ProviderError:
            self._stats.increment("failures")
            raise
        except Exception as exc:
            self._stats.increment("failures")
            raise ProviderError(name, str(exc) or type(exc).__name__) from exc
        self._store(value)
        return value

    def _fetch_sync(self) -> RawEnvironment:
        name = provider_name(self.inner)
        with self._sync_fetch_lock:
            entry = self.entry
            if entry is not None and entry.is_fresh(self._clock()):
                return entry.value
            try:
                payload = self.inner.load_sync()  # type: ignore[attr-defined]
                value = normalize_raw_environment(name, payload)
            except ProviderError:
                self._stats.increment("failures")
                raise
            except Exception as exc:
                self._stats.increment("failures")
                raise ProviderError(name, str(exc) or type(exc).__name__) from exc
            self._store(value)
            return value

    def _store(self, value: RawEnvironment) -> None:
        entry = CacheEntry(
            value=dict(value),
            fetched_at=self._clock(),
            ttl=self.options.ttl,
            max_age=self.options.staleness_bound,
        )
        with self._lock:
            self._entry = entry
        self._stats.increment("refreshes")
        logger.debug("cache entry stored", extra={"cache_key": self.key, "keys": len(value)})


def cached(
    provider: Provider,
    options: CacheOptions | None = None,
    *,
    ttl: float | None = None,
    max_age: float | None = None,
    stale_while_revalidate: bool | None = None,
    key: str | None = None,
    clock: Clock = time.monotonic,
    audit: AuditLog | None = None,
) -> CachedProvider:
    """Wrap ``provider`` in a cache; keyword arguments override ``options``."""

    base = options or CacheOptions()
    merged = CacheOptions(
        ttl=base.ttl if ttl is None else ttl,
        max_age=base.max_age if max_age is None else max_age,
        stale_while_revalidate=(
            base.stale_while_revalidate
            if stale_while_revalidate is None
            else stale_while_revalidate
        ),
        key=base.key if key is None else key,
    )
    return CachedProvider(provider, merged, clock=clock, audit=audit)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


__all__ = [
    "CacheEntry",
    "CacheLoad",
    "CacheOptions",
    "CacheState",
    "CacheStats",
    "CachedProvider",
    "TTL_15_MINUTES",
    "TTL_5_MINUTES",
    "TTL_6_HOURS",
    "TTL_DAY",
    "TTL_HOUR",
    "TTL_MINUTE",
    "TTL_SHORT",
    "cached",
    "secrets_cache_options",
]
