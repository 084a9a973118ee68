"""Caller-owned, resolve-once configuration handle."""

from __future__ import annotations

import threading

from env_resolver.resolution.pipeline import (
    ResolvedConfig,
    ResolveOptions,
    ResolvePair,
    resolve,
    resolve_sync,
)
from env_resolver.schema.compiler import SchemaDeclaration
from env_resolver.utils.concurrency import SingleFlight


class ConfigHandle:
    """Resolve a set of pairs once and keep the result.

    Concurrent first callers of ``get()`` share one resolution. A failed
    resolution is not kept, so the next call tries again.
    """

    def __init__(
        self,
        *pairs: ResolvePair | SchemaDeclaration,
        options: ResolveOptions | None = None,
    ) -> None:
        if not pairs:
            raise ValueError("ConfigHandle needs at least one (provider, schema) pair")
        self._pairs = pairs
        self._options = options
        self._lock = threading.Lock()
        self._config: ResolvedConfig | None = None
        self._flight: SingleFlight[ResolvedConfig] = SingleFlight()

    @property
    def resolved(self) -> bool:
        with self._lock:
            return self._config is not None

    @property
    def value(self) -> ResolvedConfig:
        with self._lock:
            config = self._config
        if config is None:
            raise RuntimeError("configuration has not been resolved; call get() or get_sync() first")
        return config

    async def get(self) -> ResolvedConfig:
        with self._lock:
            if self._config is not None:
                return self._config
        return await self._flight.run(self._resolve)

    def get_sync(self) -> ResolvedConfig:
        with self._lock:
            if self._config is None:
                self._config = resolve_sync(*self._pairs, options=self._options)
            return self._config

    def reset(self) -> None:
        """Forget the resolved configuration; the next ``get`` resolves again."""
        with self._lock:
            self._config = None

    async def _resolve(self) -> ResolvedConfig:
        config = await resolve(*self._pairs, options=self._options)
        with self._lock:
            if self._config is None:
                self._config = config
            return self._config


__all__ = ["ConfigHandle"]
