"""Provider decorators: retry with exponential backoff and a load deadline."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from env_resolver.errors import AsyncProviderInSyncContext, ProviderError
from env_resolver.providers.base import (
    Provider,
    RawEnvironment,
    normalize_raw_environment,
    provider_name,
    provider_source,
    supports_sync,
)
from env_resolver.utils.concurrency import run_with_timeout

logger = logging.getLogger(__name__)

AsyncSleep = Callable[[float], Awaitable[None]]
SyncSleep = Callable[[float], None]


class RetryingProvider:
    """Retry a failing provider up to ``max_retries`` extra times.

    The delay before retry ``n`` (0-based) is ``delay * 2**n`` seconds. The last
    error is re-raised once attempts are exhausted.
    """

    def __init__(
        self,
        inner: Provider,
        *,
        max_retries: int = 3,
        delay: float = 1.0,
        sleep: AsyncSleep = asyncio.sleep,
        sleep_sync: SyncSleep = time.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.inner = inner
        self.max_retries = max_retries
        self.delay = delay
        self.name = f"retry({provider_name(inner)})"
        self.source = provider_source(inner)
        self._sleep = sleep
        self._sleep_sync = sleep_sync

    @property
    def sync_capable(self) -> bool:
        return supports_sync(self.inner)

    def backoff(self, attempt: int) -> float:
        return self.delay * (2**attempt)

    async def load(self) -> RawEnvironment:
        attempt = 0
        while True:
            try:
                return normalize_raw_environment(provider_name(self.inner), await self.inner.load())
            except Exception as exc:
                if attempt >= self.max_retries:
                    raise
                wait = self.backoff(attempt)
                self._log_retry(attempt, wait, exc)
                await self._sleep(wait)
                attempt += 1

    def load_sync(self) -> RawEnvironment:
        if not supports_sync(self.inner):
            raise AsyncProviderInSyncContext(self.name)
        attempt = 0
        while True:
            try:
                payload = self.inner.load_sync()  # type: ignore[attr-defined]
                return normalize_raw_environment(provider_name(self.inner), payload)
            except Exception as exc:
                if attempt >= self.max_retries:
                    raise
                wait = self.backoff(attempt)
                self._log_retry(attempt, wait, exc)
                self._sleep_sync(wait)
                attempt += 1

    def _log_retry(self, attempt: int, wait: float, exc: Exception) -> None:
        logger.info(
            "provider load failed; retrying",
            extra={
                "provider": provider_name(self.inner),
                "attempt": attempt + 1,
                "max_retries": self.max_retries,
                "delay_seconds": wait,
                "error": str(exc),
            },
        )


class TimeoutProvider:
    """Fail a load with ``ProviderError`` when it exceeds ``seconds``."""

    def __init__(self, inner: Provider, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError("seconds must be > 0")
        self.inner = inner
        self.seconds = seconds
        self.name = f"timeout({provider_name(inner)})"
        self.source = provider_source(inner)

    @property
    def sync_capable(self) -> bool:
        return supports_sync(self.inner)

    async def load(self) -> RawEnvironment:
        inner_name = provider_name(self.inner)
        try:
            payload = await run_with_timeout(self.inner.load(), self.seconds)
        except TimeoutError as exc:
            raise ProviderError(inner_name, f"load timed out after {self.seconds} seconds") from exc
        return normalize_raw_environment(inner_name, payload)

    def load_sync(self) -> RawEnvironment:
        # Synchronous loads cannot be interrupted; the deadline applies to async loads only.
        if not supports_sync(self.inner):
            raise AsyncProviderInSyncContext(self.name)
        payload = self.inner.load_sync()  # type: ignore[attr-defined]
        return normalize_raw_environment(provider_name(self.inner), payload)


def retry(
    provider: Provider,
    max_retries: int = 3,
    delay: float = 1.0,
    *,
    sleep: AsyncSleep = asyncio.sleep,
    sleep_sync: SyncSleep = time.sleep,
) -> RetryingProvider:
    return RetryingProvider(
        provider, max_retries=max_retries, delay=delay, sleep=sleep, sleep_sync=sleep_sync
    )


def timeout(provider: Provider, seconds: float) -> TimeoutProvider:
    return TimeoutProvider(provider, seconds)


__all__ = [
    "RetryingProvider",
    "TimeoutProvider",
    "retry",
    "timeout",
]
