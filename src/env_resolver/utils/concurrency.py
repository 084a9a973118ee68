"""Async concurrency primitives used by the cache wrapper and the pipeline."""

from __future__ import annotations

import asyncio
import inspect
import threading
from contextlib import suppress
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Collapse concurrent calls into one shared task.

    Waiters are shielded: cancelling one caller never cancels the shared work.
    A task created on another event loop is ignored once that loop is gone.
    """

    __slots__ = ("_lock", "_task")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._task: asyncio.Task[T] | None = None

    @property
    def in_flight(self) -> bool:
        with self._lock:
            task = self._task
        return task is not None and not task.done()

    def launch(self, factory: Callable[[], Awaitable[T]]) -> tuple[asyncio.Task[T], bool]:
        """Return the in-flight task, starting one if none exists.

        The boolean is ``True`` when this call started the task.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            current = self._task
            if current is not None and not current.done() and current.get_loop() is loop:
                return current, False
            task: asyncio.Task[T] = loop.create_task(_await_value(factory()))
            self._task = task
        task.add_done_callback(self._finished)
        return task, True

    async def run(self, factory: Callable[[], Awaitable[T]]) -> T:
        task, _ = self.launch(factory)
        return await asyncio.shield(task)

    def _finished(self, task: asyncio.Task[T]) -> None:
        with self._lock:
            if self._task is task:
                self._task = None
        if not task.cancelled():
            # Waiters re-raise the error themselves; mark it retrieved for background runs.
            task.exception()


async def gather_fail_fast(awaitables: Sequence[Awaitable[T]]) -> list[T]:
    """Run ``awaitables`` concurrently and return results in input order.

    The first failure cancels everything still pending and is re-raised. When
    several tasks fail in the same wakeup, the earliest in input order wins.
    """
    tasks: list[asyncio.Task[T]] = [
        asyncio.ensure_future(_await_value(item)) for item in awaitables
    ]
    if not tasks:
        return []

    pending: set[asyncio.Task[T]] = set(tasks)
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
            failed = [
                task
                for task in tasks
                if task in done and not task.cancelled() and task.exception() is not None
            ]
            if failed:
                await _cancel_all(pending)
                error = failed[0].exception()
                if error is not None:
                    raise error
            cancelled = [task for task in done if task.cancelled()]
            if cancelled:
                await _cancel_all(pending)
                raise asyncio.CancelledError("provider task cancelled")
    except asyncio.CancelledError:
        await _cancel_all(pending)
        raise
    return [task.result() for task in tasks]


async def run_with_timeout(coroutine: Awaitable[T], timeout_seconds: float) -> T:
    """Run ``coroutine`` and raise ``TimeoutError`` after ``timeout_seconds``."""
    if timeout_seconds <= 0:
        _close_unscheduled_coroutine(coroutine)
        raise ValueError("timeout_seconds must be > 0")

    task: asyncio.Task[T] = asyncio.ensure_future(_await_value(coroutine))
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_seconds)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if task in done:
        return task.result()

    task.cancel()
    with suppress(asyncio.CancelledError):
        await task
    raise TimeoutError(f"operation timed out after {timeout_seconds} seconds")


async def _cancel_all(tasks: set[asyncio.Task[T]]) -> None:
    for task in tasks:
        task.cancel()
    if tasks:
        with suppress(Exception):
            await asyncio.gather(*tasks, return_exceptions=True)


async def _await_value(awaitable: Awaitable[T]) -> T:
    return await awaitable


def _close_unscheduled_coroutine(awaitable: Awaitable[object]) -> None:
    # Close raw coroutine objects rejected before scheduling so CPython does not
    # emit "coroutine was never awaited" at GC time.
    if inspect.iscoroutine(awaitable):
        awaitable.close()


__all__ = [
    "SingleFlight",
    "gather_fail_fast",
    "run_with_timeout",
]
