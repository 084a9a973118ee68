"""Unit tests for the async concurrency helpers."""

from __future__ import annotations

import asyncio

import pytest

from env_resolver.utils.concurrency import SingleFlight, gather_fail_fast, run_with_timeout


async def test_single_flight_shares_one_task() -> None:
    flight: SingleFlight[int] = SingleFlight()
    gate = asyncio.Event()
    calls = 0

    async def work() -> int:
        nonlocal calls
        calls += 1
        await gate.wait()
        return 42

    waiters = [asyncio.create_task(flight.run(work)) for _ in range(4)]
    await asyncio.sleep(0)
    assert flight.in_flight
    gate.set()
    assert await asyncio.gather(*waiters) == [42, 42, 42, 42]
    assert calls == 1
    assert not flight.in_flight


async def test_single_flight_launch_reports_the_starter() -> None:
    flight: SingleFlight[str] = SingleFlight()
    gate = asyncio.Event()

    async def work() -> str:
        await gate.wait()
        return "done"

    first, started = flight.launch(work)
    second, joined = flight.launch(work)
    assert started and not joined
    assert first is second
    gate.set()
    assert await first == "done"


async def test_single_flight_error_reaches_all_and_clears() -> None:
    flight: SingleFlight[int] = SingleFlight()
    attempts = 0

    async def failing() -> int:
        nonlocal attempts
        attempts += 1
        await asyncio.sleep(0)
        raise RuntimeError("boom")

    results = await asyncio.gather(
        flight.run(failing), flight.run(failing), return_exceptions=True
    )
    assert all(isinstance(result, RuntimeError) for result in results)
    assert attempts == 1

    with pytest.raises(RuntimeError):
        await flight.run(failing)
    assert attempts == 2


async def test_gather_fail_fast_keeps_input_order() -> None:
    async def value(result: int, delay: float) -> int:
        await asyncio.sleep(delay)
        return result

    assert await gather_fail_fast([value(1, 0.02), value(2, 0.0), value(3, 0.01)]) == [1, 2, 3]
    assert await gather_fail_fast([]) == []


async def test_gather_fail_fast_cancels_pending_work_on_first_failure() -> None:
    cancelled = asyncio.Event()

    async def slow() -> int:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return 1

    async def failing() -> int:
        raise ValueError("first failure")

    with pytest.raises(ValueError, match="first failure"):
        await gather_fail_fast([slow(), failing()])
    assert cancelled.is_set()


async def test_run_with_timeout() -> None:
    async def quick() -> str:
        return "ok"

    assert await run_with_timeout(quick(), 1.0) == "ok"

    with pytest.raises(TimeoutError):
        await run_with_timeout(asyncio.sleep(10), 0.01)


async def test_run_with_timeout_rejects_non_positive_deadline() -> None:
    async def quick() -> str:
        return "ok"

    with pytest.raises(ValueError):
        await run_with_timeout(quick(), 0)
