"""Tests for the rate-limited scheduler."""

from __future__ import annotations

import asyncio
import time

from jsdocgen.generation.scheduler import RateLimitedScheduler, SchedulerState

# The event loop may wake a sleeper up to one clock tick early.
TIMER_SLACK = 0.002


def test_tasks_complete_in_fifo_order_with_pacing() -> None:
    completions: list[tuple[str, float]] = []

    def make_task(name: str, duration: float):
        async def _task() -> str:
            await asyncio.sleep(duration)
            completions.append((name, time.monotonic()))
            return name

        return _task

    async def scenario():
        scheduler = RateLimitedScheduler(delay_ms=50)
        return await asyncio.gather(
            scheduler.schedule(make_task("slow", 0.03)),
            scheduler.schedule(make_task("fast", 0.0)),
            scheduler.schedule(make_task("medium", 0.01)),
        )

    results = asyncio.run(scenario())

    assert [result.value for result in results] == ["slow", "fast", "medium"]
    assert all(result.success for result in results)
    assert [name for name, _ in completions] == ["slow", "fast", "medium"]
    for (_, earlier), (_, later) in zip(completions, completions[1:]):
        assert later - earlier >= 0.05 - TIMER_SLACK


def test_tasks_never_overlap() -> None:
    active = 0
    peak = 0

    async def task() -> None:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.005)
        active -= 1

    async def scenario():
        scheduler = RateLimitedScheduler()
        await asyncio.gather(*(scheduler.schedule(task) for _ in range(5)))
        return scheduler

    scheduler = asyncio.run(scenario())

    assert peak == 1
    assert scheduler.state is SchedulerState.DRAINED


def test_failures_are_reported_not_raised() -> None:
    async def boom() -> None:
        raise ValueError("bad request")

    async def scenario():
        return await RateLimitedScheduler().schedule(boom)

    result = asyncio.run(scenario())

    assert result.success is False
    assert isinstance(result.error, ValueError)
    assert result.value is None


def test_delay_applies_only_after_successful_tasks() -> None:
    # Only successes pause the queue; a failing task is followed immediately.
    stamps: list[float] = []

    async def fail() -> None:
        stamps.append(time.monotonic())
        raise RuntimeError("nope")

    async def succeed() -> None:
        stamps.append(time.monotonic())

    async def scenario():
        scheduler = RateLimitedScheduler(delay_ms=100)
        await asyncio.gather(
            scheduler.schedule(fail),
            scheduler.schedule(succeed),
            scheduler.schedule(succeed),
        )

    asyncio.run(scenario())

    assert stamps[1] - stamps[0] < 0.08
    assert stamps[2] - stamps[1] >= 0.095


def test_abort_stops_consuming_queued_tasks() -> None:
    started: list[str] = []

    async def scenario():
        abort = asyncio.Event()
        scheduler = RateLimitedScheduler(abort_event=abort)

        async def first() -> str:
            started.append("first")
            abort.set()
            await asyncio.sleep(0.01)
            return "first"

        async def second() -> str:
            started.append("second")
            return "second"

        first_future = asyncio.ensure_future(scheduler.schedule(first))
        second_future = asyncio.ensure_future(scheduler.schedule(second))
        first_result = await first_future
        await scheduler.join()
        done, _ = await asyncio.wait({second_future}, timeout=0.05)
        second_future.cancel()
        return scheduler, first_result, done

    scheduler, first_result, done = asyncio.run(scenario())

    assert first_result.success and first_result.value == "first"
    assert started == ["first"]
    assert not done
    assert scheduler.state is SchedulerState.ABORTED


def test_schedule_after_abort_never_resolves() -> None:
    ran: list[bool] = []

    async def task() -> None:
        ran.append(True)

    async def scenario():
        scheduler = RateLimitedScheduler()
        scheduler.abort()
        pending = asyncio.ensure_future(scheduler.schedule(task))
        done, _ = await asyncio.wait({pending}, timeout=0.05)
        pending.cancel()
        return scheduler, done

    scheduler, done = asyncio.run(scenario())

    assert not done
    assert ran == []
    assert scheduler.pending == 1
