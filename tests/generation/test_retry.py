"""Tests for the retrying generation-service wrapper."""

from __future__ import annotations

import asyncio

import pytest

from jsdocgen.generation.retry import retry_async, retry_generation_service
from jsdocgen.generation.scheduler import RateLimitedScheduler
from jsdocgen.generation.service import KIND_HANDLERS, GenerationService
from jsdocgen.models import DeclarationKind, GenerationRequest, SerializedSourceFile
from tests._fixtures.services import ScriptedService

REQUEST = GenerationRequest(
    code_snippet="function f() {}",
    source_file=SerializedSourceFile(source_code="function f() {}", file_path="src/f.ts"),
)


class _Flaky:
    """Fails with a numbered error until ``succeed_on`` is reached."""

    def __init__(self, succeed_on: int | None) -> None:
        self.succeed_on = succeed_on
        self.attempts = 0

    async def __call__(self) -> str:
        self.attempts += 1
        if self.succeed_on is None or self.attempts < self.succeed_on:
            raise RuntimeError(f"attempt {self.attempts} failed")
        return f"value from attempt {self.attempts}"


def test_returns_first_success_and_notifies_each_failure() -> None:
    run = _Flaky(succeed_on=3)
    errors: list[tuple[int, str]] = []
    successes: list[tuple[int, object]] = []

    value = asyncio.run(
        retry_async(
            run,
            3,
            on_error=lambda attempt, exc: errors.append((attempt, str(exc))),
            on_success=lambda attempt, result: successes.append((attempt, result)),
        )
    )

    assert value == "value from attempt 3"
    assert errors == [(1, "attempt 1 failed"), (2, "attempt 2 failed")]
    assert successes == [(3, "value from attempt 3")]


def test_exhausted_retries_raise_last_error() -> None:
    run = _Flaky(succeed_on=None)

    with pytest.raises(RuntimeError, match="attempt 2 failed"):
        asyncio.run(retry_async(run, 2))
    assert run.attempts == 2


def test_single_retry_means_one_attempt() -> None:
    run = _Flaky(succeed_on=2)

    with pytest.raises(RuntimeError, match="attempt 1 failed"):
        asyncio.run(retry_async(run, 1))
    assert run.attempts == 1


def test_retries_must_be_positive() -> None:
    with pytest.raises(ValueError):
        asyncio.run(retry_async(_Flaky(succeed_on=1), 0))


def test_attempts_route_through_scheduler() -> None:
    run = _Flaky(succeed_on=2)

    async def scenario():
        scheduler = RateLimitedScheduler()
        value = await retry_async(run, 2, scheduler=scheduler)
        return scheduler, value

    scheduler, value = asyncio.run(scenario())

    assert value == "value from attempt 2"
    assert scheduler.pending == 0


def test_scheduled_failures_raise_last_error() -> None:
    run = _Flaky(succeed_on=None)
    errors: list[int] = []

    async def scenario():
        scheduler = RateLimitedScheduler()
        await retry_async(
            run, 3, scheduler=scheduler, on_error=lambda attempt, _exc: errors.append(attempt)
        )

    with pytest.raises(RuntimeError, match="attempt 3 failed"):
        asyncio.run(scenario())
    assert errors == [1, 2, 3]


def test_wrapped_service_keeps_shape_and_retries_each_operation() -> None:
    failures = {"count": 0}

    def responder(kind, request):
        if failures["count"] < 1:
            failures["count"] += 1
            raise ConnectionError("service hiccup")
        return f"/** {kind.value} */\n{request.code_snippet}"

    service = ScriptedService(responder)
    seen_errors: list[int] = []
    wrapped = retry_generation_service(
        service, retries=2, on_error=lambda attempt, exc: seen_errors.append(attempt)
    )

    result = asyncio.run(wrapped.create_jsdoc_enum(REQUEST, {"model": "x"}))

    assert isinstance(wrapped, GenerationService)
    assert result == "/** EnumDeclaration */\nfunction f() {}"
    assert seen_errors == [1]
    assert len(service.calls) == 2
    assert service.calls[-1][2] == {"model": "x"}
    for kind, method in KIND_HANDLERS.items():
        assert callable(getattr(wrapped, method)), kind
    assert set(KIND_HANDLERS) == set(DeclarationKind)
