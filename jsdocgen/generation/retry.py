"""Retry wrapper around generation services."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from ..models import GenerationRequest
from .scheduler import RateLimitedScheduler
from .service import GenerationService

T = TypeVar("T")

SuccessObserver = Callable[[int, Any], None]
ErrorObserver = Callable[[int, BaseException], None]


async def retry_async(
    run: Callable[[], Awaitable[T]],
    retries: int = 1,
    *,
    scheduler: Optional[RateLimitedScheduler] = None,
    on_success: Optional[SuccessObserver] = None,
    on_error: Optional[ErrorObserver] = None,
) -> T:
    """Await ``run`` up to ``retries`` times and return the first success.

    Observers receive the 1-based attempt number. When every attempt fails the
    error of the last attempt is raised. With a scheduler, each attempt is
    queued through it instead of being awaited directly.
    """
    if retries < 1:
        raise ValueError("retries must be >= 1")

    last_error: Optional[BaseException] = None
    for attempt in range(1, retries + 1):
        try:
            if scheduler is None:
                value = await run()
            else:
                result = await scheduler.schedule(run)
                if not result.success:
                    raise result.error or RuntimeError("Scheduled attempt failed without an error")
                value = result.value
        except Exception as exc:  # noqa: BLE001 - retried, last one re-raised
            last_error = exc
            if on_error is not None:
                on_error(attempt, exc)
            continue
        if on_success is not None:
            on_success(attempt, value)
        return value

    if last_error is None:
        raise RuntimeError("No attempt was made")
    raise last_error


class RetryingGenerationService:
    """A generation service whose every operation is retried and optionally rate limited."""

    def __init__(
        self,
        service: GenerationService,
        *,
        retries: int = 1,
        scheduler: Optional[RateLimitedScheduler] = None,
        on_success: Optional[SuccessObserver] = None,
        on_error: Optional[ErrorObserver] = None,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be >= 1")
        self.service = service
        self.retries = retries
        self.scheduler = scheduler
        self.on_success = on_success
        self.on_error = on_error

    async def create_jsdoc_function(
        self, request: GenerationRequest, service_options: Optional[Dict[str, Any]] = None
    ) -> str:
        return await self._call(self.service.create_jsdoc_function, request, service_options)

    async def create_jsdoc_class(
        self, request: GenerationRequest, service_options: Optional[Dict[str, Any]] = None
    ) -> str:
        return await self._call(self.service.create_jsdoc_class, request, service_options)

    async def create_jsdoc_enum(
        self, request: GenerationRequest, service_options: Optional[Dict[str, Any]] = None
    ) -> str:
        return await self._call(self.service.create_jsdoc_enum, request, service_options)

    async def create_jsdoc_interface(
        self, request: GenerationRequest, service_options: Optional[Dict[str, Any]] = None
    ) -> str:
        return await self._call(self.service.create_jsdoc_interface, request, service_options)

    async def create_jsdoc_type_alias(
        self, request: GenerationRequest, service_options: Optional[Dict[str, Any]] = None
    ) -> str:
        return await self._call(self.service.create_jsdoc_type_alias, request, service_options)

    async def create_jsdoc_variable_statement(
        self, request: GenerationRequest, service_options: Optional[Dict[str, Any]] = None
    ) -> str:
        return await self._call(
            self.service.create_jsdoc_variable_statement, request, service_options
        )

    async def _call(
        self,
        operation: Callable[..., Awaitable[str]],
        request: GenerationRequest,
        service_options: Optional[Dict[str, Any]],
    ) -> str:
        return await retry_async(
            lambda: operation(request, service_options),
            self.retries,
            scheduler=self.scheduler,
            on_success=self.on_success,
            on_error=self.on_error,
        )


def retry_generation_service(
    service: GenerationService,
    retries: int = 1,
    *,
    scheduler: Optional[RateLimitedScheduler] = None,
    on_success: Optional[SuccessObserver] = None,
    on_error: Optional[ErrorObserver] = None,
) -> RetryingGenerationService:
    """Return an object shaped like ``service`` with retry applied to each operation."""
    return RetryingGenerationService(
        service,
        retries=retries,
        scheduler=scheduler,
        on_success=on_success,
        on_error=on_error,
    )


__all__ = ["RetryingGenerationService", "retry_async", "retry_generation_service"]
