"""Generation service interface, retry wrapper and rate-limited scheduler."""

from .http_client import HttpGenerationService
from .retry import RetryingGenerationService, retry_async, retry_generation_service
from .scheduler import RateLimitedScheduler, TaskResult
from .service import KIND_HANDLERS, GenerationService, generate_for_kind

__all__ = [
    "GenerationService",
    "HttpGenerationService",
    "KIND_HANDLERS",
    "RateLimitedScheduler",
    "RetryingGenerationService",
    "TaskResult",
    "generate_for_kind",
    "retry_async",
    "retry_generation_service",
]
