"""FastAPI application entrypoint for jsdocgen service mode."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import ConfigError
from ..errors import CacheError, GenerationServiceError
from ..pipeline import RunReport
from ..runtime import run_from_config

RunCallable = Callable[..., Awaitable[RunReport]]


class GenerateRequest(BaseModel):
    path: str
    config: Optional[str] = None
    no_cache: Optional[bool] = None
    retries: Optional[int] = Field(default=None, ge=1)
    rate_limit_ms: Optional[float] = Field(default=None, ge=0)


class FileOutcomeModel(BaseModel):
    path: str
    status: str
    succeeded: int
    failed: int
    errors: List[str] = []


class GenerateResponse(BaseModel):
    generated: int
    cached: int
    failed: int
    all_failed: bool
    cache_path: Optional[str] = None
    files: List[FileOutcomeModel] = []


class HealthResponse(BaseModel):
    status: str


def _to_response(report: RunReport) -> GenerateResponse:
    return GenerateResponse(
        generated=report.generated,
        cached=report.cached,
        failed=report.failed,
        all_failed=report.all_failed,
        cache_path=str(report.cache_path) if report.cache_path else None,
        files=[
            FileOutcomeModel(
                path=str(outcome.path),
                status=outcome.status.value,
                succeeded=outcome.succeeded,
                failed=outcome.failed,
                errors=[str(error) for error in outcome.errors],
            )
            for outcome in report.files
        ],
    )


def create_app(run: RunCallable = run_from_config) -> FastAPI:
    """Create the FastAPI application exposing jsdocgen runs."""
    app = FastAPI(title="jsdocgen service", version="1.0.0")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/generate", response_model=GenerateResponse)
    async def generate(payload: GenerateRequest) -> GenerateResponse:
        config_path = Path(payload.config) if payload.config else Path(payload.path)
        report = await run(
            config_path,
            disable_cache=payload.no_cache,
            retries=payload.retries,
            rate_limit_ms=payload.rate_limit_ms,
        )
        return _to_response(report)

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(GenerationServiceError)
    async def service_error_handler(_: Any, exc: GenerationServiceError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(CacheError)
    async def cache_error_handler(_: Any, exc: CacheError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]
