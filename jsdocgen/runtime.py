"""Builds pipeline collaborators from a loaded configuration."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Optional

from .config import JsdocgenConfig, load_config
from .generation.http_client import HttpGenerationService
from .generation.service import GenerationService
from .llm.runner import LLMRunner
from .llm.service import LLMGenerationService
from .pipeline import GenerationPipeline, RunOptions, RunReport
from .postproc.lint import CommandLinter, Linter


def build_service(config: JsdocgenConfig) -> GenerationService:
    """Pick the local LLM service when ``llm`` is configured, the HTTP service otherwise."""
    if config.llm is not None:
        llm = config.llm
        kwargs = {}
        if llm.base_url:
            kwargs["base_url"] = llm.base_url
        if llm.api_key:
            kwargs["api_key"] = llm.api_key
        runner = LLMRunner(
            llm.model,
            temperature=llm.temperature if llm.temperature is not None else 0.1,
            max_tokens=llm.max_tokens,
            request_timeout=llm.request_timeout or 120.0,
            **kwargs,
        )
        return LLMGenerationService(runner)
    return HttpGenerationService(config.service.url, timeout=config.service.timeout)


def build_linter(config: JsdocgenConfig) -> Optional[Linter]:
    if config.lint is None:
        return None
    return CommandLinter(config.lint.command, cwd=config.root)


def build_run_options(
    config: JsdocgenConfig,
    service: GenerationService,
    *,
    disable_cache: Optional[bool] = None,
    retries: Optional[int] = None,
    rate_limit_ms: Optional[float] = None,
) -> RunOptions:
    """Translate configuration plus command-line overrides into :class:`RunOptions`."""
    options = RunOptions(
        files=list(config.files),
        service=service,
        root=config.root,
        global_options=dict(config.jsdoc),
        kinds=list(config.kinds),
        detail_options={kind.value: dict(values) for kind, values in config.detail.items()},
        service_options=dict(config.service.options),
        cache_dir=config.cache.dir,
        cache_namespace=config.cache.namespace,
        cache_hash_algorithm=config.cache.hash,
        disable_cache=config.cache.disabled,
        retries=config.retries,
        rate_limit_ms=config.rate_limit_ms,
    )
    overrides = {}
    if disable_cache is not None:
        overrides["disable_cache"] = disable_cache
    if retries is not None:
        overrides["retries"] = retries
    if rate_limit_ms is not None:
        overrides["rate_limit_ms"] = rate_limit_ms
    return replace(options, **overrides) if overrides else options


async def run_from_config(
    config_path: Path,
    *,
    service: Optional[GenerationService] = None,
    disable_cache: Optional[bool] = None,
    retries: Optional[int] = None,
    rate_limit_ms: Optional[float] = None,
) -> RunReport:
    """Load ``config_path`` and execute one pipeline run."""
    config = load_config(config_path)
    options = build_run_options(
        config,
        service or build_service(config),
        disable_cache=disable_cache,
        retries=retries,
        rate_limit_ms=rate_limit_ms,
    )
    pipeline = GenerationPipeline(linter=build_linter(config))
    return await pipeline.run(options)


__all__ = ["build_linter", "build_run_options", "build_service", "run_from_config"]
