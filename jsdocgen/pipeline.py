"""Run coordination: cache lookup, generation, merge, save, lint and cache persistence."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .errors import AllNodesFailedError, JsdocgenError, LintError
from .generation.retry import retry_generation_service
from .generation.scheduler import RateLimitedScheduler
from .generation.service import GenerationService, generate_for_kind
from .hashing import DEFAULT_HASH_ALGORITHM, ContentHasher
from .logging import get_logger
from .merge import apply_documentation
from .models import DeclarationKind, GenerationRequest, JSDocOptions
from .postproc.lint import Linter
from .stores.node_cache import CachePersistence, CacheStore
from .stores.persistence import DEFAULT_CACHE_DIR, DEFAULT_NAMESPACE, JsonCachePersistence
from .syntax.tree import DocumentableNode, SourceUnit
from .syntax.typescript import TypeScriptProvider

OptionsLike = Union[JSDocOptions, Mapping[str, Any], None]


@dataclass
class RunOptions:
    """Everything one generation run needs."""

    files: Sequence[str]
    service: GenerationService
    root: Path | str = "."
    global_options: OptionsLike = None
    kinds: Sequence[Union[DeclarationKind, str]] = ()
    detail_options: Mapping[str, OptionsLike] = field(default_factory=dict)
    service_options: Dict[str, Any] = field(default_factory=dict)
    cache_dir: Path | str = DEFAULT_CACHE_DIR
    cache_namespace: str = DEFAULT_NAMESPACE
    cache_hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    disable_cache: bool = False
    retries: int = 1
    rate_limit_ms: Optional[float] = None
    abort_event: Optional[asyncio.Event] = None

    def resolved_kinds(self) -> List[DeclarationKind]:
        """Configured kinds in declaration order; an empty selection means all kinds."""
        if not self.kinds:
            return list(DeclarationKind)
        selected = {DeclarationKind.parse(kind) for kind in self.kinds}
        return [kind for kind in DeclarationKind if kind in selected]

    def options_for(self, kind: DeclarationKind) -> JSDocOptions:
        """Global options overlaid with the per-kind overrides."""
        detail: OptionsLike = None
        for key, value in self.detail_options.items():
            if DeclarationKind.parse(key) is kind:
                detail = value
        return JSDocOptions.from_mapping(_as_mapping(self.global_options), _as_mapping(detail))


@dataclass
class GenerationTask:
    """One node awaiting generated documentation."""

    unit: SourceUnit
    node: DocumentableNode
    kind: DeclarationKind
    index: int
    options: JSDocOptions
    request: GenerationRequest

    @property
    def label(self) -> str:
        return f"{self.kind.value} #{self.index} in {self.unit.path}"


@dataclass
class CacheHit:
    """A node skipped because its content is already documented."""

    unit: SourceUnit
    node: DocumentableNode
    kind: DeclarationKind
    index: int
    options: JSDocOptions
    file_text: str
    node_text: str


class FileStatus(str, Enum):
    SAVED = "saved"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    SAVE_FAILED = "save_failed"


@dataclass
class FileOutcome:
    path: Path
    status: FileStatus = FileStatus.UNCHANGED
    succeeded: int = 0
    failed: int = 0
    errors: List[BaseException] = field(default_factory=list)


@dataclass
class RunReport:
    """Aggregate result of a pipeline run."""

    files: List[FileOutcome] = field(default_factory=list)
    generated: int = 0
    cached: int = 0
    failed: int = 0
    cache_path: Optional[Path] = None

    @property
    def all_failed(self) -> bool:
        """True when generation was attempted and no node succeeded."""
        return self.failed > 0 and self.generated == 0

    def outcome_for(self, path: Path | str) -> Optional[FileOutcome]:
        target = Path(path).resolve()
        for outcome in self.files:
            if outcome.path.resolve() == target:
                return outcome
        return None


@dataclass
class _Plan:
    tasks: List[GenerationTask] = field(default_factory=list)
    hits: List[CacheHit] = field(default_factory=list)


PersistenceFactory = Callable[[RunOptions], CachePersistence]


def default_persistence(options: RunOptions) -> JsonCachePersistence:
    base = Path(options.cache_dir).expanduser()
    if not base.is_absolute():
        base = Path(options.root).expanduser() / base
    return JsonCachePersistence(
        base, namespace=options.cache_namespace, hash_algorithm=options.cache_hash_algorithm
    )


class GenerationPipeline:
    """Documents every eligible node matched by a run's file patterns."""

    def __init__(
        self,
        provider: TypeScriptProvider | None = None,
        *,
        linter: Linter | None = None,
        persistence_factory: PersistenceFactory | None = None,
    ) -> None:
        self.provider = provider or TypeScriptProvider()
        self.linter = linter
        self._persistence_factory = persistence_factory or default_persistence
        self.logger = get_logger("pipeline")

    async def run(self, options: RunOptions) -> RunReport:
        if options.retries < 1:
            raise ValueError("retries must be >= 1")
        root = Path(options.root).expanduser().resolve()
        self.logger.info("Starting generation run in %s", root)
        units = self.provider.load_units(list(options.files), root)
        if not units:
            self.logger.warning("No source files matched %s", ", ".join(options.files))

        cache: Optional[CacheStore] = None
        if options.disable_cache:
            self.logger.info("Node cache disabled for this run")
        else:
            cache = CacheStore(
                self._persistence_factory(options), ContentHasher(options.cache_hash_algorithm)
            )
            await cache.load()

        plan = self._plan(units, options, cache)
        self.logger.info(
            "Planned %d generation task(s); %d node(s) served from cache",
            len(plan.tasks),
            len(plan.hits),
        )

        results = await self._generate(plan.tasks, options)
        outcomes = self._collect(units, plan.tasks, results)
        saved = await self._save_units(units, outcomes)
        reloaded = await self._lint(saved)

        report = RunReport(
            files=[outcomes[unit.path] for unit in units],
            generated=sum(outcome.succeeded for outcome in outcomes.values()),
            cached=len(plan.hits),
            failed=sum(outcome.failed for outcome in outcomes.values()),
        )
        if cache is not None:
            self._record(cache, units, plan, results, outcomes, reloaded)
            report.cache_path = await cache.save()

        self.logger.info(
            "Run finished: %d generated, %d cached, %d failed across %d file(s)",
            report.generated,
            report.cached,
            report.failed,
            len(report.files),
        )
        if report.all_failed:
            self.logger.error("Every generation task failed; no documentation was written")
        return report

    # ------------------------------------------------------------------
    # Planning

    def _plan(
        self, units: Sequence[SourceUnit], options: RunOptions, cache: Optional[CacheStore]
    ) -> _Plan:
        plan = _Plan()
        kinds = [(kind, options.options_for(kind)) for kind in options.resolved_kinds()]
        for unit in units:
            file_text = unit.text
            context = None
            for kind, kind_options in kinds:
                if kind_options.disabled:
                    continue
                for index, node in enumerate(unit.declarations_of_kind(kind)):
                    node_text = node.full_text
                    if cache is not None and cache.is_cached(file_text, node_text, kind_options):
                        plan.hits.append(
                            CacheHit(unit, node, kind, index, kind_options, file_text, node_text)
                        )
                        continue
                    if context is None:
                        context = self._source_context(unit)
                    source_file, referenced = context
                    request = GenerationRequest(
                        code_snippet=node.text,
                        source_file=source_file,
                        referenced_source_files=referenced,
                    )
                    plan.tasks.append(
                        GenerationTask(unit, node, kind, index, kind_options, request)
                    )
        return plan

    def _source_context(self, unit: SourceUnit):
        referenced = tuple(self.provider.minify(item) for item in self.provider.referenced_units(unit))
        return self.provider.minify(unit), referenced

    # ------------------------------------------------------------------
    # Generation

    async def _generate(
        self, tasks: Sequence[GenerationTask], options: RunOptions
    ) -> List[Optional[BaseException]]:
        if not tasks:
            return []
        scheduler: Optional[RateLimitedScheduler] = None
        if options.rate_limit_ms is not None or options.abort_event is not None:
            scheduler = RateLimitedScheduler(options.rate_limit_ms or 0, options.abort_event)

        futures = [
            asyncio.ensure_future(self._run_task(task, options, scheduler)) for task in tasks
        ]
        if scheduler is None or options.abort_event is None:
            return list(await asyncio.gather(*futures))
        return await self._gather_until_abort(futures, scheduler, options.abort_event)

    async def _run_task(
        self,
        task: GenerationTask,
        options: RunOptions,
        scheduler: Optional[RateLimitedScheduler],
    ) -> Optional[BaseException]:
        def on_error(attempt: int, error: BaseException) -> None:
            self.logger.warning(
                "Attempt %d/%d for %s failed: %s", attempt, options.retries, task.label, error
            )

        def on_success(attempt: int, _value: object) -> None:
            self.logger.debug("Attempt %d for %s succeeded", attempt, task.label)

        service = retry_generation_service(
            options.service,
            options.retries,
            scheduler=scheduler,
            on_success=on_success,
            on_error=on_error,
        )
        try:
            code = await generate_for_kind(service, task.kind, task.request, options.service_options)
            snippet = self.provider.parse_snippet(code, task.unit.path.suffix or ".ts")
            apply_documentation(task.node, snippet.documentable_nodes(), task.options)
        except Exception as exc:  # noqa: BLE001 - isolated per node, reported in the run report
            self.logger.error("Giving up on %s: %s", task.label, exc)
            return exc
        return None

    async def _gather_until_abort(
        self,
        futures: List[asyncio.Future],
        scheduler: RateLimitedScheduler,
        abort_event: asyncio.Event,
    ) -> List[Optional[BaseException]]:
        abort_wait = asyncio.ensure_future(abort_event.wait())
        pending = set(futures)
        try:
            while pending:
                done, _ = await asyncio.wait(
                    pending | {abort_wait}, return_when=asyncio.FIRST_COMPLETED
                )
                pending -= done
                if abort_wait in done:
                    break
        finally:
            abort_wait.cancel()

        if pending:
            self.logger.warning("Run aborted with %d task(s) outstanding", len(pending))
            scheduler.abort()
            # Let the task in flight finish and merge before the rest is dropped.
            await scheduler.join()
            await asyncio.sleep(0)
            for future in pending:
                if not future.done():
                    future.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        results: List[Optional[BaseException]] = []
        for future in futures:
            if future.cancelled():
                results.append(JsdocgenError("Run aborted before the task completed"))
            else:
                results.append(future.result())
        return results

    # ------------------------------------------------------------------
    # Outcomes, persistence and lint

    def _collect(
        self,
        units: Sequence[SourceUnit],
        tasks: Sequence[GenerationTask],
        results: Sequence[Optional[BaseException]],
    ) -> Dict[Path, FileOutcome]:
        outcomes = {unit.path: FileOutcome(path=unit.path) for unit in units}
        for task, error in zip(tasks, results):
            outcome = outcomes[task.unit.path]
            if error is None:
                outcome.succeeded += 1
            else:
                outcome.failed += 1
                outcome.errors.append(error)
        for outcome in outcomes.values():
            if outcome.failed and not outcome.succeeded:
                outcome.status = FileStatus.FAILED
                outcome.errors = [AllNodesFailedError(outcome.errors)]
                self.logger.error("All %d task(s) failed for %s", outcome.failed, outcome.path)
        return outcomes

    async def _save_units(
        self, units: Sequence[SourceUnit], outcomes: Dict[Path, FileOutcome]
    ) -> List[SourceUnit]:
        to_save = [unit for unit in units if outcomes[unit.path].succeeded]
        results = await asyncio.gather(
            *(self.provider.save(unit) for unit in to_save), return_exceptions=True
        )
        saved: List[SourceUnit] = []
        for unit, result in zip(to_save, results):
            outcome = outcomes[unit.path]
            if isinstance(result, BaseException):
                outcome.status = FileStatus.SAVE_FAILED
                outcome.errors.append(result)
                self.logger.error("Failed to save %s: %s", unit.path, result)
                continue
            outcome.status = FileStatus.SAVED
            saved.append(unit)
            self.logger.info(
                "Documented %s: %d succeeded, %d failed",
                unit.path,
                outcome.succeeded,
                outcome.failed,
            )
        return saved

    async def _lint(self, saved: Sequence[SourceUnit]) -> Dict[Path, SourceUnit]:
        if self.linter is None or not saved:
            return {}
        self.logger.info("Linting %d saved file(s)", len(saved))
        try:
            await self.linter.lint([unit.path for unit in saved])
        except LintError as exc:
            self.logger.warning("Lint step failed: %s", exc)
            return {}
        reloaded: Dict[Path, SourceUnit] = {}
        for unit in saved:
            try:
                reloaded[unit.path] = self.provider.reload(unit)
            except (OSError, UnicodeDecodeError) as exc:
                self.logger.warning("Could not re-read %s after linting: %s", unit.path, exc)
        return reloaded

    # ------------------------------------------------------------------
    # Cache recording

    def _record(
        self,
        cache: CacheStore,
        units: Sequence[SourceUnit],
        plan: _Plan,
        results: Sequence[Optional[BaseException]],
        outcomes: Dict[Path, FileOutcome],
        reloaded: Dict[Path, SourceUnit],
    ) -> None:
        documented: Dict[Path, List[Any]] = {unit.path: [] for unit in units}
        for task, error in zip(plan.tasks, results):
            if error is None:
                documented[task.unit.path].append(task)
        for hit in plan.hits:
            documented[hit.unit.path].append(hit)

        cache.clear()
        for unit in units:
            items = documented[unit.path]
            if outcomes[unit.path].status is not FileStatus.SAVED:
                for item in items:
                    if isinstance(item, CacheHit):
                        cache.record(item.file_text, item.node_text, _metadata(item.options))
                continue
            linted = reloaded.get(unit.path)
            file_text = linted.text if linted is not None else unit.text
            for item in items:
                node_text = item.node.full_text
                if linted is not None:
                    node_text = _aligned_text(unit, linted, item.kind, item.index, node_text)
                cache.record(file_text, node_text, _metadata(item.options))


async def run_pipeline(
    options: RunOptions,
    *,
    provider: TypeScriptProvider | None = None,
    linter: Linter | None = None,
) -> RunReport:
    """Run a single generation pass with the default cache persistence."""
    return await GenerationPipeline(provider, linter=linter).run(options)


def _aligned_text(
    original: SourceUnit, linted: SourceUnit, kind: DeclarationKind, index: int, fallback: str
) -> str:
    before = original.declarations_of_kind(kind)
    after = linted.declarations_of_kind(kind)
    if len(before) != len(after) or index >= len(after):
        return fallback
    return after[index].full_text


def _metadata(options: JSDocOptions) -> Dict[str, Any]:
    return {"jsDocOptions": options.to_dict()}


def _as_mapping(value: OptionsLike) -> Optional[Mapping[str, Any]]:
    if isinstance(value, JSDocOptions):
        return value.to_dict()
    return value


__all__ = [
    "CacheHit",
    "FileOutcome",
    "FileStatus",
    "GenerationPipeline",
    "GenerationTask",
    "RunOptions",
    "RunReport",
    "default_persistence",
    "run_pipeline",
]
