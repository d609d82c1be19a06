# src/forkline/engine/runner.py
"""Pipeline runner: one complete run of a pipeline tree.

Run lifecycle:
1. Resolve every stage's settings and validate them against its processor
   (configuration errors surface here, before any processor executes)
2. Build the input processor and wrap its records() in a RecordStream
3. Attach the tree through the executor (forks first, then outputs start)
4. Await every branch handle; one failing branch never cancels the others

The runner is stateless between runs: the same runner (and the same tree)
can be run concurrently with different argument bags.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from forkline.contracts.enums import BranchStatus
from forkline.contracts.events import BranchCompleted, PipelineEvent, RunCompleted, RunStarted
from forkline.core.expressions import evaluate
from forkline.core.logging import get_logger
from forkline.engine.completion import BranchHandle
from forkline.engine.executor import PipelineExecutor
from forkline.engine.streams import DEFAULT_BUFFER_SIZE, RecordStream
from forkline.pipeline.tree import RootPipeline

logger = get_logger(__name__)


@dataclass(frozen=True)
class BranchOutcome:
    """Settled state of one terminal branch."""

    key: str
    status: BranchStatus
    result: Any = None
    error: BaseException | None = None


@dataclass(frozen=True)
class RunResult:
    """Outcome of one run. Every failed branch is reported individually."""

    run_id: str
    branches: tuple[BranchOutcome, ...]
    duration_seconds: float

    @property
    def succeeded(self) -> bool:
        return all(branch.status == BranchStatus.COMPLETED for branch in self.branches)

    @property
    def failed_branches(self) -> list[BranchOutcome]:
        return [branch for branch in self.branches if branch.status == BranchStatus.FAILED]

    def result_for(self, key: str) -> Any:
        for branch in self.branches:
            if branch.key == key:
                return branch.result
        raise KeyError(key)


class PipelineRunner:
    """Runs a pipeline tree against run-time arguments.

    Usage:
        runner = PipelineRunner(pipeline)
        result = await runner.run({"pattern": "data/*.jsonl"})
        for branch in result.failed_branches:
            print(branch.key, branch.error)
    """

    def __init__(
        self,
        pipeline: RootPipeline,
        *,
        buffer_size: int | None = DEFAULT_BUFFER_SIZE,
        executor: PipelineExecutor | None = None,
        on_event: Callable[[PipelineEvent], None] | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._buffer_size = buffer_size
        self._executor = executor or PipelineExecutor()
        self._on_event = on_event

    @property
    def pipeline(self) -> RootPipeline:
        return self._pipeline

    def validate(
        self,
        args: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Resolve and validate every stage without running anything.

        Processors are constructed (which validates their params) and
        discarded; construction has no side effects.

        Returns:
            Resolved settings per stage key

        Raises:
            PipelineConfigError: Missing or invalid arguments, unknown params
        """
        args = args or {}
        resolved: dict[str, Any] = {}
        for stage in self._pipeline.stage_nodes():
            settings = evaluate(stage.settings, args, environ)
            stage.create_processor(self._pipeline, settings, args)
            resolved[stage.key] = settings
        return resolved

    async def run(
        self,
        args: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> RunResult:
        """Execute one run and wait for every terminal branch to settle.

        Raises:
            PipelineConfigError: Before any record flows, when the tree or
                its arguments are invalid. Processor failures do NOT raise;
                they are reported per branch in the RunResult.
        """
        run_id = uuid.uuid4().hex[:12]
        # Snapshot so caller mutations during the run cannot leak into it
        args = dict(args or {})
        log = logger.bind(run_id=run_id, pipeline=self._pipeline.name)

        self.validate(args, environ)

        input_stage = self._pipeline.input
        input_settings = evaluate(input_stage.settings, args, environ)
        input_processor = input_stage.create_processor(self._pipeline, input_settings, args)
        stream = RecordStream(input_processor.records(), buffer_size=self._buffer_size)

        handles = self._executor.attach(stream, self._pipeline, args, environ=environ)
        log.info("pipeline_run_started", branches=len(handles), input=input_stage.processor)
        self._emit(RunStarted(run_id=run_id, branch_keys=tuple(handle.key for handle in handles)))

        started_at = time.monotonic()
        outcomes = await self._settle(run_id, handles)
        duration = time.monotonic() - started_at

        result = RunResult(run_id=run_id, branches=outcomes, duration_seconds=duration)

        failed_keys = tuple(branch.key for branch in result.failed_branches)
        if failed_keys:
            log.error("pipeline_run_completed", succeeded=False, failed=list(failed_keys), duration_seconds=round(duration, 3))
        else:
            log.info("pipeline_run_completed", succeeded=True, duration_seconds=round(duration, 3))
        self._emit(RunCompleted(run_id=run_id, succeeded=result.succeeded, duration_seconds=duration, failed_keys=failed_keys))
        return result

    async def _settle(self, run_id: str, handles: list[BranchHandle]) -> tuple[BranchOutcome, ...]:
        """Wait for every handle, reporting each branch as soon as it settles.

        Events are emitted from this coroutine, so an on_event callback that
        raises aborts the run instead of being lost in a future callback.
        """
        settled: dict[int, BranchOutcome] = {}
        pending = {handle.future for handle in handles}
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for index, handle in enumerate(handles):
                if handle.future in done:
                    settled[index] = _outcome(handle)
                    self._branch_settled(run_id, settled[index])
        return tuple(settled[index] for index in range(len(handles)))

    def _branch_settled(self, run_id: str, outcome: BranchOutcome) -> None:
        log = logger.bind(run_id=run_id, branch=outcome.key)
        if outcome.status == BranchStatus.COMPLETED:
            log.info("branch_completed")
            self._emit(BranchCompleted(run_id=run_id, key=outcome.key, status=outcome.status, result=outcome.result))
        else:
            error = outcome.error
            log.error("branch_failed", error=str(error), error_type=type(error).__name__)
            self._emit(BranchCompleted(run_id=run_id, key=outcome.key, status=outcome.status, error=error))

    def _emit(self, event: PipelineEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)


def _outcome(handle: BranchHandle) -> BranchOutcome:
    future = handle.future
    if future.cancelled():
        return BranchOutcome(key=handle.key, status=BranchStatus.FAILED, error=asyncio.CancelledError())
    error = future.exception()
    if error is not None:
        return BranchOutcome(key=handle.key, status=BranchStatus.FAILED, error=error)
    return BranchOutcome(key=handle.key, status=BranchStatus.COMPLETED, result=future.result())


def run_sync(
    pipeline: RootPipeline,
    args: Mapping[str, Any] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    buffer_size: int | None = DEFAULT_BUFFER_SIZE,
    on_event: Callable[[PipelineEvent], None] | None = None,
) -> RunResult:
    """Run a pipeline to completion from synchronous code (e.g. the CLI)."""
    runner = PipelineRunner(pipeline, buffer_size=buffer_size, on_event=on_event)
    return asyncio.run(runner.run(args, environ))
