# src/forkline/engine/executor.py
"""Fan-out executor.

The executor walks a pipeline tree once per run:

- InputPipeline is a structural marker; the record stream is attached by
  the caller before the walk begins.
- TransformPipeline resolves its settings and replaces the current stream
  with the transformed stream (linear chaining, no fan-out).
- ForkSequence attaches one fork of the current stream per child. Output
  children get a pending completion handle; ChildPipeline children recurse
  over a fresh fork.

The walk is two-phase. Every settings template is resolved and every
processor created first. Only when the whole tree planned cleanly is the
stream piped and forked and are the output tasks started. A configuration
error therefore leaves the stream untouched.

The executor never awaits the handles it returns. A rejected handle does not
cancel its siblings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from forkline.contracts.errors import MalformedForkError, MalformedStageError
from forkline.core.expressions import evaluate
from forkline.core.logging import get_logger
from forkline.engine.completion import COMPLETION_KEY, BranchHandle, CompletionSignal
from forkline.engine.streams import RecordStream, StreamFork
from forkline.pipeline.tree import (
    ChildPipeline,
    ForkSequence,
    InputPipeline,
    OutputPipeline,
    RootPipeline,
    TransformPipeline,
)

logger = get_logger(__name__)

# Strong references to running output tasks; the event loop only keeps weak ones
_RUNNING_OUTPUTS: set[asyncio.Task[None]] = set()


@dataclass(frozen=True)
class _Launch:
    stage: OutputPipeline
    processor: Any
    fork: StreamFork
    settings: dict[str, Any]
    handle: BranchHandle


@dataclass(frozen=True)
class _PlannedStage:
    stage: TransformPipeline | OutputPipeline
    processor: Any
    settings: dict[str, Any]


@dataclass(frozen=True)
class _PlannedGroup:
    key: str
    steps: list[Any]


@dataclass(frozen=True)
class _PlannedFork:
    children: list[_PlannedStage | _PlannedGroup]


@dataclass
class _Walk:
    """Working state of one attach() invocation."""

    root: RootPipeline | None
    args: Mapping[str, Any]
    environ: Mapping[str, str] | None
    loop: asyncio.AbstractEventLoop
    launches: list[_Launch] = field(default_factory=list)


class PipelineExecutor:
    """Attaches a pipeline tree to a record stream and starts its outputs."""

    def attach(
        self,
        stream: RecordStream,
        pipeline: RootPipeline | ChildPipeline,
        args: Mapping[str, Any],
        *,
        root: RootPipeline | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> list[BranchHandle]:
        """Attach every branch of pipeline to stream and start the outputs.

        Must be called from a running event loop. When it raises, the stream
        has not been piped or forked.

        Args:
            stream: Stream arriving at the pipeline (not yet started)
            pipeline: Root pipeline, or a nested fork group
            args: Run-time argument bag
            root: Root of the tree, passed to processor factories
                (defaults to pipeline when it is a RootPipeline)
            environ: Environment for PipelineEnvArg (defaults to os.environ)

        Returns:
            One handle per terminal output, depth-first in definition order

        Raises:
            MalformedStageError: A stage is not input, transform or fork, or
                a stage list does not end with a fork
            MalformedForkError: A fork child is neither output nor fork group
            PipelineConfigError: Settings could not be resolved or validated
        """
        if root is None and isinstance(pipeline, RootPipeline):
            root = pipeline

        walk = _Walk(root=root, args=args, environ=environ, loop=asyncio.get_running_loop())
        steps = self._plan_stages(pipeline.stages, walk, _describe(pipeline))
        self._attach_steps(stream, steps, walk)

        for launch in walk.launches:
            task = walk.loop.create_task(_run_output(launch), name=f"forkline-output:{launch.stage.key}")
            _RUNNING_OUTPUTS.add(task)
            task.add_done_callback(_RUNNING_OUTPUTS.discard)

        return [launch.handle for launch in walk.launches]

    def _plan_stages(self, stages: tuple[Any, ...], walk: _Walk, where: str) -> list[Any]:
        # A stage list without a trailing fork would leave its stream unconsumed
        if not stages or not isinstance(stages[-1], ForkSequence):
            raise MalformedStageError(f"{where} must end with a fork sequence")

        steps: list[Any] = []
        for stage in stages:
            if isinstance(stage, InputPipeline):
                continue
            elif isinstance(stage, TransformPipeline):
                steps.append(self._plan_processor(stage, walk))
            elif isinstance(stage, ForkSequence):
                steps.append(self._plan_fork(stage, walk))
            else:
                raise MalformedStageError(f"Unsupported stage {stage!r}: expected an input, a transform or a fork")
        return steps

    def _plan_fork(self, fork_sequence: ForkSequence, walk: _Walk) -> _PlannedFork:
        children: list[_PlannedStage | _PlannedGroup] = []
        for child in fork_sequence.children:
            if isinstance(child, OutputPipeline):
                children.append(self._plan_processor(child, walk))
            elif isinstance(child, ChildPipeline):
                children.append(_PlannedGroup(child.key, self._plan_stages(child.stages, walk, _describe(child))))
            else:
                raise MalformedForkError(f"Fork children must be outputs or fork groups, got {child!r}")
        return _PlannedFork(children)

    def _plan_processor(self, stage: TransformPipeline | OutputPipeline, walk: _Walk) -> _PlannedStage:
        settings = evaluate(stage.settings, walk.args, walk.environ)
        processor = stage.create_processor(walk.root, settings, walk.args)
        return _PlannedStage(stage=stage, processor=processor, settings=settings)

    def _attach_steps(self, stream: RecordStream, steps: list[Any], walk: _Walk) -> None:
        for step in steps:
            if isinstance(step, _PlannedFork):
                self._attach_fork(stream, step, walk)
            else:
                stream = step.processor.apply(step.stage.key, stream, step.settings)

    def _attach_fork(self, stream: RecordStream, planned: _PlannedFork, walk: _Walk) -> None:
        for child in planned.children:
            if isinstance(child, _PlannedGroup):
                branch_stream = RecordStream(stream.fork(), buffer_size=stream.buffer_size)
                self._attach_steps(branch_stream, child.steps, walk)
                continue

            handle = BranchHandle(key=child.stage.key, future=walk.loop.create_future())
            signal = CompletionSignal(child.stage.key, handle.future)
            walk.launches.append(
                _Launch(
                    stage=child.stage,
                    processor=child.processor,
                    fork=stream.fork(),
                    settings={**child.settings, COMPLETION_KEY: signal},
                    handle=handle,
                )
            )
            logger.debug("branch_attached", branch=child.stage.key, processor=child.stage.processor)


def _describe(pipeline: RootPipeline | ChildPipeline) -> str:
    if isinstance(pipeline, ChildPipeline):
        return f"Fork group '{pipeline.key}'"
    return f"Pipeline '{pipeline.name}'"


async def _run_output(launch: _Launch) -> None:
    log = logger.bind(branch=launch.stage.key, processor=launch.stage.processor)
    future = launch.handle.future
    try:
        await launch.processor.write(launch.stage.key, launch.fork, launch.settings)
    except Exception as exc:
        if future.done():
            log.error("output_failed_after_completion", error=str(exc), exc_info=exc)
        else:
            future.set_exception(exc)
    else:
        if not future.done():
            # The handle stays pending: the processor broke the completion contract
            log.warning("output_returned_without_completion")
    finally:
        # A finished or failed branch must never hold back its siblings
        await launch.fork.aclose()
