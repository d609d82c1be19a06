# src/forkline/pipeline/tree.py
"""Pipeline definition tree.

A tree is built once (usually through PipelineBuilder) and never mutated.
Stage lists are tuples and every node is a frozen dataclass.

Shape:
    RootPipeline(stages=(
        InputPipeline,                 # exactly one, always first
        TransformPipeline, ...,        # zero or more, chained linearly
        ForkSequence(children=(        # terminal for this stage list
            OutputPipeline,            # terminal leaf
            ChildPipeline(stages=(     # nested fork group
                TransformPipeline, ...,
                ForkSequence(...),
            )),
        )),
    ))

Settings are stored as compiled configuration expressions; they are
resolved per (stage, run) by the executor and never cached on the tree.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from forkline.contracts.enums import ProcessorKind
from forkline.contracts.errors import PipelineStructureError
from forkline.core.expressions import ConfigExpr

# processor_factory(root_pipeline, resolved_params, run_args) -> processor instance
ProcessorFactory = Callable[["RootPipeline", Mapping[str, Any], Mapping[str, Any]], Any]


@dataclass(frozen=True)
class ProcessorStage:
    """A stage bound to one processor module."""

    key: str
    processor: str
    settings: ConfigExpr
    processor_factory: ProcessorFactory

    def create_processor(
        self,
        root: RootPipeline,
        params: Mapping[str, Any],
        args: Mapping[str, Any],
    ) -> Any:
        return self.processor_factory(root, params, args)


@dataclass(frozen=True)
class InputPipeline(ProcessorStage):
    kind: ClassVar[ProcessorKind] = ProcessorKind.INPUT


@dataclass(frozen=True)
class TransformPipeline(ProcessorStage):
    kind: ClassVar[ProcessorKind] = ProcessorKind.TRANSFORM


@dataclass(frozen=True)
class OutputPipeline(ProcessorStage):
    kind: ClassVar[ProcessorKind] = ProcessorKind.OUTPUT


@dataclass(frozen=True)
class ForkSequence:
    """One branch point: every child receives its own fork of the stream."""

    children: tuple[Any, ...]

    def __post_init__(self) -> None:
        if not self.children:
            raise PipelineStructureError("A fork needs at least one child")


@dataclass(frozen=True)
class ChildPipeline:
    """Nested fork group: its own transforms, then its own fork sequence."""

    key: str
    stages: tuple[Any, ...]

    def __post_init__(self) -> None:
        for stage in self.stages:
            if isinstance(stage, InputPipeline):
                raise PipelineStructureError(f"Fork group '{self.key}' cannot contain an input stage")
        _check_fork_is_last(self.stages, f"fork group '{self.key}'")
        _check_ends_with_fork(self.stages, f"Fork group '{self.key}'")


@dataclass(frozen=True)
class RootPipeline:
    """Top of a pipeline tree."""

    stages: tuple[Any, ...]
    name: str = "pipeline"

    def __post_init__(self) -> None:
        if not self.stages or not isinstance(self.stages[0], InputPipeline):
            raise PipelineStructureError("The first stage of a pipeline must be its input")
        if any(isinstance(stage, InputPipeline) for stage in self.stages[1:]):
            raise PipelineStructureError("A pipeline has exactly one input stage")
        _check_fork_is_last(self.stages, f"pipeline '{self.name}'")
        _check_ends_with_fork(self.stages, f"Pipeline '{self.name}'")

    @property
    def input(self) -> InputPipeline:
        first: InputPipeline = self.stages[0]
        return first

    def stage_nodes(self) -> Iterator[ProcessorStage]:
        """Yield every processor stage, depth-first in definition order."""
        yield from _walk(self.stages)

    def outputs(self) -> list[OutputPipeline]:
        """Terminal leaves, in the order the executor attaches them."""
        return [stage for stage in self.stage_nodes() if isinstance(stage, OutputPipeline)]


def _check_fork_is_last(stages: tuple[Any, ...], where: str) -> None:
    for index, stage in enumerate(stages):
        if isinstance(stage, ForkSequence) and index != len(stages) - 1:
            raise PipelineStructureError(f"No stage may follow a fork in {where}")


def _check_ends_with_fork(stages: tuple[Any, ...], where: str) -> None:
    # Records that reach no output would stall every sibling branch
    if not stages or not isinstance(stages[-1], ForkSequence):
        raise PipelineStructureError(f"{where} must end with a fork of outputs")


def _walk(stages: tuple[Any, ...]) -> Iterator[ProcessorStage]:
    for stage in stages:
        if isinstance(stage, ProcessorStage):
            yield stage
        elif isinstance(stage, ForkSequence):
            for child in stage.children:
                if isinstance(child, ProcessorStage):
                    yield child
                elif isinstance(child, ChildPipeline):
                    yield from _walk(child.stages)
