# src/forkline/pipeline/builder.py
"""Fluent construction of pipeline trees.

Usage:
    pipeline = (
        PipelineBuilder("orders")
        .input("file_pattern", {"pattern": PipelineArg(name="pattern", required=True)})
        .transform("json")
        .output("stdout")
        .fork(
            branch("ids")
            .transform("pick", ["id"])
            .output("file", "ids.jsonl")
        )
        .build()
    )

Processors are named by their registry name or given as a processor class.
Stage keys default to the processor name, prefixed by the enclosing fork
group keys ("ids/file"); a repeated default key gets a numeric suffix
("stdout-2"). Explicit keys must be unique within the tree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from forkline.contracts.enums import ProcessorKind
from forkline.contracts.errors import PipelineStructureError, UnknownProcessorError
from forkline.core.expressions import compile_template
from forkline.pipeline.tree import (
    ChildPipeline,
    ForkSequence,
    InputPipeline,
    OutputPipeline,
    ProcessorStage,
    RootPipeline,
    TransformPipeline,
)
from forkline.processors.registry import ProcessorRegistry, get_registry

_STAGE_TYPES: dict[ProcessorKind, type[ProcessorStage]] = {
    ProcessorKind.INPUT: InputPipeline,
    ProcessorKind.TRANSFORM: TransformPipeline,
    ProcessorKind.OUTPUT: OutputPipeline,
}


@dataclass(frozen=True)
class _StageSpec:
    kind: ProcessorKind
    processor: Any
    settings: Any
    key: str | None


def output(processor: Any, settings: Any = None, *, key: str | None = None) -> _StageSpec:
    """Describe an output leaf for PipelineBuilder.fork() / BranchBuilder.fork()."""
    return _StageSpec(ProcessorKind.OUTPUT, processor, settings, key)


def branch(key: str) -> BranchBuilder:
    """Start a nested fork group."""
    return BranchBuilder(key)


class _StageListBuilder:
    """Transforms, then fork children. Shared by the root and fork groups."""

    def __init__(self) -> None:
        self._transforms: list[_StageSpec] = []
        self._children: list[_StageSpec | BranchBuilder] = []

    def transform(self, processor: Any, settings: Any = None, *, key: str | None = None) -> Any:
        if self._children:
            raise PipelineStructureError("A transform cannot follow a fork; add it before the outputs")
        self._transforms.append(_StageSpec(ProcessorKind.TRANSFORM, processor, settings, key))
        return self

    def output(self, processor: Any, settings: Any = None, *, key: str | None = None) -> Any:
        """Add one output leaf to this stage list's fork."""
        self._children.append(output(processor, settings, key=key))
        return self

    def fork(self, *children: _StageSpec | BranchBuilder) -> Any:
        """Add fork children: output(...) leaves and branch(...) groups."""
        for child in children:
            if isinstance(child, _StageSpec) and child.kind != ProcessorKind.OUTPUT:
                raise PipelineStructureError(f"Fork children must be outputs or fork groups, got a {child.kind} stage")
            if not isinstance(child, _StageSpec | BranchBuilder):
                raise PipelineStructureError(f"Fork children must be outputs or fork groups, got {child!r}")
            self._children.append(child)
        return self

    def _build_stages(self, context: _BuildContext, prefix: str, where: str) -> list[Any]:
        if not self._children:
            raise PipelineStructureError(f"{where} has no outputs")
        stages: list[Any] = [context.stage(spec, prefix) for spec in self._transforms]
        children: list[Any] = []
        for child in self._children:
            if isinstance(child, BranchBuilder):
                children.append(child._build(context, prefix))
            else:
                children.append(context.stage(child, prefix))
        stages.append(ForkSequence(tuple(children)))
        return stages


class BranchBuilder(_StageListBuilder):
    """Nested fork group: receives its own fork of the stream at its fork point."""

    def __init__(self, key: str) -> None:
        super().__init__()
        if not key:
            raise PipelineStructureError("A fork group needs a non-empty key")
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def _build(self, context: _BuildContext, prefix: str) -> ChildPipeline:
        key = context.claim(f"{prefix}{self._key}", explicit=True)
        stages = self._build_stages(context, f"{key}/", f"Fork group '{key}'")
        return ChildPipeline(key=key, stages=tuple(stages))


class PipelineBuilder(_StageListBuilder):
    """Builds a RootPipeline; build() may be called any number of times."""

    def __init__(self, name: str = "pipeline", registry: ProcessorRegistry | None = None) -> None:
        super().__init__()
        self._name = name
        self._registry = registry
        self._input: _StageSpec | None = None

    def input(self, processor: Any, settings: Any = None, *, key: str | None = None) -> PipelineBuilder:
        if self._input is not None:
            raise PipelineStructureError("A pipeline has exactly one input stage")
        self._input = _StageSpec(ProcessorKind.INPUT, processor, settings, key)
        return self

    def build(self) -> RootPipeline:
        """Look up every processor, compile every settings template, build the tree.

        Raises:
            PipelineStructureError: No input, no outputs, duplicate keys
            UnknownProcessorError: A processor name is not registered
            PipelineConfigError: A processor rejected its settings shorthand
        """
        if self._input is None:
            raise PipelineStructureError(f"Pipeline '{self._name}' has no input stage")
        context = _BuildContext(self._registry or get_registry())
        stages = [context.stage(self._input, "")]
        stages.extend(self._build_stages(context, "", f"Pipeline '{self._name}'"))
        return RootPipeline(stages=tuple(stages), name=self._name)


class _BuildContext:
    """Per-build() state: registry and the keys claimed so far."""

    def __init__(self, registry: ProcessorRegistry) -> None:
        self._registry = registry
        self._keys: set[str] = set()

    def claim(self, key: str, *, explicit: bool) -> str:
        if key not in self._keys:
            self._keys.add(key)
            return key
        if explicit:
            raise PipelineStructureError(f"Duplicate stage key '{key}'")
        suffix = 2
        while f"{key}-{suffix}" in self._keys:
            suffix += 1
        self._keys.add(f"{key}-{suffix}")
        return f"{key}-{suffix}"

    def stage(self, spec: _StageSpec, prefix: str) -> ProcessorStage:
        module = self._module(spec.kind, spec.processor)
        if spec.key is not None:
            key = self.claim(f"{prefix}{spec.key}", explicit=True)
        else:
            key = self.claim(f"{prefix}{module.name}", explicit=False)
        build = module.builder(key, spec.settings)
        stage_type = _STAGE_TYPES[spec.kind]
        return stage_type(
            key=key,
            processor=module.name,
            settings=compile_template(build.settings),
            processor_factory=build.processor_factory,
        )

    def _module(self, kind: ProcessorKind, processor: Any) -> Any:
        if not isinstance(processor, str):
            declared = getattr(processor, "kind", None)
            if declared != kind:
                raise PipelineStructureError(f"Processor {processor!r} is not a {kind} processor")
            return processor
        module = self._registry.lookup(kind, processor)
        if module is None:
            raise UnknownProcessorError(str(kind), processor, list(self._registry.namespace(kind)))
        return module
