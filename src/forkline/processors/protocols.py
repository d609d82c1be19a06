# src/forkline/processors/protocols.py
"""Processor protocols defining the contract for each processor kind.

These protocols are used for type checking. Registration goes through the
pluggy hooks in hookspecs.py; the built-in processors subclass the base
classes in base.py, which satisfy these protocols.

Processor kinds:
- Input: produces the record sequence (exactly one per pipeline)
- Transform: replaces the stream with a derived stream (linear)
- Output: consumes one fork of the stream and signals completion once
"""

from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from forkline.contracts.args import ArgDescriptor
from forkline.contracts.enums import ProcessorKind

if TYPE_CHECKING:
    from forkline.engine.streams import RecordStream, StreamFork
    from forkline.pipeline.tree import ProcessorFactory


@dataclass(frozen=True)
class ProcessorBuild:
    """What a processor module's builder() returns.

    Attributes:
        settings: Settings template (may contain placeholders)
        processor_factory: factory(root_pipeline, resolved_params, run_args)
            returning a processor instance bound to one run
    """

    settings: Any
    processor_factory: "ProcessorFactory"


@runtime_checkable
class ProcessorModule(Protocol):
    """A registered processor: name, declared arguments and a builder.

    Example:
        class StdoutOutput(BaseOutputProcessor):
            name = "stdout"

            @classmethod
            def default_args(cls) -> dict[str, ArgDescriptor]:
                return {"format": ArgDescriptor(name="format", valid_values={"json", "text"})}
    """

    name: str
    kind: ProcessorKind

    @classmethod
    def default_args(cls) -> Mapping[str, ArgDescriptor]:
        """Every argument the processor accepts, keyed by name."""
        ...

    @classmethod
    def builder(cls, build_key: str, settings_or_shorthand: Any = None) -> ProcessorBuild:
        """Turn structured settings or a shorthand literal into a ProcessorBuild."""
        ...


@runtime_checkable
class InputProcessor(Protocol):
    """Bound input: produces the record sequence for one run.

    Multi-source inputs must finish each source before opening the next.
    """

    def records(self) -> AsyncIterator[Any]: ...


@runtime_checkable
class TransformProcessor(Protocol):
    """Bound transform: derives a new stream from the current one."""

    def apply(self, key: str, stream: "RecordStream", settings: Mapping[str, Any]) -> "RecordStream": ...


@runtime_checkable
class OutputProcessor(Protocol):
    """Bound output: consumes a fork and signals completion exactly once.

    settings carries the CompletionSignal under COMPLETION_KEY. Returning
    without signalling leaves the branch's handle pending forever.
    """

    async def write(self, key: str, stream: "StreamFork", settings: Mapping[str, Any]) -> None: ...
