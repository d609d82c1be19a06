# src/forkline/processors/base.py
"""Base classes for processor implementations.

A processor class is its own processor module: the class carries the name,
the declared arguments and the builder; an instance is bound to one run.

Lifecycle (per run):
    builder(key, settings)            -> once, when the tree is built
    cls(root, resolved_params, args)  -> once per run (validates params)
    records() / apply() / write()     -> once per run

Instances must not keep state across runs; a new instance is constructed for
every run, so per-run state lives on the instance and nowhere else.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from forkline.contracts.args import ArgDescriptor, validate_params
from forkline.contracts.enums import ProcessorKind
from forkline.contracts.errors import PipelineConfigError
from forkline.core.logging import get_logger
from forkline.engine.completion import COMPLETION_KEY, CompletionSignal
from forkline.engine.streams import RecordStream, StreamFork
from forkline.processors.protocols import ProcessorBuild
from forkline.processors.sentinels import DROP

if TYPE_CHECKING:
    from forkline.pipeline.tree import RootPipeline


class BaseProcessor(ABC):
    """Common construction, builder and argument validation."""

    name: ClassVar[str]
    kind: ClassVar[ProcessorKind]

    # Settings key a non-mapping shorthand literal is assigned to (e.g. a bare path)
    shorthand_arg: ClassVar[str | None] = None

    def __init__(
        self,
        root: "RootPipeline | None",
        params: Mapping[str, Any] | None,
        args: Mapping[str, Any] | None = None,
    ) -> None:
        self._root = root
        self._params = validate_params(self.name, self.default_args(), params)
        self._args = dict(args or {})
        self._logger = get_logger(type(self).__module__).bind(processor=self.name, kind=str(self.kind))

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {}

    @classmethod
    def builder(cls, build_key: str, settings_or_shorthand: Any = None) -> ProcessorBuild:
        """Normalize structured settings or a shorthand literal.

        Raises:
            PipelineConfigError: Shorthand given to a processor without one
        """
        if settings_or_shorthand is None:
            settings: Any = {}
        elif isinstance(settings_or_shorthand, Mapping):
            settings = dict(settings_or_shorthand)
        elif cls.shorthand_arg is not None:
            settings = {cls.shorthand_arg: settings_or_shorthand}
        else:
            raise PipelineConfigError(
                f"Processor '{cls.name}' (stage '{build_key}') takes a settings mapping, got {type(settings_or_shorthand).__name__}"
            )
        return ProcessorBuild(settings=settings, processor_factory=cls)

    @property
    def params(self) -> dict[str, Any]:
        return self._params

    @property
    def args(self) -> dict[str, Any]:
        return self._args

    @property
    def root(self) -> "RootPipeline | None":
        return self._root


class BaseInputProcessor(BaseProcessor):
    """Base class for inputs. Subclasses implement records()."""

    kind = ProcessorKind.INPUT

    @abstractmethod
    def records(self) -> AsyncIterator[Any]:
        """Produce the run's record sequence (usually an async generator)."""
        ...


class SequentialSourceInput(BaseInputProcessor):
    """Input that reads several sources, strictly one after another.

    A source is opened only after the previous one was read to the end,
    which bounds open resources and keeps cross-source record order stable.
    Subclasses implement sources() and read_source().
    """

    @abstractmethod
    def sources(self) -> list[Any]:
        """Sources for this run, in processing order."""
        ...

    @abstractmethod
    def read_source(self, source: Any) -> AsyncIterator[Any]:
        """Records of one source."""
        ...

    async def records(self) -> AsyncIterator[Any]:
        sources = self.sources()
        self._logger.info("input_sources_matched", count=len(sources))
        for index, source in enumerate(sources):
            self._logger.debug("input_source_opened", source=str(source), index=index)
            count = 0
            async for record in self.read_source(source):
                count += 1
                yield record
            self._logger.debug("input_source_completed", source=str(source), index=index, records=count)


class BaseTransformProcessor(BaseProcessor):
    """Base class for transforms.

    Record-wise transforms override process(); returning DROP removes the
    record. Transforms that need the whole sequence (e.g. reduce) override
    transform() instead.
    """

    kind = ProcessorKind.TRANSFORM

    def apply(self, key: str, stream: RecordStream, settings: Mapping[str, Any]) -> RecordStream:
        return stream.pipe(self.transform)

    async def transform(self, records: AsyncIterator[Any]) -> AsyncIterator[Any]:
        async for record in records:
            result = self.process(record)
            if result is not DROP:
                yield result

    def process(self, record: Any) -> Any:
        raise NotImplementedError(f"{self.__class__.__name__} must implement process() or override transform()")


class BaseOutputProcessor(BaseProcessor):
    """Base class for outputs.

    Subclasses implement consume(); write() signals completion with its
    return value, or rejects the branch with the exception it raised.
    """

    kind = ProcessorKind.OUTPUT

    async def write(self, key: str, stream: StreamFork, settings: Mapping[str, Any]) -> None:
        completion: CompletionSignal = settings[COMPLETION_KEY]
        try:
            result = await self.consume(key, stream)
        except Exception as exc:
            self._logger.error("output_failed", branch=key, error=str(exc), error_type=type(exc).__name__)
            completion.reject(exc)
        else:
            completion.resolve(result)

    @abstractmethod
    async def consume(self, key: str, stream: StreamFork) -> Any:
        """Consume the fork to the end and return the branch result."""
        ...
