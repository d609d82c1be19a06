"""Processor doubles shared by the engine, pipeline and CLI tests.

- ListInput ("list"): yields settings['items'], optionally failing part way
- UppercaseTransform ("upper"): str.upper() on every record
- RecordingOutput ("record"): appends every record to a RecordSink
- SilentOutput ("silent"): consumes its fork but never signals completion

A RecordSink is neither a list nor a mapping, so it passes through settings
resolution by identity.
"""

from collections.abc import AsyncIterator
from typing import Any

from forkline.contracts.args import ArgDescriptor
from forkline.engine.streams import StreamFork
from forkline.processors.base import BaseInputProcessor, BaseOutputProcessor, BaseTransformProcessor
from forkline.processors.hookspecs import hookimpl


class RecordSink:
    """Collects what a RecordingOutput consumed."""

    def __init__(self) -> None:
        self.records: list[Any] = []


class ListInput(BaseInputProcessor):
    """Yields settings['items'] in order."""

    name = "list"
    shorthand_arg = "items"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "items": ArgDescriptor(name="items", required=True),
            "fail_after": ArgDescriptor(name="fail_after"),
        }

    async def records(self) -> AsyncIterator[Any]:
        fail_after = self.params["fail_after"]
        for index, item in enumerate(self.params["items"]):
            if fail_after is not None and index == fail_after:
                raise RuntimeError(f"source failed after {fail_after} records")
            yield item


class UppercaseTransform(BaseTransformProcessor):
    name = "upper"

    def process(self, record: Any) -> Any:
        return record.upper()


class RecordingOutput(BaseOutputProcessor):
    """Records every record it consumes; resolves with the record count."""

    name = "record"
    shorthand_arg = "sink"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "sink": ArgDescriptor(name="sink", required=True),
            "fail_on": ArgDescriptor(name="fail_on"),
        }

    async def consume(self, key: str, stream: StreamFork) -> int:
        sink: RecordSink = self.params["sink"]
        async for record in stream:
            if self.params["fail_on"] is not None and record == self.params["fail_on"]:
                raise RuntimeError(f"output {key} failed on {record!r}")
            sink.records.append(record)
        return len(sink.records)


class SilentOutput(BaseOutputProcessor):
    """Breaks the completion contract: returns without signalling."""

    name = "silent"

    async def write(self, key: str, stream: StreamFork, settings: Any) -> None:
        async for _ in stream:
            pass

    async def consume(self, key: str, stream: StreamFork) -> Any:
        raise AssertionError("never called")


class TestingProcessors:
    @hookimpl
    def forkline_get_inputs(self) -> list[type]:
        return [ListInput]

    @hookimpl
    def forkline_get_transforms(self) -> list[type]:
        return [UppercaseTransform]

    @hookimpl
    def forkline_get_outputs(self) -> list[type]:
        return [RecordingOutput, SilentOutput]

