"""Processor contract, base classes and the built-in processors.

Processors are looked up through the registry, not imported directly:
    registry = get_registry()
    stdout = registry.lookup(ProcessorKind.OUTPUT, "stdout")
"""

from forkline.processors.base import (
    BaseInputProcessor,
    BaseOutputProcessor,
    BaseProcessor,
    BaseTransformProcessor,
    SequentialSourceInput,
)
from forkline.processors.hookspecs import hookimpl
from forkline.processors.protocols import ProcessorBuild, ProcessorModule
from forkline.processors.registry import ProcessorRegistry, get_registry
from forkline.processors.sentinels import DROP, MISSING

__all__ = [
    "DROP",
    "MISSING",
    "BaseInputProcessor",
    "BaseOutputProcessor",
    "BaseProcessor",
    "BaseTransformProcessor",
    "ProcessorBuild",
    "ProcessorModule",
    "ProcessorRegistry",
    "SequentialSourceInput",
    "get_registry",
    "hookimpl",
]
