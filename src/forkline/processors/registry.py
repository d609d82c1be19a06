# src/forkline/processors/registry.py
"""Processor registry: kind name -> processor module, per namespace.

The registry is closed. Plugins are passed to the constructor and their hooks
are collected exactly once; afterwards the three namespaces are read-only.

Usage:
    registry = get_registry()
    json_transform = registry.lookup(ProcessorKind.TRANSFORM, "json")
    names = sorted(registry.output_pipelines())
"""

import functools
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import pluggy

from forkline.contracts.enums import ProcessorKind
from forkline.processors.hookspecs import (
    PROJECT_NAME,
    ForklineInputSpec,
    ForklineOutputSpec,
    ForklineTransformSpec,
)
from forkline.processors.protocols import ProcessorModule


class ProcessorRegistry:
    """Read-only lookup of processor modules built from pluggy plugins.

    Raises:
        ValueError: Two processors share a name within one namespace, or a
            processor's declared kind does not match the hook returning it
    """

    def __init__(self, *plugins: Any) -> None:
        pm = pluggy.PluginManager(PROJECT_NAME)
        pm.add_hookspecs(ForklineInputSpec)
        pm.add_hookspecs(ForklineTransformSpec)
        pm.add_hookspecs(ForklineOutputSpec)
        for plugin in plugins:
            pm.register(plugin)

        self._namespaces: dict[ProcessorKind, Mapping[str, type[ProcessorModule]]] = {
            ProcessorKind.INPUT: _collect(pm.hook.forkline_get_inputs(), ProcessorKind.INPUT),
            ProcessorKind.TRANSFORM: _collect(pm.hook.forkline_get_transforms(), ProcessorKind.TRANSFORM),
            ProcessorKind.OUTPUT: _collect(pm.hook.forkline_get_outputs(), ProcessorKind.OUTPUT),
        }

    def namespace(self, kind: ProcessorKind) -> Mapping[str, type[ProcessorModule]]:
        return self._namespaces[kind]

    def input_pipelines(self) -> Mapping[str, type[ProcessorModule]]:
        return self._namespaces[ProcessorKind.INPUT]

    def transform_pipelines(self) -> Mapping[str, type[ProcessorModule]]:
        return self._namespaces[ProcessorKind.TRANSFORM]

    def output_pipelines(self) -> Mapping[str, type[ProcessorModule]]:
        return self._namespaces[ProcessorKind.OUTPUT]

    def lookup(self, kind: ProcessorKind, name: str) -> type[ProcessorModule] | None:
        """Get a processor module by name, or None when it is not registered."""
        return self._namespaces[kind].get(name)


def _collect(results: list[list[type[ProcessorModule]]], kind: ProcessorKind) -> Mapping[str, type[ProcessorModule]]:
    collected: dict[str, type[ProcessorModule]] = {}
    for processors in results:
        for cls in processors:
            name = cls.name
            if cls.kind != kind:
                raise ValueError(f"Processor '{name}' is a {cls.kind} processor but was registered as {kind}")
            if name in collected:
                raise ValueError(f"Duplicate {kind} processor name: '{name}'. Already registered by {collected[name].__name__}")
            collected[name] = cls
    return MappingProxyType(collected)


@functools.cache
def get_registry() -> ProcessorRegistry:
    """The process-wide registry holding the built-in processors."""
    from forkline.processors.builtin import BuiltinProcessors

    return ProcessorRegistry(BuiltinProcessors())


def get_processor_description(processor_cls: type) -> str:
    """First non-empty docstring line, or "<name> processor" when undocumented."""
    if processor_cls.__doc__:
        for line in processor_cls.__doc__.strip().split("\n"):
            cleaned = line.strip()
            if cleaned:
                return cleaned

    name = getattr(processor_cls, "name", processor_cls.__name__)
    return f"{name} processor"
