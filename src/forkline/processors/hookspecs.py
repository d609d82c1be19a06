# src/forkline/processors/hookspecs.py
"""pluggy hook specifications for forkline processors.

A plugin object implements one or more of these hooks and is handed to
ProcessorRegistry at construction. There is no runtime registration.

Usage (implementing a plugin):
    from forkline.processors.hookspecs import hookimpl

    class MyProcessors:
        @hookimpl
        def forkline_get_transforms(self):
            return [UppercaseTransform]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from forkline.processors.protocols import ProcessorModule

PROJECT_NAME = "forkline"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class ForklineInputSpec:
    """Hook specifications for input processors."""

    @hookspec
    def forkline_get_inputs(self) -> list[type["ProcessorModule"]]:  # type: ignore[empty-body]
        """Return input processor classes (not instances)."""


class ForklineTransformSpec:
    """Hook specifications for transform processors."""

    @hookspec
    def forkline_get_transforms(self) -> list[type["ProcessorModule"]]:  # type: ignore[empty-body]
        """Return transform processor classes."""


class ForklineOutputSpec:
    """Hook specifications for output processors."""

    @hookspec
    def forkline_get_outputs(self) -> list[type["ProcessorModule"]]:  # type: ignore[empty-body]
        """Return output processor classes."""
