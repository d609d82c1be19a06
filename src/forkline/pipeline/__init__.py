"""Pipeline definition tree and placeholders.

The builder lives in forkline.pipeline.builder (it depends on the processor
registry, which the tree itself must not).
"""

from forkline.core.expressions import PipelineArg, PipelineEnvArg
from forkline.pipeline.tree import (
    ChildPipeline,
    ForkSequence,
    InputPipeline,
    OutputPipeline,
    ProcessorStage,
    RootPipeline,
    TransformPipeline,
)

__all__ = [
    "ChildPipeline",
    "ForkSequence",
    "InputPipeline",
    "OutputPipeline",
    "PipelineArg",
    "PipelineEnvArg",
    "ProcessorStage",
    "RootPipeline",
    "TransformPipeline",
]
