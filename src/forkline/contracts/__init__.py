"""Shared contracts: argument descriptors, kinds, events and errors.

Everything here is free of engine and processor dependencies so that every
other subsystem can import it.
"""

from forkline.contracts.args import ArgDescriptor, validate_params
from forkline.contracts.enums import BranchStatus, ProcessorKind
from forkline.contracts.errors import (
    CompletionSignalError,
    ForklineError,
    InvalidArgumentValueError,
    MalformedForkError,
    MalformedStageError,
    MissingArgumentError,
    PipelineConfigError,
    PipelineStructureError,
    StreamStateError,
    UnknownArgumentError,
    UnknownProcessorError,
)
from forkline.contracts.events import BranchCompleted, PipelineEvent, RunCompleted, RunStarted

__all__ = [  # Grouped by category for readability
    # Arguments
    "ArgDescriptor",
    "validate_params",
    # Enums
    "BranchStatus",
    "ProcessorKind",
    # Events
    "BranchCompleted",
    "PipelineEvent",
    "RunCompleted",
    "RunStarted",
    # Errors
    "CompletionSignalError",
    "ForklineError",
    "InvalidArgumentValueError",
    "MalformedForkError",
    "MalformedStageError",
    "MissingArgumentError",
    "PipelineConfigError",
    "PipelineStructureError",
    "StreamStateError",
    "UnknownArgumentError",
    "UnknownProcessorError",
]
