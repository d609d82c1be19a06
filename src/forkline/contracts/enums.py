"""Kinds and statuses used across subsystem boundaries."""

from enum import StrEnum


class ProcessorKind(StrEnum):
    """The closed set of processor namespaces.

    Every processor belongs to exactly one kind; the registry keeps one
    namespace per kind, so the same name may exist as both an input and an
    output (e.g. "file").
    """

    INPUT = "input"
    TRANSFORM = "transform"
    OUTPUT = "output"


class BranchStatus(StrEnum):
    """Final status of one terminal branch in a run."""

    COMPLETED = "completed"
    FAILED = "failed"
