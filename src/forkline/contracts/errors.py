"""Exception hierarchy shared across subsystem boundaries.

Configuration errors are raised synchronously, before any record flows
through the stage that caused them. Processor errors are not wrapped: they
surface unchanged as the rejection of the failing branch's completion handle.
"""

from typing import Any


class ForklineError(Exception):
    """Base class for all errors raised by forkline itself."""


# =============================================================================
# Configuration errors
# =============================================================================


class PipelineConfigError(ForklineError):
    """Raised when a pipeline definition or its arguments are invalid."""


class MissingArgumentError(PipelineConfigError):
    """A required argument has no run-time value and no default.

    Attributes:
        name: Argument (or environment variable) name
        context: "arg" for run-time arguments, "env" for environment variables
    """

    def __init__(self, name: str, context: str) -> None:
        self.name = name
        self.context = context
        super().__init__(f"Required {context} {name} not provided")


class InvalidArgumentValueError(PipelineConfigError):
    """A resolved argument value is outside its allow-set or cannot be coerced."""

    def __init__(self, name: str, value: Any, context: str, reason: str) -> None:
        self.name = name
        self.value = value
        self.context = context
        super().__init__(f"Invalid {context} {name}={value!r}: {reason}")


class UnknownArgumentError(PipelineConfigError):
    """Settings contain keys the processor does not declare."""

    def __init__(self, processor: str, names: list[str]) -> None:
        self.processor = processor
        self.names = names
        super().__init__(f"Unknown argument(s) for processor '{processor}': {', '.join(names)}")


class UnknownProcessorError(PipelineConfigError):
    """No processor with this name is registered for the requested kind."""

    def __init__(self, kind: str, name: str, available: list[str] | None = None) -> None:
        self.kind = kind
        self.name = name
        message = f"Unknown {kind} processor '{name}'"
        if available:
            message += f". Available: {', '.join(sorted(available))}"
        super().__init__(message)


class PipelineStructureError(PipelineConfigError):
    """The stage list violates the tree's ordering invariants."""


class MalformedForkError(PipelineConfigError):
    """A fork sequence member is neither an output nor a nested fork group."""


class MalformedStageError(PipelineConfigError):
    """A stage is not an input, transform or fork sequence."""


# =============================================================================
# Runtime contract violations
# =============================================================================


class StreamStateError(ForklineError):
    """A record stream was forked or consumed in an order it cannot support.

    Forks must all be attached before the stream starts producing; a stream
    can be consumed linearly at most once.
    """


class CompletionSignalError(ForklineError):
    """An output processor signalled completion more than once."""
