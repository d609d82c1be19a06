"""Observability events for pipeline runs.

Events are an optional side-channel: the runner hands them to an on_event
callback when one is supplied. Nothing in the engine depends on them.
"""

from dataclasses import dataclass
from typing import Any

from forkline.contracts.enums import BranchStatus


@dataclass(frozen=True, slots=True)
class RunStarted:
    """Emitted after every branch has been attached, before records flow.

    Attributes:
        run_id: Identifier of this run
        branch_keys: Keys of the terminal branches, in attach order
    """

    run_id: str
    branch_keys: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class BranchCompleted:
    """Emitted once per terminal branch when its completion handle settles."""

    run_id: str
    key: str
    status: BranchStatus
    error: BaseException | None = None
    result: Any = None


@dataclass(frozen=True, slots=True)
class RunCompleted:
    """Emitted after every completion handle has settled."""

    run_id: str
    succeeded: bool
    duration_seconds: float
    failed_keys: tuple[str, ...] = ()


PipelineEvent = RunStarted | BranchCompleted | RunCompleted
