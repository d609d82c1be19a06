"""Engine: record streams, the fan-out executor and the run driver.

- streams   → RecordStream / StreamFork, lazily pulled with bounded fork buffers
- executor  → PipelineExecutor, attaches a tree to a stream and starts outputs
- completion→ BranchHandle / CompletionSignal, per-branch completion
- runner    → PipelineRunner, a full run from input to settled branches
"""

from forkline.engine.completion import COMPLETION_KEY, BranchHandle, CompletionSignal
from forkline.engine.executor import PipelineExecutor
from forkline.engine.runner import BranchOutcome, PipelineRunner, RunResult, run_sync
from forkline.engine.streams import DEFAULT_BUFFER_SIZE, RecordStream, StreamFork

__all__ = [
    "COMPLETION_KEY",
    "DEFAULT_BUFFER_SIZE",
    "BranchHandle",
    "BranchOutcome",
    "CompletionSignal",
    "PipelineExecutor",
    "PipelineRunner",
    "RecordStream",
    "RunResult",
    "StreamFork",
    "run_sync",
]
