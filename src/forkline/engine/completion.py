"""Completion signalling between output processors and the executor.

Every terminal branch gets one BranchHandle (a pending asyncio.Future plus
the branch key). The matching CompletionSignal is injected into the output
processor's settings under COMPLETION_KEY; the processor must call resolve()
or reject() exactly once after it finished consuming its fork.
"""

import asyncio
from dataclasses import dataclass
from typing import Any

from forkline.contracts.errors import CompletionSignalError

COMPLETION_KEY = "completion"


@dataclass(frozen=True)
class BranchHandle:
    """Pending completion of one terminal branch.

    Awaiting the handle returns the output processor's result or raises the
    error it was rejected with.
    """

    key: str
    future: asyncio.Future[Any]

    def done(self) -> bool:
        return self.future.done()

    def __await__(self) -> Any:
        return self.future.__await__()


class CompletionSignal:
    """Callback pair handed to an output processor.

    resolve/reject may be called exactly once between them; a second call is
    a processor bug and raises CompletionSignalError. If the handle was
    cancelled by the caller, signals are ignored.
    """

    def __init__(self, key: str, future: asyncio.Future[Any]) -> None:
        self._key = key
        self._future = future

    @property
    def key(self) -> str:
        return self._key

    @property
    def signalled(self) -> bool:
        return self._future.done()

    def resolve(self, result: Any = None) -> None:
        if self._check_open():
            self._future.set_result(result)

    def reject(self, error: BaseException) -> None:
        if self._check_open():
            self._future.set_exception(error)

    def _check_open(self) -> bool:
        if self._future.cancelled():
            return False
        if self._future.done():
            raise CompletionSignalError(f"Branch '{self._key}' signalled completion more than once")
        return True
