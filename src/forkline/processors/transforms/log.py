# src/forkline/processors/transforms/log.py
"""Log transform: log every record through structlog and pass it on."""

from typing import Any

from forkline.contracts.args import ArgDescriptor
from forkline.processors.base import BaseTransformProcessor

LOG_LEVELS = frozenset({"debug", "info", "warning", "error"})


class LogTransform(BaseTransformProcessor):
    name = "log"
    shorthand_arg = "message"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "level": ArgDescriptor(name="level", default_value="info", valid_values=LOG_LEVELS, description="Log level"),
            "message": ArgDescriptor(name="message", default_value="record", description="Event name"),
        }

    def process(self, record: Any) -> Any:
        emit = getattr(self._logger, self.params["level"])
        emit(self.params["message"], record=record)
        return record
