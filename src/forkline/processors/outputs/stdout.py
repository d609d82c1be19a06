# src/forkline/processors/outputs/stdout.py
"""Stdout output: one line per record."""

import json
import sys
from typing import Any

from forkline.contracts.args import ArgDescriptor
from forkline.engine.streams import StreamFork
from forkline.processors.base import BaseOutputProcessor


def format_record(record: Any, fmt: str) -> str:
    """Render one record as a single line ("json" or "text")."""
    if fmt == "text" and isinstance(record, str):
        return record
    if fmt == "text":
        return str(record)
    return json.dumps(record, ensure_ascii=False, default=str)


class StdoutOutput(BaseOutputProcessor):
    """Write records to standard output. Resolves with the record count."""

    name = "stdout"
    shorthand_arg = "format"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "format": ArgDescriptor(
                name="format",
                default_value="json",
                valid_values=frozenset({"json", "text"}),
                description="json: one JSON document per line; text: str(record)",
            ),
        }

    async def consume(self, key: str, stream: StreamFork) -> int:
        # Looked up per run so redirected/captured stdout is honoured
        out = sys.stdout
        count = 0
        async for record in stream:
            out.write(format_record(record, self.params["format"]) + "\n")
            count += 1
        out.flush()
        return count
