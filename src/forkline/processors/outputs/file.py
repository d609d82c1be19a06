# src/forkline/processors/outputs/file.py
"""File output: write records as JSON lines or a JSON array.

Resolves with a summary including a SHA-256 of the (uncompressed) content,
so the written artifact can be verified later.
"""

import gzip
import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from forkline.contracts.args import ArgDescriptor
from forkline.engine.streams import StreamFork
from forkline.processors.base import BaseOutputProcessor


@dataclass(frozen=True)
class FileWriteSummary:
    path: str
    records: int
    content_hash: str


class FileOutput(BaseOutputProcessor):
    """Write records to settings['path'].

    Config options:
        path: Output file (required; parent directories are created)
        format: "jsonl" or "json" (array). Defaults to json for a .json
            path, jsonl otherwise
        mode: "gzip" to compress the output
        encoding: Text encoding (default: utf-8)

    Shorthand: a bare string is the path.
    """

    name = "file"
    shorthand_arg = "path"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "path": ArgDescriptor(name="path", required=True, description="Output file"),
            "format": ArgDescriptor(name="format", valid_values=frozenset({"jsonl", "json"}), description="jsonl or json"),
            "mode": ArgDescriptor(name="mode", valid_values=frozenset({"gzip"}), description="gzip to compress"),
            "encoding": ArgDescriptor(name="encoding", default_value="utf-8", description="Text encoding"),
        }

    async def consume(self, key: str, stream: StreamFork) -> FileWriteSummary:
        path = Path(self.params["path"])
        fmt = self.params["format"] or ("json" if path.suffix == ".json" else "jsonl")
        path.parent.mkdir(parents=True, exist_ok=True)

        digest = hashlib.sha256()
        count = 0
        with self._open(path) as handle:

            def emit(text: str) -> None:
                handle.write(text)
                digest.update(text.encode(self.params["encoding"]))

            if fmt == "json":
                emit("[")
            async for record in stream:
                line = json.dumps(record, ensure_ascii=False, default=str)
                if fmt == "json":
                    emit(("\n" if count == 0 else ",\n") + line)
                else:
                    emit(line + "\n")
                count += 1
            if fmt == "json":
                emit("\n]\n" if count else "]\n")

        self._logger.info("file_written", branch=key, path=str(path), records=count)
        return FileWriteSummary(path=str(path), records=count, content_hash=digest.hexdigest())

    def _open(self, path: Path) -> IO[str]:
        if self.params["mode"] == "gzip":
            return gzip.open(path, "wt", encoding=self.params["encoding"])
        return open(path, "w", encoding=self.params["encoding"])
