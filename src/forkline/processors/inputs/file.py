# src/forkline/processors/inputs/file.py
"""File input: the lines of one file.

Plain text, gzip-compressed, or every member of a zip archive (members in
name order). Records are lines without their trailing newline.
"""

import gzip
import zipfile
from collections.abc import AsyncIterator, Iterator
from io import TextIOWrapper
from pathlib import Path
from typing import Any

from forkline.contracts.args import ArgDescriptor
from forkline.processors.base import SequentialSourceInput

FILE_MODES = frozenset({"gzip", "zip"})


def file_args(path_arg: ArgDescriptor) -> dict[str, ArgDescriptor]:
    """Arguments shared by every file-reading input, around its path argument."""
    return {
        path_arg.name: path_arg,
        "mode": ArgDescriptor(
            name="mode",
            valid_values=FILE_MODES,
            description="Defines file(s) mode: gzip or zip",
        ),
        "encoding": ArgDescriptor(name="encoding", default_value="utf-8", description="Text encoding"),
        "skip_empty": ArgDescriptor(
            name="skip_empty",
            boolean=True,
            default_value=True,
            description="Skip blank lines",
        ),
    }


def iter_lines(path: Path, mode: str | None, encoding: str) -> Iterator[str]:
    """Lines of one file, decoded, without line terminators."""
    if mode == "zip":
        with zipfile.ZipFile(path) as archive:
            for member in sorted(archive.namelist()):
                if member.endswith("/"):
                    continue
                with archive.open(member) as raw, TextIOWrapper(raw, encoding=encoding) as handle:
                    for line in handle:
                        yield line.rstrip("\r\n")
        return

    opener: Any = gzip.open if mode == "gzip" else open
    with opener(path, "rt", encoding=encoding) as handle:
        for line in handle:
            yield line.rstrip("\r\n")


class FileReadingInput(SequentialSourceInput):
    """Reads every source path as lines, honouring mode, encoding and skip_empty."""

    async def read_source(self, source: Any) -> AsyncIterator[Any]:
        skip_empty = self.params["skip_empty"]
        for line in iter_lines(Path(source), self.params["mode"], self.params["encoding"]):
            if skip_empty and not line.strip():
                continue
            yield line


class FileInput(FileReadingInput):
    """Lines of the file at settings['path'].

    Shorthand: a bare string is the path.
    """

    name = "file"
    shorthand_arg = "path"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return file_args(ArgDescriptor(name="path", required=True, description="File to read"))

    def sources(self) -> list[Any]:
        return [Path(self.params["path"])]
