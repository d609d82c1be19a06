# src/forkline/processors/inputs/file_pattern.py
"""File pattern input: every file matching a glob, one after another."""

import glob
from pathlib import Path
from typing import Any

from forkline.contracts.args import ArgDescriptor
from forkline.processors.inputs.file import FileReadingInput, file_args


class FilePatternInput(FileReadingInput):
    """Lines of every file matching settings['pattern'].

    Matches are processed in sorted order. Each file is read to the end and
    closed before the next one is opened. A pattern matching nothing yields
    no records.
    """

    name = "file_pattern"
    shorthand_arg = "pattern"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return file_args(
            ArgDescriptor(name="pattern", required=True, description="File(s) pattern, '**' matches recursively")
        )

    def sources(self) -> list[Any]:
        matches = glob.glob(self.params["pattern"], recursive=True)
        return [Path(match) for match in sorted(matches) if Path(match).is_file()]
