# src/forkline/processors/inputs/directory.py
"""Directory input: every file of a directory, one after another."""

from pathlib import Path
from typing import Any

from forkline.contracts.args import ArgDescriptor
from forkline.contracts.errors import PipelineConfigError
from forkline.processors.inputs.file import FileReadingInput, file_args


class DirectoryInput(FileReadingInput):
    """Lines of every file in settings['path'], in sorted path order.

    recursive descends into sub-directories; suffix (e.g. ".jsonl") keeps
    only files with that suffix.
    """

    name = "directory"
    shorthand_arg = "path"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        args = file_args(ArgDescriptor(name="path", required=True, description="Directory to read"))
        args["recursive"] = ArgDescriptor(
            name="recursive",
            boolean=True,
            default_value=False,
            description="Include files of sub-directories",
        )
        args["suffix"] = ArgDescriptor(name="suffix", description="Only read files with this suffix")
        return args

    def sources(self) -> list[Any]:
        directory = Path(self.params["path"])
        if not directory.is_dir():
            raise PipelineConfigError(f"Input directory not found: {directory}")

        candidates = directory.rglob("*") if self.params["recursive"] else directory.iterdir()
        suffix = self.params["suffix"]
        return sorted(path for path in candidates if path.is_file() and (suffix is None or path.name.endswith(suffix)))
