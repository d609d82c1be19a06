# src/forkline/processors/builtin.py
"""Hook implementations registering the built-in processors."""

from forkline.processors.hookspecs import hookimpl
from forkline.processors.inputs.directory import DirectoryInput
from forkline.processors.inputs.file import FileInput
from forkline.processors.inputs.file_pattern import FilePatternInput
from forkline.processors.outputs.file import FileOutput
from forkline.processors.outputs.http import HttpOutput
from forkline.processors.outputs.stdout import StdoutOutput
from forkline.processors.transforms.csv_to_json import CsvToJsonTransform
from forkline.processors.transforms.fields import KeysTransform, OmitTransform, PickTransform, ValuesTransform
from forkline.processors.transforms.functional import FilterTransform, MapTransform, ReduceTransform
from forkline.processors.transforms.json_parse import JsonTransform
from forkline.processors.transforms.log import LogTransform


class BuiltinProcessors:
    @hookimpl
    def forkline_get_inputs(self) -> list[type]:
        return [FileInput, FilePatternInput, DirectoryInput]

    @hookimpl
    def forkline_get_transforms(self) -> list[type]:
        return [
            JsonTransform,
            CsvToJsonTransform,
            PickTransform,
            OmitTransform,
            KeysTransform,
            ValuesTransform,
            FilterTransform,
            MapTransform,
            ReduceTransform,
            LogTransform,
        ]

    @hookimpl
    def forkline_get_outputs(self) -> list[type]:
        return [StdoutOutput, FileOutput, HttpOutput]
