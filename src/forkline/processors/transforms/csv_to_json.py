# src/forkline/processors/transforms/csv_to_json.py
"""CSV to JSON transform: CSV lines to mappings keyed by header."""

import csv
from collections.abc import AsyncIterator
from typing import Any

from forkline.contracts.args import ArgDescriptor
from forkline.processors.base import BaseTransformProcessor


class CsvToJsonTransform(BaseTransformProcessor):
    """Turn CSV text lines into dicts.

    Without explicit headers the first record is the header row. A line
    with a different number of values than there are headers is an error.
    """

    name = "csv_to_json"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "delimiter": ArgDescriptor(name="delimiter", default_value=",", description="Field delimiter"),
            "headers": ArgDescriptor(name="headers", description="Column names; the first line when omitted"),
        }

    async def transform(self, records: AsyncIterator[Any]) -> AsyncIterator[Any]:
        delimiter = self.params["delimiter"]
        headers = list(self.params["headers"]) if self.params["headers"] is not None else None
        line_number = 0

        async for line in records:
            line_number += 1
            values = next(csv.reader([line], delimiter=delimiter), [])
            if headers is None:
                headers = values
                continue
            if len(values) != len(headers):
                raise ValueError(f"CSV line {line_number} has {len(values)} values, expected {len(headers)}")
            yield dict(zip(headers, values, strict=True))
