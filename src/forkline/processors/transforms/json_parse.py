# src/forkline/processors/transforms/json_parse.py
"""JSON transform: parse text records (one JSON document per record)."""

import json
from typing import Any

from forkline.contracts.args import ArgDescriptor
from forkline.processors.base import BaseTransformProcessor
from forkline.processors.sentinels import DROP


class JsonTransform(BaseTransformProcessor):
    """Parse str/bytes records as JSON; other records pass through unchanged.

    Config options:
        skip_invalid: Drop records that are not valid JSON instead of
            failing every branch downstream (default: False)
    """

    name = "json"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "skip_invalid": ArgDescriptor(
                name="skip_invalid",
                boolean=True,
                default_value=False,
                description="Drop records that are not valid JSON",
            ),
        }

    def process(self, record: Any) -> Any:
        if not isinstance(record, str | bytes | bytearray):
            return record
        try:
            return json.loads(record)
        except json.JSONDecodeError as exc:
            if not self.params["skip_invalid"]:
                raise
            self._logger.warning("invalid_json_skipped", error=str(exc), record=repr(record)[:200])
            return DROP
