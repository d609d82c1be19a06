# src/forkline/processors/transforms/fields.py
"""Field selection transforms: pick, omit, keys, values."""

from typing import Any

from forkline.contracts.args import ArgDescriptor
from forkline.processors.base import BaseTransformProcessor
from forkline.processors.sentinels import MISSING
from forkline.processors.utils import get_nested_field, require_mapping


def _fields_arg(description: str) -> ArgDescriptor:
    return ArgDescriptor(name="fields", required=True, description=description)


class _FieldListTransform(BaseTransformProcessor):
    """Shorthand: a bare field name or a list of field names."""

    shorthand_arg = "fields"

    def __init__(self, root: Any, params: Any, args: Any = None) -> None:
        super().__init__(root, params, args)
        fields = self.params["fields"]
        self._fields: list[str] = [fields] if isinstance(fields, str) else list(fields)


class PickTransform(_FieldListTransform):
    """Keep only the listed fields. Dotted names pick nested values.

    Fields absent from a record are left out rather than set to None.
    """

    name = "pick"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {"fields": _fields_arg("Fields to keep (dotted paths allowed)")}

    def process(self, record: Any) -> Any:
        record = require_mapping(record, self.name)
        picked: dict[str, Any] = {}
        for field in self._fields:
            value = get_nested_field(record, field)
            if value is not MISSING:
                picked[field] = value
        return picked


class OmitTransform(_FieldListTransform):
    """Drop the listed top-level fields."""

    name = "omit"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {"fields": _fields_arg("Fields to remove")}

    def process(self, record: Any) -> Any:
        record = require_mapping(record, self.name)
        omitted = set(self._fields)
        return {key: value for key, value in record.items() if key not in omitted}


class KeysTransform(BaseTransformProcessor):
    name = "keys"

    def process(self, record: Any) -> Any:
        return list(require_mapping(record, self.name).keys())


class ValuesTransform(BaseTransformProcessor):
    name = "values"

    def process(self, record: Any) -> Any:
        return list(require_mapping(record, self.name).values())
