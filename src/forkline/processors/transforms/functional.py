# src/forkline/processors/transforms/functional.py
"""Function-driven transforms: filter, map, reduce.

Each accepts a Python callable (pipelines built in code) and, where it makes
sense, a declarative alternative usable from YAML definitions.
"""

from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any

from forkline.contracts.args import ArgDescriptor
from forkline.contracts.errors import PipelineConfigError
from forkline.processors.base import BaseTransformProcessor
from forkline.processors.sentinels import DROP, MISSING
from forkline.processors.utils import get_nested_field, require_mapping


def _callable_or_none(processor: str, arg: str, value: Any) -> Callable[..., Any] | None:
    if value is not None and not callable(value):
        raise PipelineConfigError(f"{processor}: '{arg}' must be callable, got {type(value).__name__}")
    return value


def _exactly_one(processor: str, **options: Any) -> None:
    given = [name for name, value in options.items() if value is not None]
    if len(given) != 1:
        names = " or ".join(f"'{name}'" for name in options)
        raise PipelineConfigError(f"{processor}: exactly one of {names} is required")


class FilterTransform(BaseTransformProcessor):
    """Keep records matching a predicate.

    Config options:
        predicate: Callable taking the record, truthy to keep it
        where: Mapping of (dotted) field -> expected value; a record is kept
            when every field equals its expected value

    Shorthand: a bare callable is the predicate.
    """

    name = "filter"
    shorthand_arg = "predicate"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "predicate": ArgDescriptor(name="predicate", description="Callable(record) -> bool"),
            "where": ArgDescriptor(name="where", description="Field -> expected value"),
        }

    def __init__(self, root: Any, params: Any, args: Any = None) -> None:
        super().__init__(root, params, args)
        _exactly_one(self.name, predicate=self.params["predicate"], where=self.params["where"])
        self._predicate = _callable_or_none(self.name, "predicate", self.params["predicate"])
        where = self.params["where"]
        if where is not None and not isinstance(where, Mapping):
            raise PipelineConfigError(f"{self.name}: 'where' must be a mapping of field to value")
        self._where: Mapping[str, Any] = where or {}

    def process(self, record: Any) -> Any:
        if self._predicate is not None:
            return record if self._predicate(record) else DROP
        for field, expected in self._where.items():
            if get_nested_field(require_mapping(record, self.name), field) != expected:
                return DROP
        return record


class MapTransform(BaseTransformProcessor):
    """Transform each record.

    Config options:
        fn: Callable taking the record, returning the new record
        rename: Mapping of old field name -> new field name (other fields kept)

    Shorthand: a bare callable is fn.
    """

    name = "map"
    shorthand_arg = "fn"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "fn": ArgDescriptor(name="fn", description="Callable(record) -> record"),
            "rename": ArgDescriptor(name="rename", description="Old field -> new field"),
        }

    def __init__(self, root: Any, params: Any, args: Any = None) -> None:
        super().__init__(root, params, args)
        _exactly_one(self.name, fn=self.params["fn"], rename=self.params["rename"])
        self._fn = _callable_or_none(self.name, "fn", self.params["fn"])
        self._rename: Mapping[str, str] = self.params["rename"] or {}

    def process(self, record: Any) -> Any:
        if self._fn is not None:
            return self._fn(record)
        record = require_mapping(record, self.name)
        renamed: dict[str, Any] = {}
        for key, value in record.items():
            renamed[self._rename.get(key, key)] = value
        return renamed


class ReduceTransform(BaseTransformProcessor):
    """Fold the whole stream into one record, emitted when the stream ends.

    Config options:
        fn: Callable(accumulator, record) -> accumulator (required)
        initial: Starting accumulator (default: None)
        field: When set, fold this field's values instead of whole records;
            records without the field are skipped
    """

    name = "reduce"
    shorthand_arg = "fn"

    @classmethod
    def default_args(cls) -> dict[str, ArgDescriptor]:
        return {
            "fn": ArgDescriptor(name="fn", required=True, description="Callable(acc, record) -> acc"),
            "initial": ArgDescriptor(name="initial", description="Starting accumulator"),
            "field": ArgDescriptor(name="field", description="Fold this field instead of the record"),
        }

    def __init__(self, root: Any, params: Any, args: Any = None) -> None:
        super().__init__(root, params, args)
        self._fn = _callable_or_none(self.name, "fn", self.params["fn"])

    async def transform(self, records: AsyncIterator[Any]) -> AsyncIterator[Any]:
        accumulator = self.params["initial"]
        field = self.params["field"]
        async for record in records:
            if field is not None:
                record = get_nested_field(require_mapping(record, self.name), field)
                if record is MISSING:
                    continue
            accumulator = self._fn(accumulator, record)
        yield accumulator
