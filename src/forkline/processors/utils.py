"""Helpers shared by the record transforms."""

from collections.abc import Mapping
from typing import Any

from forkline.processors.sentinels import MISSING


def get_nested_field(data: Any, path: str, default: Any = MISSING) -> Any:
    """Get a value from nested mappings using dot notation.

    Examples:
        >>> get_nested_field({"user": {"name": "Alice"}}, "user.name")
        'Alice'
        >>> get_nested_field({"user": {}}, "user.email") is MISSING
        True
    """
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def require_mapping(record: Any, processor: str) -> Mapping[str, Any]:
    """Return record when it is a mapping, else raise TypeError naming the processor."""
    if not isinstance(record, Mapping):
        raise TypeError(f"{processor} transform expects mapping records, got {type(record).__name__}")
    return record
