"""Argument descriptors.

An ArgDescriptor declares one configurable argument: whether it is required,
its default, an optional allow-set and whether string values are coerced to
booleans. Descriptors are used in two places:

- processors declare their full configurable surface via default_args(),
  and resolved settings are validated against it before construction;
- PipelineArg / PipelineEnvArg placeholders carry a descriptor that decides
  how the placeholder resolves against the argument bag or environment.

Example:
    mode = ArgDescriptor(
        name="mode",
        valid_values=frozenset({"gzip", "zip"}),
        description="Defines file(s) mode: gzip or zip",
    )
    mode.resolve({"mode": "gzip"}, context="arg")  # "gzip"
    mode.resolve({"mode": "rar"}, context="arg")   # InvalidArgumentValueError
"""

from collections.abc import Mapping
from typing import Any, Self

from pydantic import BaseModel, field_validator, model_validator

from forkline.contracts.errors import (
    InvalidArgumentValueError,
    MissingArgumentError,
    UnknownArgumentError,
)

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


class ArgDescriptor(BaseModel):
    """Declarative description of one argument. Never mutated after construction."""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str
    required: bool = False
    default_value: Any = None
    valid_values: frozenset[Any] | None = None
    boolean: bool = False
    description: str = ""

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("argument name cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_default_in_valid_values(self) -> Self:
        if self.valid_values is not None and self.default_value is not None and not self._allowed(self.default_value):
            raise ValueError(f"default_value {self.default_value!r} is not one of the valid values for '{self.name}'")
        return self

    def resolve(self, source: Mapping[str, Any], context: str) -> Any:
        """Look up this argument in source and apply default, coercion and allow-set.

        A key that is present wins even when its value is None; only an absent
        key falls back to the default.

        Args:
            source: Argument bag, environment mapping or processor params
            context: Error context ("arg", "env" or "param")

        Returns:
            The resolved value (None when optional, absent and without default)

        Raises:
            MissingArgumentError: Required, absent and no default
            InvalidArgumentValueError: Coercion failed or value outside allow-set
        """
        if self.name in source:
            value = source[self.name]
        elif self.required and self.default_value is None:
            raise MissingArgumentError(self.name, context)
        else:
            value = self.default_value

        return self.check(value, context)

    def check(self, value: Any, context: str) -> Any:
        """Coerce and validate an already looked-up value."""
        if value is None:
            return None

        if self.boolean:
            value = _coerce_boolean(self.name, value, context)

        if self.valid_values is not None and not self._allowed(value):
            allowed = ", ".join(sorted(repr(v) for v in self.valid_values))
            raise InvalidArgumentValueError(self.name, value, context, f"expected one of {allowed}")

        return value

    def _allowed(self, value: Any) -> bool:
        try:
            return value in self.valid_values  # type: ignore[operator]
        except TypeError:
            # Unhashable values (lists, dicts) can never be members of the allow-set
            return False


def _coerce_boolean(name: str, value: Any, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise InvalidArgumentValueError(name, value, context, "expected a boolean")


def validate_params(
    processor_name: str,
    descriptors: Mapping[str, ArgDescriptor],
    params: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Validate resolved processor settings against the declared descriptors.

    Returns a new dict holding every declared argument (absent optional
    arguments map to their default or None). Unknown keys are rejected.

    Raises:
        UnknownArgumentError: params contain undeclared keys
        MissingArgumentError: a required argument is absent
        InvalidArgumentValueError: coercion or allow-set check failed
    """
    params = params or {}
    unknown = sorted(key for key in params if key not in descriptors)
    if unknown:
        raise UnknownArgumentError(processor_name, unknown)

    return {name: descriptor.resolve(params, context="param") for name, descriptor in descriptors.items()}
