# src/forkline/core/expressions.py
"""Settings templates and their resolution.

A settings template is a nested literal (mappings, lists, tuples, scalars)
that may carry PipelineArg / PipelineEnvArg placeholders at any depth. At
build time a template is compiled into a typed configuration expression:

    LiteralExpr(value) | ArgRef(arg) | EnvRef(arg)
    | SequenceExpr(items) | MappingExpr(entries)

and at run time one recursive evaluator turns the expression into a concrete
settings value for one argument bag.

Resolution is pure: the template, the compiled expression and the argument
bag are never mutated, and every call builds fresh containers, so two runs
of the same tree never share resolved settings.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from forkline.contracts.args import ArgDescriptor

ARG_CONTEXT = "arg"
ENV_CONTEXT = "env"


class PipelineArg(ArgDescriptor):
    """Placeholder resolved from the run's argument bag."""


class PipelineEnvArg(ArgDescriptor):
    """Placeholder resolved from the process environment."""


@dataclass(frozen=True, slots=True)
class LiteralExpr:
    value: Any


@dataclass(frozen=True, slots=True)
class ArgRef:
    arg: ArgDescriptor


@dataclass(frozen=True, slots=True)
class EnvRef:
    arg: ArgDescriptor


@dataclass(frozen=True, slots=True)
class SequenceExpr:
    items: tuple["ConfigExpr", ...]
    as_tuple: bool = False


@dataclass(frozen=True, slots=True)
class MappingExpr:
    entries: tuple[tuple[Any, "ConfigExpr"], ...]


ConfigExpr = LiteralExpr | ArgRef | EnvRef | SequenceExpr | MappingExpr

_EXPR_TYPES = (LiteralExpr, ArgRef, EnvRef, SequenceExpr, MappingExpr)


def compile_template(template: Any) -> ConfigExpr:
    """Compile a raw settings template into a configuration expression.

    Mappings and lists/tuples are walked recursively; strings and every other
    value become literals. Already compiled expressions are returned as-is.
    """
    if isinstance(template, _EXPR_TYPES):
        return template
    if isinstance(template, PipelineEnvArg):
        return EnvRef(template)
    if isinstance(template, PipelineArg):
        return ArgRef(template)
    if isinstance(template, Mapping):
        return MappingExpr(tuple((key, compile_template(value)) for key, value in template.items()))
    if isinstance(template, list | tuple):
        return SequenceExpr(
            tuple(compile_template(item) for item in template),
            as_tuple=isinstance(template, tuple),
        )
    return LiteralExpr(template)


def evaluate(
    expr: ConfigExpr,
    args: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> Any:
    """Evaluate a compiled expression against one argument bag.

    Args:
        expr: Compiled configuration expression
        args: Run-time argument bag
        environ: Environment mapping (defaults to os.environ, read at call time)

    Raises:
        MissingArgumentError: A required placeholder has no value and no default
        InvalidArgumentValueError: A placeholder value fails coercion or allow-set
    """
    env = os.environ if environ is None else environ

    def _eval(node: ConfigExpr) -> Any:
        match node:
            case LiteralExpr(value=value):
                return value
            case ArgRef(arg=arg):
                return arg.resolve(args, ARG_CONTEXT)
            case EnvRef(arg=arg):
                return arg.resolve(env, ENV_CONTEXT)
            case SequenceExpr(items=items, as_tuple=as_tuple):
                values = [_eval(item) for item in items]
                return tuple(values) if as_tuple else values
            case MappingExpr(entries=entries):
                return {key: _eval(value) for key, value in entries}
        raise TypeError(f"Not a configuration expression: {type(node).__name__}")

    return _eval(expr)


def resolve_settings(
    template: Any,
    args: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Any:
    """Resolve a settings template (raw or compiled) into concrete settings."""
    return evaluate(compile_template(template), args or {}, environ)


def placeholders(expr: ConfigExpr) -> list[ArgDescriptor]:
    """List the placeholders an expression depends on, in template order.

    Used by the CLI to document which run-time arguments a pipeline accepts.
    """
    found: list[ArgDescriptor] = []

    def _walk(node: ConfigExpr) -> None:
        match node:
            case ArgRef(arg=arg) | EnvRef(arg=arg):
                found.append(arg)
            case SequenceExpr(items=items):
                for item in items:
                    _walk(item)
            case MappingExpr(entries=entries):
                for _, value in entries:
                    _walk(value)

    _walk(expr)
    return found
