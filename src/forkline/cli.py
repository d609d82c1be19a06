# src/forkline/cli.py
"""forkline Command Line Interface.

Entry point for the forkline CLI tool. Logs and run summaries go to stderr;
stdout belongs to the stdout output processor.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
import yaml
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from forkline import __version__
from forkline.contracts.enums import BranchStatus, ProcessorKind
from forkline.contracts.errors import PipelineConfigError
from forkline.core.config import PipelineSettings, build_pipeline, load_settings
from forkline.core.expressions import PipelineEnvArg, placeholders
from forkline.engine.runner import PipelineRunner, run_sync
from forkline.pipeline.tree import RootPipeline
from forkline.processors.registry import get_processor_description, get_registry

__all__ = [
    "app",
]

app = typer.Typer(
    name="forkline",
    help="forkline: declarative fan-out ETL pipelines.",
    no_args_is_help=True,
)

processors_app = typer.Typer(help="Processor registry commands.")
app.add_typer(processors_app, name="processors")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"forkline version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file without overriding existing ones.

    Raises:
        typer.Exit: If an explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs.",
    ),
) -> None:
    """forkline: declarative fan-out ETL pipelines."""
    from forkline.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _parse_args(values: list[str] | None) -> dict[str, str]:
    """Parse repeated --arg KEY=VALUE options into an argument bag."""
    parsed: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint="--arg")
        parsed[key.strip()] = value
    return parsed


def _load_pipeline(pipeline: Path) -> tuple[PipelineSettings, RootPipeline]:
    """Load and build a pipeline definition, exiting with status 1 on any error."""
    path = pipeline.expanduser()
    try:
        settings = load_settings(path)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {pipeline}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError:
        typer.echo(f"Error: Pipeline file not found: {pipeline}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    try:
        tree = build_pipeline(settings)
    except PipelineConfigError as e:
        typer.echo(f"Pipeline error: {e}", err=True)
        raise typer.Exit(1) from None
    return settings, tree


ARG_OPTION_HELP = "Run-time argument KEY=VALUE (repeatable)."


@app.command()
def run(
    pipeline: Path = typer.Argument(..., help="Path to the pipeline YAML file."),
    arg: list[str] | None = typer.Option(None, "--arg", "-a", help=ARG_OPTION_HELP),
) -> None:
    """Run a pipeline once and report every branch."""
    args = _parse_args(arg)
    settings, tree = _load_pipeline(pipeline)

    try:
        result = run_sync(tree, args, buffer_size=settings.buffer_size)
    except PipelineConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1) from None

    for branch in result.branches:
        if branch.status == BranchStatus.COMPLETED:
            typer.echo(f"  ok      {branch.key}", err=True)
        else:
            typer.secho(f"  FAILED  {branch.key}: {branch.error}", fg=typer.colors.RED, err=True)

    if not result.succeeded:
        typer.echo(f"Run {result.run_id} failed: {len(result.failed_branches)} of {len(result.branches)} branches", err=True)
        raise typer.Exit(1)
    typer.echo(f"Run {result.run_id} completed: {len(result.branches)} branches in {result.duration_seconds:.2f}s", err=True)


@app.command()
def validate(
    pipeline: Path = typer.Argument(..., help="Path to the pipeline YAML file."),
    arg: list[str] | None = typer.Option(None, "--arg", "-a", help=ARG_OPTION_HELP),
) -> None:
    """Resolve and validate every stage without running anything."""
    args = _parse_args(arg)
    settings, tree = _load_pipeline(pipeline)

    try:
        resolved = PipelineRunner(tree, buffer_size=settings.buffer_size).validate(args)
    except PipelineConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Pipeline '{tree.name}' is valid.")
    typer.echo(f"  Stages: {len(resolved)}")
    typer.echo(f"  Outputs: {', '.join(stage.key for stage in tree.outputs())}")

    described: dict[str, str] = {}
    for stage in tree.stage_nodes():
        for placeholder in placeholders(stage.settings):
            source = "env" if isinstance(placeholder, PipelineEnvArg) else "arg"
            described.setdefault(f"{source} {placeholder.name}", _flags(placeholder))
    if described:
        typer.echo("  Arguments:")
        for name, flags in described.items():
            typer.echo(f"    {name}{flags}")


def _flags(descriptor: Any) -> str:
    flags = []
    if descriptor.required:
        flags.append("required")
    if descriptor.default_value is not None:
        flags.append(f"default={descriptor.default_value!r}")
    if descriptor.valid_values is not None:
        flags.append("one of " + "|".join(sorted(str(v) for v in descriptor.valid_values)))
    return f" ({', '.join(flags)})" if flags else ""


def _kind(value: str) -> ProcessorKind:
    try:
        return ProcessorKind(value)
    except ValueError:
        typer.echo(f"Error: Invalid kind '{value}'.", err=True)
        typer.echo(f"Valid kinds: {', '.join(k.value for k in ProcessorKind)}", err=True)
        raise typer.Exit(1) from None


@processors_app.command("list")
def processors_list(
    kind: str | None = typer.Option(
        None,
        "--kind",
        "-k",
        help="Filter by processor kind (input, transform, output).",
    ),
) -> None:
    """List available processors."""
    registry = get_registry()
    kinds = [_kind(kind)] if kind else list(ProcessorKind)

    for processor_kind in kinds:
        namespace = registry.namespace(processor_kind)
        typer.echo(f"\n{processor_kind.upper()}S:")
        if not namespace:
            typer.echo("  (none available)")
        for name in sorted(namespace):
            typer.echo(f"  {name:20} - {get_processor_description(namespace[name])}")


@processors_app.command("describe")
def processors_describe(
    kind: str = typer.Argument(..., help="Processor kind (input, transform, output)."),
    name: str = typer.Argument(..., help="Processor name."),
) -> None:
    """Show a processor's arguments as YAML."""
    processor_kind = _kind(kind)
    module = get_registry().lookup(processor_kind, name)
    if module is None:
        typer.echo(f"Error: Unknown {processor_kind} processor '{name}'.", err=True)
        raise typer.Exit(1)

    arguments = {}
    for arg_name, descriptor in module.default_args().items():
        entry = descriptor.model_dump(exclude={"name"}, exclude_defaults=True)
        if "valid_values" in entry:
            entry["valid_values"] = sorted(entry["valid_values"], key=str)
        arguments[arg_name] = entry

    typer.echo(f"{name} ({processor_kind}): {get_processor_description(module)}")
    shorthand = getattr(module, "shorthand_arg", None)
    if shorthand:
        typer.echo(f"shorthand: {shorthand}")
    typer.echo(yaml.safe_dump({"arguments": arguments}, sort_keys=False, default_flow_style=False).rstrip())


if __name__ == "__main__":
    app()
