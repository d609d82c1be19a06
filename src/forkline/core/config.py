# src/forkline/core/config.py
"""Pipeline definition files.

A pipeline is defined in YAML, loaded with Dynaconf (FORKLINE_* environment
variables override top-level keys, e.g. FORKLINE_BUFFER_SIZE) and validated
with frozen pydantic models:

    name: orders
    buffer_size: 500
    input:
      plugin: file_pattern
      options:
        pattern: {$arg: pattern, required: true}
    transforms:
      - plugin: json
    outputs:
      - plugin: stdout
      - branch:
          key: ids
          transforms:
            - {plugin: pick, options: [id]}
          outputs:
            - {plugin: file, options: ids.jsonl}

Inside options, {$arg: NAME, ...} becomes a PipelineArg and {$env: NAME, ...}
a PipelineEnvArg; the remaining keys are ArgDescriptor fields (required,
default_value, valid_values, boolean, description).
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from forkline.contracts.errors import PipelineConfigError
from forkline.core.expressions import PipelineArg, PipelineEnvArg
from forkline.engine.streams import DEFAULT_BUFFER_SIZE
from forkline.pipeline.builder import BranchBuilder, PipelineBuilder, branch, output
from forkline.pipeline.tree import RootPipeline
from forkline.processors.registry import ProcessorRegistry

ARG_MARKER = "$arg"
ENV_MARKER = "$env"

_PLACEHOLDER_TYPES: dict[str, type[PipelineArg] | type[PipelineEnvArg]] = {
    ARG_MARKER: PipelineArg,
    ENV_MARKER: PipelineEnvArg,
}


class StageSettings(BaseModel):
    """One processor stage: registry name, optional key, options."""

    model_config = {"frozen": True, "extra": "forbid"}

    plugin: str = Field(description="Processor name in the registry")
    key: str | None = Field(default=None, description="Stage key (defaults to a path-based name)")
    options: Any = Field(default=None, description="Settings mapping or processor shorthand")

    @field_validator("plugin")
    @classmethod
    def validate_plugin(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("plugin name cannot be empty")
        return v


class BranchSettings(BaseModel):
    """Nested fork group: its own transforms and outputs."""

    model_config = {"frozen": True, "extra": "forbid"}

    key: str = Field(min_length=1, description="Fork group key")
    transforms: list[StageSettings] = Field(default_factory=list)
    outputs: list[StageSettings | BranchItem] = Field(min_length=1)


class BranchItem(BaseModel):
    """Output list entry holding a nested fork group."""

    model_config = {"frozen": True, "extra": "forbid"}

    branch: BranchSettings


BranchSettings.model_rebuild()


class PipelineSettings(BaseModel):
    """A complete pipeline definition."""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = "pipeline"
    buffer_size: int | None = Field(
        default=DEFAULT_BUFFER_SIZE,
        ge=1,
        description="Per-fork buffer bound (null for unbounded)",
    )
    input: StageSettings
    transforms: list[StageSettings] = Field(default_factory=list)
    outputs: list[StageSettings | BranchItem] = Field(min_length=1)


def decode_placeholders(value: Any, location: str = "options") -> Any:
    """Replace {$arg: ...} / {$env: ...} mappings with placeholder objects.

    Raises:
        PipelineConfigError: A placeholder mapping has invalid descriptor fields
    """
    if isinstance(value, Mapping):
        markers = [marker for marker in _PLACEHOLDER_TYPES if marker in value]
        if len(markers) > 1:
            raise PipelineConfigError(f"{location}: a placeholder cannot be both {ARG_MARKER} and {ENV_MARKER}")
        if markers:
            marker = markers[0]
            fields = {k: v for k, v in value.items() if k != marker}
            try:
                return _PLACEHOLDER_TYPES[marker](name=value[marker], **fields)
            except (ValidationError, TypeError) as exc:
                raise PipelineConfigError(f"{location}: invalid {marker} placeholder: {exc}") from exc
        return {k: decode_placeholders(v, f"{location}.{k}") for k, v in value.items()}
    if isinstance(value, list):
        return [decode_placeholders(item, f"{location}[{index}]") for index, item in enumerate(value)]
    return value


def _plain(value: Any) -> Any:
    # Dynaconf hands out Box/BoxList wrappers
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_plain(item) for item in value]
    return value


def load_settings(config_path: Path) -> PipelineSettings:
    """Load a pipeline definition with environment variable overrides.

    Precedence: FORKLINE_* environment variables, then the YAML file, then
    the pydantic defaults.

    Raises:
        FileNotFoundError: The file does not exist
        ValidationError: The definition fails pydantic validation
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Pipeline file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="FORKLINE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _plain(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    return PipelineSettings(**raw_config)


def build_pipeline(settings: PipelineSettings, registry: ProcessorRegistry | None = None) -> RootPipeline:
    """Turn a validated definition into a pipeline tree.

    Raises:
        PipelineConfigError: Unknown processors, bad placeholders or structure
    """
    builder = PipelineBuilder(settings.name, registry=registry)
    builder.input(
        settings.input.plugin,
        decode_placeholders(settings.input.options, "input.options"),
        key=settings.input.key,
    )
    for index, stage in enumerate(settings.transforms):
        builder.transform(stage.plugin, decode_placeholders(stage.options, f"transforms[{index}].options"), key=stage.key)
    builder.fork(*_fork_children(settings.outputs, "outputs"))
    return builder.build()


def _fork_children(items: list[StageSettings | BranchItem], location: str) -> list[Any]:
    children: list[Any] = []
    for index, item in enumerate(items):
        where = f"{location}[{index}]"
        if isinstance(item, BranchItem):
            children.append(_branch(item.branch, f"{where}.branch"))
        else:
            children.append(output(item.plugin, decode_placeholders(item.options, f"{where}.options"), key=item.key))
    return children


def _branch(settings: BranchSettings, location: str) -> BranchBuilder:
    group = branch(settings.key)
    for index, stage in enumerate(settings.transforms):
        group.transform(stage.plugin, decode_placeholders(stage.options, f"{location}.transforms[{index}].options"), key=stage.key)
    group.fork(*_fork_children(settings.outputs, f"{location}.outputs"))
    return group
