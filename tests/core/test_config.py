"""Tests for pipeline definition files."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from forkline.contracts.errors import PipelineConfigError, PipelineStructureError, UnknownProcessorError
from forkline.core.config import (
    BranchItem,
    PipelineSettings,
    StageSettings,
    build_pipeline,
    decode_placeholders,
    load_settings,
)
from forkline.core.expressions import ArgRef, EnvRef, PipelineArg, PipelineEnvArg, placeholders
from forkline.engine.streams import DEFAULT_BUFFER_SIZE
from forkline.pipeline.tree import ChildPipeline, ForkSequence, OutputPipeline, TransformPipeline

PIPELINE_YAML = """\
name: orders
buffer_size: 500
input:
  plugin: file_pattern
  options:
    pattern: {$arg: pattern, required: true}
    mode: {$arg: mode, valid_values: [gzip, zip]}
transforms:
  - plugin: json
outputs:
  - plugin: stdout
  - key: archive
    plugin: file
    options:
      path: {$env: ARCHIVE_PATH, default_value: out.jsonl}
  - branch:
      key: ids
      transforms:
        - plugin: pick
          options: [id]
      outputs:
        - plugin: stdout
          options: text
"""


@pytest.fixture
def pipeline_file(tmp_path: Path) -> Path:
    path = tmp_path / "pipeline.yaml"
    path.write_text(PIPELINE_YAML)
    return path


class TestLoadSettings:
    """YAML loading through Dynaconf and pydantic validation."""

    def test_loads_definition(self, pipeline_file: Path) -> None:
        settings = load_settings(pipeline_file)

        assert settings.name == "orders"
        assert settings.buffer_size == 500
        assert settings.input.plugin == "file_pattern"
        assert settings.input.options["pattern"] == {"$arg": "pattern", "required": True}
        assert [stage.plugin for stage in settings.transforms] == ["json"]
        assert isinstance(settings.outputs[0], StageSettings)
        assert settings.outputs[1].key == "archive"
        assert isinstance(settings.outputs[2], BranchItem)
        assert settings.outputs[2].branch.key == "ids"
        assert settings.outputs[2].branch.transforms[0].options == ["id"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yaml")

    def test_environment_overrides_top_level_keys(self, pipeline_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FORKLINE_BUFFER_SIZE", "5")

        assert load_settings(pipeline_file).buffer_size == 5

    def test_outputs_required(self, tmp_path: Path) -> None:
        path = tmp_path / "pipeline.yaml"
        path.write_text("input:\n  plugin: file\noutputs: []\n")

        with pytest.raises(ValidationError):
            load_settings(path)


class TestPipelineSettings:
    """Model validation without files."""

    def test_defaults(self) -> None:
        settings = PipelineSettings(input={"plugin": "file"}, outputs=[{"plugin": "stdout"}])

        assert settings.name == "pipeline"
        assert settings.buffer_size == DEFAULT_BUFFER_SIZE
        assert settings.transforms == []

    def test_unbounded_buffer(self) -> None:
        settings = PipelineSettings(input={"plugin": "file"}, outputs=[{"plugin": "stdout"}], buffer_size=None)

        assert settings.buffer_size is None

    def test_buffer_size_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            PipelineSettings(input={"plugin": "file"}, outputs=[{"plugin": "stdout"}], buffer_size=0)

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PipelineSettings(input={"plugin": "file"}, outputs=[{"plugin": "stdout"}], sinks=[])

    def test_empty_plugin_rejected(self) -> None:
        with pytest.raises(ValidationError, match="plugin name cannot be empty"):
            StageSettings(plugin=" ")

    def test_branch_needs_outputs(self) -> None:
        with pytest.raises(ValidationError):
            PipelineSettings(input={"plugin": "file"}, outputs=[{"branch": {"key": "b", "outputs": []}}])

    def test_settings_are_frozen(self) -> None:
        settings = PipelineSettings(input={"plugin": "file"}, outputs=[{"plugin": "stdout"}])

        with pytest.raises(ValidationError):
            settings.name = "other"  # type: ignore[misc]


class TestDecodePlaceholders:
    def test_arg_placeholder(self) -> None:
        decoded = decode_placeholders({"mode": {"$arg": "mode", "valid_values": ["gzip", "zip"]}})

        assert decoded["mode"] == PipelineArg(name="mode", valid_values=frozenset({"gzip", "zip"}))
        assert type(decoded["mode"]) is PipelineArg

    def test_env_placeholder_inside_list(self) -> None:
        decoded = decode_placeholders(["a", {"$env": "HOME", "required": True}])

        assert decoded[0] == "a"
        assert type(decoded[1]) is PipelineEnvArg
        assert decoded[1].required is True

    def test_both_markers_rejected(self) -> None:
        with pytest.raises(PipelineConfigError, match="cannot be both"):
            decode_placeholders({"x": {"$arg": "a", "$env": "B"}})

    def test_invalid_descriptor_field_reports_location(self) -> None:
        with pytest.raises(PipelineConfigError, match=r"options\.x: invalid \$arg placeholder"):
            decode_placeholders({"x": {"$arg": "a", "choices": [1]}})

    def test_plain_values_unchanged(self) -> None:
        assert decode_placeholders({"a": [1, {"b": "c"}]}) == {"a": [1, {"b": "c"}]}


class TestBuildPipeline:
    """Definitions become pipeline trees."""

    def test_builds_tree(self, pipeline_file: Path) -> None:
        tree = build_pipeline(load_settings(pipeline_file))

        assert tree.name == "orders"
        assert tree.input.processor == "file_pattern"
        transform, fork = tree.stages[1], tree.stages[2]
        assert isinstance(transform, TransformPipeline)
        assert isinstance(fork, ForkSequence)
        stdout, archive, ids = fork.children
        assert isinstance(stdout, OutputPipeline)
        assert archive.key == "archive"
        assert isinstance(ids, ChildPipeline)
        assert ids.key == "ids"
        assert [stage.key for stage in tree.outputs()] == ["stdout", "archive", "ids/stdout"]

    def test_placeholders_are_compiled(self, pipeline_file: Path) -> None:
        tree = build_pipeline(load_settings(pipeline_file))

        input_placeholders = placeholders(tree.input.settings)
        archive_placeholders = placeholders(tree.outputs()[1].settings)
        assert [p.name for p in input_placeholders] == ["pattern", "mode"]
        assert [p.name for p in archive_placeholders] == ["ARCHIVE_PATH"]
        assert isinstance(dict(tree.outputs()[1].settings.entries)["path"], EnvRef)
        assert isinstance(dict(tree.input.settings.entries)["pattern"], ArgRef)

    def test_unknown_processor(self) -> None:
        settings = PipelineSettings(input={"plugin": "sql"}, outputs=[{"plugin": "stdout"}])

        with pytest.raises(UnknownProcessorError, match="Unknown input processor 'sql'"):
            build_pipeline(settings)

    def test_duplicate_keys(self) -> None:
        settings = PipelineSettings(
            input={"plugin": "file", "options": "in.txt"},
            outputs=[{"plugin": "stdout", "key": "out"}, {"plugin": "file", "key": "out", "options": "o.jsonl"}],
        )

        with pytest.raises(PipelineStructureError, match="Duplicate stage key 'out'"):
            build_pipeline(settings)
