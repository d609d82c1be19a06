"""Tests for the exception hierarchy."""

from forkline.contracts import errors


class TestHierarchy:
    """Configuration errors share one base; runtime contract errors do not."""

    def test_configuration_errors(self) -> None:
        for error_type in (
            errors.MissingArgumentError,
            errors.InvalidArgumentValueError,
            errors.UnknownArgumentError,
            errors.UnknownProcessorError,
            errors.PipelineStructureError,
            errors.MalformedForkError,
            errors.MalformedStageError,
        ):
            assert issubclass(error_type, errors.PipelineConfigError)

    def test_runtime_contract_errors_are_not_config_errors(self) -> None:
        assert issubclass(errors.StreamStateError, errors.ForklineError)
        assert issubclass(errors.CompletionSignalError, errors.ForklineError)
        assert not issubclass(errors.StreamStateError, errors.PipelineConfigError)
        assert not issubclass(errors.CompletionSignalError, errors.PipelineConfigError)


class TestMessages:
    def test_unknown_processor_lists_available_sorted(self) -> None:
        error = errors.UnknownProcessorError("output", "ftp", ["stdout", "file"])

        assert str(error) == "Unknown output processor 'ftp'. Available: file, stdout"
        assert error.kind == "output"
        assert error.name == "ftp"

    def test_unknown_processor_without_available(self) -> None:
        assert str(errors.UnknownProcessorError("input", "sql")) == "Unknown input processor 'sql'"

    def test_invalid_argument_value(self) -> None:
        error = errors.InvalidArgumentValueError("mode", "rar", "arg", "expected one of 'gzip', 'zip'")

        assert str(error) == "Invalid arg mode='rar': expected one of 'gzip', 'zip'"
