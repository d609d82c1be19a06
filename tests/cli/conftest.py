# tests/cli/conftest.py
"""Shared fixtures for CLI tests."""

from collections.abc import Iterator

import pytest


@pytest.fixture(autouse=True)
def _isolate_cli_logging(restore_logging: None) -> Iterator[None]:
    """The CLI callback reconfigures logging onto CliRunner's short-lived stderr."""
    yield
