# tests/conftest.py
"""Shared test fixtures.

Processor doubles live in tests/helpers/processors.py; the `registry` fixture
registers them next to the built-in processors.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import logging
import os
from collections.abc import Iterator

import pytest
from hypothesis import Phase, Verbosity, settings

from forkline.processors.builtin import BuiltinProcessors
from forkline.processors.registry import ProcessorRegistry
from tests.helpers.processors import TestingProcessors


@pytest.fixture
def registry() -> ProcessorRegistry:
    """Built-in processors plus the test doubles.

    Usage:
        def test_tree(registry):
            pipeline = PipelineBuilder("t", registry=registry).input("list", [1]).output("record", sink).build()
    """
    return ProcessorRegistry(BuiltinProcessors(), TestingProcessors())


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Restore root logger handlers/level after tests that configure logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
