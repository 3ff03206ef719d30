"""
Shared test fixtures and configuration.

Environment variables are set BEFORE any dephealth imports so the settings
singleton never points at the public registry.
"""

import os
import sys

# Ensure the package is importable from a source checkout
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Override settings before any code imports the settings singleton
os.environ["REGISTRY_URL"] = "https://registry.test"
os.environ["REGISTRY_TIMEOUT_SECONDS"] = "1.0"
os.environ["LOG_LEVEL"] = "DEBUG"

import pytest  # noqa: E402

from tests.mocks.packages import FakeAdapter, make_context  # noqa: E402


@pytest.fixture
def adapter():
    """Package manager adapter that records calls instead of running commands."""
    return FakeAdapter("/tmp/project")


@pytest.fixture
def context(adapter):
    """Scan context with a small manifest and matching installs."""
    return make_context(adapter=adapter)
