"""Shared pytest fixtures for injectwire tests."""

import pytest

from injectwire.dependencies import DependenciesExtractor
from injectwire.module import Module


@pytest.fixture()
def module() -> Module:
    """Fresh module with no bindings."""
    return Module()


@pytest.fixture()
def child_module() -> Module:
    """Second fresh module, for child injectors and installs."""
    return Module()


@pytest.fixture()
def dependencies_extractor() -> DependenciesExtractor:
    """DependenciesExtractor instance."""
    return DependenciesExtractor()
