"""
Pytest configuration and fixtures for tidemark tests.

Specialized fixtures are organized in the fixtures/ directory:
- fixtures.source_tree: Temporary source trees with pinned mtimes
- fixtures.detector: Fake clock, registries and wired detectors
"""

import logging

import pytest

# Load fixture modules
pytest_plugins = [
    "tests.fixtures.source_tree",
    "tests.fixtures.detector",
]


@pytest.fixture
def matcher():
    """Default Ant-style pattern matcher."""
    from tidemark.matching import AntPathMatcher

    return AntPathMatcher()


@pytest.fixture(autouse=True)
def reset_tidemark_logger():
    """
    Remove handlers added by configure_logging() so tests don't interfere.
    """
    yield
    logger = logging.getLogger("tidemark")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
