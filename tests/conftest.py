"""
Shared fixtures.
"""

import logging

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
