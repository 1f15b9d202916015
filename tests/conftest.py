"""Pytest configuration and fixtures for backupkern tests."""

import logging

import pytest
from hypothesis import settings, Phase

from backupkern.logger import LOGGER_NAME

# Configure hypothesis to use fewer examples for faster test runs
# Disable shrinking phase to speed up tests further
settings.register_profile(
    "fast",
    max_examples=5,
    deadline=10000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate]
)
settings.register_profile("ci", max_examples=50, deadline=10000)
settings.register_profile("dev", max_examples=5, deadline=10000)

# Use the fast profile by default
settings.load_profile("fast")


@pytest.fixture
def reset_logger():
    """Close handlers installed by setup_logging so temp dirs can go away."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
