"""Pytest configuration and fixtures."""

import logging

import pytest

from shiftengine.logging_setup import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by CLI runs so they do not outlive captured streams."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
