"""Shared pytest fixtures."""
from pathlib import Path

import pytest

from georesolve.observability.log import configure_logging

LOGGING_CONFIG = Path(__file__).resolve().parent.parent / "config" / "logging.yaml"


@pytest.fixture(autouse=True)
def _structured_logging():
    """Route structlog through the repository config so log lines go to stderr, not stdout."""
    configure_logging(LOGGING_CONFIG)
    yield
