"""
Pytest fixtures for the statement toolkit test suite.

Provides:
- Structured logging setup and a JSON log capture fixture
- The shipped default codec configuration
- Sample statements as bytes (see tests/samples.py)
"""

import json
import logging
from io import StringIO

import pytest

from statement_config import get_codec_config
from statement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tests.samples import SAMPLE_CAMT053, SAMPLE_CSV, SAMPLE_MT940


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture statement_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            convert(...)
            logs = captured_logs()
            assert any(r["message"] == "conversion_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("statement_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Configuration and samples
# =============================================================================


@pytest.fixture
def default_config():
    return get_codec_config()


@pytest.fixture
def mt940_bytes() -> bytes:
    return SAMPLE_MT940.encode("utf-8")


@pytest.fixture
def camt053_bytes() -> bytes:
    return SAMPLE_CAMT053.encode("utf-8")


@pytest.fixture
def csv_bytes() -> bytes:
    return SAMPLE_CSV.encode("utf-8")
