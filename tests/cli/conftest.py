"""Sample statement files on disk for the command-line tests."""

import io
import sys

import pytest

from tests.samples import SAMPLE_CAMT053, SAMPLE_CSV, SAMPLE_MT940


@pytest.fixture
def sample_files(tmp_path):
    """Paths (as str) of the three sample documents written to tmp_path."""
    paths = {}
    for name, text in (
        ("statement.sta", SAMPLE_MT940),
        ("statement.xml", SAMPLE_CAMT053),
        ("statement.csv", SAMPLE_CSV),
    ):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        paths[path.suffix.lstrip(".")] = str(path)
    return paths


@pytest.fixture
def stdin_bytes(monkeypatch):
    """Replace stdin with a binary-backed stream holding the given bytes."""

    def _set(data: bytes) -> None:
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data)))

    return _set
