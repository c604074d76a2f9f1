"""
Shared fixtures for the test suite.
"""

import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import pytest

from neat.actions.history_tracker import InMemoryHistoryStore
from neat.scanning.scanner import FileRecord


@pytest.fixture
def make_file(tmp_path):
    """Create a file under ``tmp_path``, optionally with a fixed mtime."""

    def _make(
        relative: str,
        content: Union[bytes, str] = b"",
        modified: Optional[datetime] = None,
    ) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
        if modified is not None:
            ts = modified.timestamp()
            os.utime(path, (ts, ts))
        return path

    return _make


@pytest.fixture
def make_record(make_file):
    """Create a file and return its FileRecord."""

    def _make(relative: str, content: Union[bytes, str] = b"", modified: Optional[datetime] = None) -> FileRecord:
        return FileRecord.from_path(make_file(relative, content, modified))

    return _make


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()
