"""
Shared fixtures for file sorter tests.
"""

from datetime import datetime
from pathlib import Path

import pytest

from file_sorter.file_access.local_accessor import FileMetadata


@pytest.fixture
def make_file():
    """Factory for FileMetadata snapshots that need no file on disk."""

    def _make(
        path,
        created=datetime(2025, 8, 31, 9, 30),
        modified=datetime(2025, 8, 31, 9, 30),
        accessed=datetime(2025, 9, 1, 12, 0),
        size=1024,
    ):
        path = Path(path)
        suffix = path.suffix
        stem = path.name[: -len(suffix)] if suffix else path.name
        return FileMetadata(
            path=path,
            stem=stem,
            extension=suffix[1:].lower(),
            raw_extension=suffix[1:],
            created=created,
            modified=modified,
            accessed=accessed,
            size=size,
        )

    return _make


@pytest.fixture
def workspace(tmp_path):
    """Source directory and organization root under one temporary directory."""
    source = tmp_path / "inbox"
    root = tmp_path / "sorted"
    source.mkdir()
    root.mkdir()
    return source, root
