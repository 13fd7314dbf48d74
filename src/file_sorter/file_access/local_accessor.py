"""
Local file system access: metadata snapshots and candidate enumeration.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileMetadata:
    """Immutable snapshot of a candidate file, taken once per run."""

    path: Path
    stem: str
    extension: str  # lowercase, no leading dot
    raw_extension: str  # as spelled on disk, no leading dot
    created: datetime
    modified: datetime
    accessed: datetime
    size: int

    @property
    def name(self) -> str:
        if self.raw_extension:
            return f"{self.stem}.{self.raw_extension}"
        return self.stem

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "FileMetadata":
        """Stat a file and build its snapshot.

        Args:
            path: Path to a regular file

        Returns:
            FileMetadata for the file

        Raises:
            FileNotFoundError: If the file does not exist
            IsADirectoryError: If the path is a directory
        """
        file_path = Path(path).absolute()
        stat = file_path.stat()
        if file_path.is_dir():
            raise IsADirectoryError(f"Not a file: {file_path}")

        suffix = file_path.suffix
        raw_extension = suffix[1:] if suffix else ""
        stem = file_path.name[: -len(suffix)] if suffix else file_path.name

        created_ts = getattr(stat, "st_birthtime", stat.st_ctime)

        return cls(
            path=file_path,
            stem=stem,
            extension=raw_extension.lower(),
            raw_extension=raw_extension,
            created=datetime.fromtimestamp(created_ts),
            modified=datetime.fromtimestamp(stat.st_mtime),
            accessed=datetime.fromtimestamp(stat.st_atime),
            size=stat.st_size,
        )


def collect_candidates(
    paths: Iterable[Union[str, Path]],
    recursive: bool = True,
    include_hidden: bool = False,
) -> List[Path]:
    """Expand files and directories into a sorted list of candidate files.

    Directories are scanned (recursively by default); hidden entries are
    skipped unless include_hidden is set. Explicit file arguments are always
    kept.

    Args:
        paths: Files and/or directories to collect from
        recursive: Whether to scan subdirectories
        include_hidden: Whether to include dot-files and dot-directories

    Returns:
        List of absolute file paths, without duplicates
    """
    seen = set()
    candidates: List[Path] = []

    def add(file_path: Path):
        key = os.path.normcase(str(file_path))
        if key not in seen:
            seen.add(key)
            candidates.append(file_path)

    for entry in paths:
        entry_path = Path(entry).absolute()

        if entry_path.is_file():
            add(entry_path)
            continue

        if not entry_path.is_dir():
            logger.warning(f"Skipping missing path: {entry_path}")
            continue

        logger.info(f"Scanning directory: {entry_path}")
        pattern = "**/*" if recursive else "*"
        found = []
        for file_path in entry_path.glob(pattern):
            relative_parts = file_path.relative_to(entry_path).parts
            if not include_hidden and any(part.startswith(".") for part in relative_parts):
                continue
            if file_path.is_file():
                found.append(file_path)

        for file_path in sorted(found):
            add(file_path)

    logger.info(f"Collected {len(candidates)} candidate files")
    return candidates
