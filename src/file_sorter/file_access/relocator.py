"""
Relocation of single files with rollback.

Same-volume moves are a single atomic rename. Cross-volume moves copy into a
hidden temporary file beside the destination, verify it, rename it into place
and only then delete the source, so a failure at any step leaves the source
where it was.
"""

import errno
import logging
import os
import shutil
import tempfile
import threading
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from file_sorter.utils.error_handler import ErrorKind, RelocationError, categorize_error
from file_sorter.utils.file_utils import get_file_hash

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".file_sorter-"
TEMP_SUFFIX = ".partial"


class OutcomeStatus(Enum):
    MOVED = "moved"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(Enum):
    UNMATCHED = "unmatched"
    EXCLUDED = "excluded"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RelocationOutcome:
    """Terminal result for one candidate file of a run."""

    source: Path
    status: OutcomeStatus
    destination: Optional[Path] = None
    rule_name: Optional[str] = None
    skip_reason: Optional[SkipReason] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    partially_moved: bool = False

    @classmethod
    def moved(cls, source: Path, destination: Path, rule_name: Optional[str] = None):
        return cls(source=source, status=OutcomeStatus.MOVED, destination=destination, rule_name=rule_name)

    @classmethod
    def skipped(cls, source: Path, reason: SkipReason, rule_name: Optional[str] = None):
        return cls(source=source, status=OutcomeStatus.SKIPPED, skip_reason=reason, rule_name=rule_name)

    @classmethod
    def failed(
        cls,
        source: Path,
        error_kind: ErrorKind,
        error: str,
        destination: Optional[Path] = None,
        partially_moved: bool = False,
        rule_name: Optional[str] = None,
    ):
        return cls(
            source=source,
            status=OutcomeStatus.FAILED,
            destination=destination,
            rule_name=rule_name,
            error_kind=error_kind,
            error=error,
            partially_moved=partially_moved,
        )

    @property
    def success(self) -> bool:
        return self.status == OutcomeStatus.MOVED

    def with_rule(self, rule_name: Optional[str]) -> "RelocationOutcome":
        return RelocationOutcome(
            source=self.source,
            status=self.status,
            destination=self.destination,
            rule_name=rule_name,
            skip_reason=self.skip_reason,
            error_kind=self.error_kind,
            error=self.error,
            partially_moved=self.partially_moved,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": str(self.source),
            "status": self.status.value,
            "destination": str(self.destination) if self.destination else None,
            "rule": self.rule_name,
            "skip_reason": self.skip_reason.value if self.skip_reason else None,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error": self.error,
            "partially_moved": self.partially_moved,
        }


def summarize_outcomes(outcomes: Iterable[RelocationOutcome]) -> Dict[str, Any]:
    """Count outcomes by status, skip reason and error kind."""
    summary: Dict[str, Any] = {
        "total": 0,
        "moved": 0,
        "skipped": 0,
        "failed": 0,
        "skip_reasons": {},
        "errors_by_kind": {},
        "partially_moved": 0,
    }

    for outcome in outcomes:
        summary["total"] += 1
        summary[outcome.status.value] += 1
        if outcome.skip_reason:
            reason = outcome.skip_reason.value
            summary["skip_reasons"][reason] = summary["skip_reasons"].get(reason, 0) + 1
        if outcome.error_kind:
            kind = outcome.error_kind.value
            summary["errors_by_kind"][kind] = summary["errors_by_kind"].get(kind, 0) + 1
        if outcome.partially_moved:
            summary["partially_moved"] += 1

    return summary


class RelocationExecutor:
    """Move files to already-resolved destinations."""

    def __init__(self, verify_checksum: bool = False):
        """Initialize relocation executor.

        Args:
            verify_checksum: Also compare SHA-256 of cross-device copies
        """
        self.verify_checksum = verify_checksum
        self._dir_locks: Dict[str, threading.Lock] = {}
        self._dir_locks_guard = threading.Lock()
        # Directory creation and rollback of created directories
        self._tree_lock = threading.Lock()

    def _directory_lock(self, directory: Path) -> threading.Lock:
        key = os.path.normcase(os.path.abspath(str(directory)))
        with self._dir_locks_guard:
            lock = self._dir_locks.get(key)
            if lock is None:
                lock = self._dir_locks[key] = threading.Lock()
            return lock

    def relocate(
        self, source_path: Union[str, Path], destination_path: Union[str, Path]
    ) -> RelocationOutcome:
        """Move one file, never overwriting and never losing the source.

        Args:
            source_path: File to move
            destination_path: Final path, already free of conflicts

        Returns:
            Moved or Failed outcome
        """
        source = Path(source_path)
        destination = Path(destination_path)
        with self._directory_lock(destination.parent):
            try:
                created_dirs = self._create_directories(destination.parent)
            except OSError as e:
                logger.error(f"Failed to create directory {destination.parent}: {e}")
                return RelocationOutcome.failed(
                    source,
                    categorize_error(e),
                    f"Cannot create {destination.parent}: {e}",
                    destination,
                )

            try:
                self._move(source, destination)
            except RelocationError as e:
                if not e.partially_moved:
                    self._rollback_directories(created_dirs)
                logger.error(f"Failed to move {source}: {e}")
                return RelocationOutcome.failed(
                    source, e.kind, str(e), destination, partially_moved=e.partially_moved
                )
            except OSError as e:
                self._rollback_directories(created_dirs)
                logger.error(f"Failed to move {source}: {e}")
                return RelocationOutcome.failed(source, categorize_error(e), str(e), destination)

        logger.info(f"Moved: {source} -> {destination}")
        return RelocationOutcome.moved(source, destination)

    def _create_directories(self, directory: Path) -> List[Path]:
        """Create directory and missing parents; return those created, outermost first."""
        with self._tree_lock:
            missing = []
            current = directory
            while not current.exists():
                missing.append(current)
                if current.parent == current:
                    break
                current = current.parent

            created = []
            for path in reversed(missing):
                path.mkdir(exist_ok=True)
                created.append(path)
                logger.debug(f"Created directory {path}")
            return created

    def _rollback_directories(self, created_dirs: List[Path]):
        """Remove directories this relocation created, innermost first, if empty.

        The caller already holds the lock of the innermost directory. Each
        created ancestor is removed only while holding its own lock, so a
        relocation writing straight into that ancestor never has it deleted
        from under it. Directory locks are taken deepest first and the tree
        lock last, the same order relocate() uses.
        """
        with ExitStack() as stack:
            for directory in reversed(created_dirs[:-1]):
                stack.enter_context(self._directory_lock(directory))

            with self._tree_lock:
                for directory in reversed(created_dirs):
                    try:
                        directory.rmdir()
                        logger.debug(f"Rolled back directory {directory}")
                    except OSError:
                        # Another relocation has put something there since
                        break

    def _same_device(self, source: Path, destination_dir: Path) -> bool:
        return os.stat(source).st_dev == os.stat(destination_dir).st_dev

    def _ensure_free(self, destination: Path):
        if os.path.lexists(destination):
            raise RelocationError(
                f"Destination already exists: {destination}", ErrorKind.DESTINATION_EXISTS
            )

    def _move(self, source: Path, destination: Path):
        if not source.is_file():
            raise RelocationError(f"Source file not found: {source}", ErrorKind.SOURCE_MISSING)

        self._ensure_free(destination)

        if self._same_device(source, destination.parent):
            try:
                os.rename(source, destination)
                return
            except OSError as e:
                if e.errno != errno.EXDEV:
                    raise
                logger.debug(f"Rename across devices refused for {source}, copying instead")

        self._copy_verify_replace(source, destination)

    def _copy_verify_replace(self, source: Path, destination: Path):
        """Cross-device move: copy, verify, rename into place, delete source."""
        fd, temp_name = tempfile.mkstemp(
            prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=str(destination.parent)
        )
        os.close(fd)
        temp_path = Path(temp_name)

        try:
            source_size = os.stat(source).st_size
            shutil.copyfile(source, temp_path)
            shutil.copystat(source, temp_path)

            copied_size = os.stat(temp_path).st_size
            if copied_size != source_size:
                raise RelocationError(
                    f"Copy of {source} is {copied_size} bytes, expected {source_size}",
                    ErrorKind.VERIFICATION_FAILED,
                )

            if self.verify_checksum and get_file_hash(str(source)) != get_file_hash(
                str(temp_path)
            ):
                raise RelocationError(
                    f"Checksum mismatch copying {source}", ErrorKind.VERIFICATION_FAILED
                )

            self._ensure_free(destination)
            os.replace(temp_path, destination)
        except BaseException:
            self._discard(temp_path)
            raise

        try:
            os.remove(source)
        except OSError as e:
            raise RelocationError(
                f"Copied to {destination} but could not remove source: {e}",
                categorize_error(e),
                partially_moved=True,
            ) from e

    def _discard(self, temp_path: Path):
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temporary file {temp_path}: {e}")
