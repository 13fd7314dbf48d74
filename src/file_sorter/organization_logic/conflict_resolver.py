"""
Collision-free destination paths for a single organization run.
"""

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Union

from file_sorter.utils.error_handler import ConflictResolutionExhausted

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 100000


@dataclass
class ConflictResolution:
    """A proposed path that had to be suffixed."""

    proposed_path: Path
    final_path: Path
    counter: int


def _extension_suffix(name: str, extension: Optional[str]) -> str:
    """The part of name that is the file's extension, dot included."""
    if extension is None:
        return Path(name).suffix
    if not extension:
        return ""
    suffix = f".{extension}"
    if len(name) > len(suffix) and name.lower().endswith(suffix.lower()):
        return name[-len(suffix):]
    return ""


def suffixed_path(path: Path, counter: int, extension: Optional[str] = None) -> Path:
    """Insert ``_NN`` (at least two digits) before the extension.

    Args:
        path: Proposed destination
        counter: Conflict counter
        extension: The file's own extension without the dot. When given,
            only a trailing ``.extension`` counts as the extension and any
            other dot is part of the name; when None the last suffix is used.
    """
    name = path.name
    suffix = _extension_suffix(name, extension)
    stem = name[: -len(suffix)] if suffix else name
    return path.with_name(f"{stem}_{counter:02d}{suffix}")


class ConflictResolver:
    """Pick destination paths that neither exist nor were claimed this run.

    The claimed set is the only shared mutable state of a run. Checking a
    candidate and claiming it happen under one lock, so two files can never
    be handed the same path even when neither exists on disk yet.
    """

    def __init__(
        self,
        exists: Callable[[Path], bool] = os.path.lexists,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        """Initialize conflict resolver.

        Args:
            exists: Predicate telling whether a path is occupied on disk
            max_attempts: Highest counter tried before giving up
        """
        self._exists = exists
        self.max_attempts = max_attempts
        self._claimed: Set[str] = set()
        self._lock = threading.Lock()
        self.resolution_history: List[ConflictResolution] = []

    @staticmethod
    def _key(path: Path) -> str:
        return os.path.normcase(os.path.abspath(str(path)))

    def _is_free(self, path: Path) -> bool:
        return self._key(path) not in self._claimed and not self._exists(path)

    def resolve(
        self, proposed_path: Union[str, Path], extension: Optional[str] = None
    ) -> Path:
        """Return proposed_path, or the lowest free suffixed variant of it.

        Args:
            proposed_path: Rendered destination
            extension: The file's extension, so the counter lands before it
                and never inside a dotted name

        Raises:
            ConflictResolutionExhausted: If every counter up to max_attempts
                is taken
        """
        proposed = Path(proposed_path)

        with self._lock:
            if self._is_free(proposed):
                self._claimed.add(self._key(proposed))
                return proposed

            for counter in range(1, self.max_attempts + 1):
                candidate = suffixed_path(proposed, counter, extension)
                if self._is_free(candidate):
                    self._claimed.add(self._key(candidate))
                    self.resolution_history.append(
                        ConflictResolution(proposed, candidate, counter)
                    )
                    logger.info(f"Resolved conflict: {proposed} -> {candidate}")
                    return candidate

        raise ConflictResolutionExhausted(
            f"No free name for {proposed} after {self.max_attempts} attempts"
        )

    def is_claimed(self, path: Union[str, Path]) -> bool:
        with self._lock:
            return self._key(Path(path)) in self._claimed

    def reset(self):
        """Forget all claims; called at the start of every run."""
        with self._lock:
            self._claimed.clear()
            self.resolution_history = []

    def get_resolution_stats(self) -> Dict[str, Any]:
        """Get statistics about conflict resolutions.

        Returns:
            Dictionary with resolution statistics
        """
        with self._lock:
            return {
                "claimed_paths": len(self._claimed),
                "total_resolutions": len(self.resolution_history),
                "highest_counter": max(
                    (r.counter for r in self.resolution_history), default=0
                ),
            }
