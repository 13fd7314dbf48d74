"""
Error taxonomy and per-file error bookkeeping for the file sorter.
Categorizes filesystem failures so that each one can be reported against the
single file it affected instead of aborting the whole run.
"""

import errno
import json
import logging
import traceback
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class FileSorterError(Exception):
    """Base exception for the file sorter."""


class ValidationError(FileSorterError):
    """Raised when a rule set cannot be used for a run."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class TemplateError(ValidationError):
    """Raised for malformed name templates."""


class ConflictResolutionExhausted(FileSorterError):
    """Raised when no free conflict suffix could be found."""


class ErrorKind(Enum):
    """Kinds of per-file relocation failures."""

    PERMISSION_DENIED = "permission_denied"
    DISK_FULL = "disk_full"
    SOURCE_MISSING = "source_missing"
    DESTINATION_EXISTS = "destination_exists"
    VERIFICATION_FAILED = "verification_failed"
    CONFLICT_EXHAUSTED = "conflict_exhausted"
    IO_ERROR = "io_error"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RelocationError(FileSorterError):
    """A relocation step failed for one file."""

    def __init__(
        self, message: str, kind: ErrorKind = ErrorKind.IO_ERROR, partially_moved: bool = False
    ):
        super().__init__(message)
        self.kind = kind
        self.partially_moved = partially_moved


def categorize_error(error: BaseException) -> ErrorKind:
    """Map an exception to the ErrorKind reported in outcomes."""
    if isinstance(error, RelocationError):
        return error.kind
    if isinstance(error, ConflictResolutionExhausted):
        return ErrorKind.CONFLICT_EXHAUSTED
    if isinstance(error, FileNotFoundError):
        return ErrorKind.SOURCE_MISSING
    if isinstance(error, FileExistsError):
        return ErrorKind.DESTINATION_EXISTS
    if isinstance(error, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(error, OSError):
        if error.errno in (errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)):
            return ErrorKind.DISK_FULL
        if error.errno in (errno.EACCES, errno.EPERM, errno.EROFS):
            return ErrorKind.PERMISSION_DENIED
        if error.errno == errno.ENOENT:
            return ErrorKind.SOURCE_MISSING
        if error.errno == errno.EEXIST:
            return ErrorKind.DESTINATION_EXISTS
        return ErrorKind.IO_ERROR
    return ErrorKind.UNKNOWN


class ErrorRecord:
    """Record of an error occurrence."""

    def __init__(
        self,
        error: BaseException,
        context: str,
        kind: ErrorKind,
        severity: ErrorSeverity,
    ):
        self.error = error
        self.context = context
        self.kind = kind
        self.severity = severity
        self.timestamp = datetime.now()
        self.traceback = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "error": str(self.error),
            "context": self.context,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback,
        }


class ErrorHandler:
    """Collect per-file failures of a run."""

    def __init__(self):
        self.logger = logging.getLogger("file_sorter.errors")
        self.error_history: List[ErrorRecord] = []
        self.error_counts: Dict[ErrorKind, int] = {kind: 0 for kind in ErrorKind}

    def handle_error(self, error: BaseException, context: str) -> ErrorRecord:
        """Categorize, record and log an error.

        Args:
            error: The exception to handle
            context: Context describing where the error occurred

        Returns:
            The ErrorRecord that was stored
        """
        kind = categorize_error(error)
        severity = self._determine_severity(kind)

        record = ErrorRecord(error, context, kind, severity)
        self.error_history.append(record)
        self.error_counts[kind] += 1

        self.logger.error(
            f"Error in {context}: {error}",
            extra={"error_kind": kind.value, "severity": severity.value},
        )
        return record

    def _determine_severity(self, kind: ErrorKind) -> ErrorSeverity:
        """Determine error severity from its kind."""
        if kind in (ErrorKind.SOURCE_MISSING, ErrorKind.DESTINATION_EXISTS):
            return ErrorSeverity.LOW
        if kind in (ErrorKind.PERMISSION_DENIED, ErrorKind.CONFLICT_EXHAUSTED):
            return ErrorSeverity.MEDIUM
        if kind == ErrorKind.DISK_FULL:
            return ErrorSeverity.CRITICAL
        return ErrorSeverity.HIGH

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get statistics about errors encountered."""
        return {
            "total_errors": len(self.error_history),
            "error_counts_by_kind": {
                kind.value: count for kind, count in self.error_counts.items() if count
            },
            "recent_errors": [record.to_dict() for record in self.error_history[-10:]],
        }

    def save_error_report(self, filepath: Path):
        """Save a detailed error report to file."""
        report = {
            "generated_at": datetime.now().isoformat(),
            "statistics": self.get_error_statistics(),
            "error_history": [record.to_dict() for record in self.error_history],
        }

        with open(filepath, "w") as f:
            json.dump(report, f, indent=2)

        self.logger.info(f"Error report saved to {filepath}")
