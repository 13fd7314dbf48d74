"""
Unit tests for error categorization and bookkeeping.
"""

import errno
import json
import shutil
import tempfile
from pathlib import Path

import pytest

from file_sorter.utils.error_handler import (
    ConflictResolutionExhausted,
    ErrorHandler,
    ErrorKind,
    ErrorSeverity,
    RelocationError,
    TemplateError,
    ValidationError,
    categorize_error,
)


class TestCategorizeError:
    """Test mapping exceptions to error kinds."""

    @pytest.mark.parametrize(
        "error, kind",
        [
            (PermissionError(errno.EACCES, "denied"), ErrorKind.PERMISSION_DENIED),
            (OSError(errno.EROFS, "read-only"), ErrorKind.PERMISSION_DENIED),
            (OSError(errno.ENOSPC, "full"), ErrorKind.DISK_FULL),
            (FileNotFoundError(errno.ENOENT, "missing"), ErrorKind.SOURCE_MISSING),
            (FileExistsError(errno.EEXIST, "exists"), ErrorKind.DESTINATION_EXISTS),
            (OSError(errno.EIO, "io"), ErrorKind.IO_ERROR),
            (ConflictResolutionExhausted("none left"), ErrorKind.CONFLICT_EXHAUSTED),
            (RelocationError("short", ErrorKind.VERIFICATION_FAILED), ErrorKind.VERIFICATION_FAILED),
            (RuntimeError("odd"), ErrorKind.UNKNOWN),
        ],
    )
    def test_categorize(self, error, kind):
        assert categorize_error(error) == kind


class TestExceptions:
    """Test the exception hierarchy."""

    def test_validation_error_carries_errors(self):
        error = ValidationError("bad", ["one", "two"])
        assert error.errors == ["one", "two"]
        assert str(error) == "bad"

    def test_validation_error_defaults_to_message(self):
        assert ValidationError("bad").errors == ["bad"]

    def test_template_error_is_validation_error(self):
        assert issubclass(TemplateError, ValidationError)

    def test_relocation_error_defaults(self):
        error = RelocationError("failed")
        assert error.kind == ErrorKind.IO_ERROR
        assert not error.partially_moved


class TestErrorHandler:
    """Test ErrorHandler functionality."""

    def setup_method(self):
        """Set up test environment."""
        self.handler = ErrorHandler()
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir)

    def test_handle_error(self):
        record = self.handler.handle_error(OSError(errno.ENOSPC, "full"), "/in/a.pdf")

        assert record.kind == ErrorKind.DISK_FULL
        assert record.severity == ErrorSeverity.CRITICAL
        assert record.context == "/in/a.pdf"
        assert len(self.handler.error_history) == 1

    def test_severity(self):
        missing = self.handler.handle_error(FileNotFoundError("gone"), "a")
        denied = self.handler.handle_error(PermissionError("no"), "b")
        io = self.handler.handle_error(OSError(errno.EIO, "io"), "c")

        assert missing.severity == ErrorSeverity.LOW
        assert denied.severity == ErrorSeverity.MEDIUM
        assert io.severity == ErrorSeverity.HIGH

    def test_error_statistics(self):
        self.handler.handle_error(PermissionError("no"), "a")
        self.handler.handle_error(PermissionError("no"), "b")
        self.handler.handle_error(RelocationError("short", ErrorKind.VERIFICATION_FAILED), "c")

        stats = self.handler.get_error_statistics()

        assert stats["total_errors"] == 3
        assert stats["error_counts_by_kind"] == {
            "permission_denied": 2,
            "verification_failed": 1,
        }
        assert len(stats["recent_errors"]) == 3

    def test_record_to_dict(self):
        record = self.handler.handle_error(FileNotFoundError("gone"), "a.pdf")
        data = record.to_dict()

        assert data["error"] == "gone"
        assert data["kind"] == "source_missing"
        assert data["severity"] == "low"
        assert "timestamp" in data

    def test_save_error_report(self):
        self.handler.handle_error(PermissionError("no"), "a.pdf")
        report_path = Path(self.temp_dir) / "errors.json"

        self.handler.save_error_report(report_path)

        report = json.loads(report_path.read_text())
        assert report["statistics"]["total_errors"] == 1
        assert report["error_history"][0]["context"] == "a.pdf"
