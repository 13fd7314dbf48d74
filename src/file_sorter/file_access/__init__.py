"""
File access module: metadata snapshots, candidate enumeration and relocation.
"""

from .local_accessor import FileMetadata, collect_candidates
from .relocator import (
    OutcomeStatus,
    RelocationExecutor,
    RelocationOutcome,
    SkipReason,
    summarize_outcomes,
)

__all__ = [
    "FileMetadata",
    "collect_candidates",
    "OutcomeStatus",
    "RelocationExecutor",
    "RelocationOutcome",
    "SkipReason",
    "summarize_outcomes",
]
