"""
Predicates: single matchable conditions evaluated against a file snapshot.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from file_sorter.file_access.local_accessor import FileMetadata


@dataclass(frozen=True)
class ExtensionEquals:
    """File extension equals the given one (case-insensitive)."""

    extension: str

    kind = "extension"

    @property
    def normalized(self) -> str:
        return self.extension.strip().lstrip(".").lower()

    def matches(self, file: FileMetadata) -> bool:
        return file.extension == self.normalized

    def validate(self) -> List[str]:
        if not self.normalized:
            return ["extension predicate needs a non-empty extension"]
        return []

    def to_dict(self) -> Dict[str, Any]:
        return {self.kind: self.normalized}


@dataclass(frozen=True)
class ModifiedDateInRange:
    """Modification date lies within [start, end]; either bound may be open."""

    start: Optional[date] = None
    end: Optional[date] = None

    kind = "modified"

    def matches(self, file: FileMetadata) -> bool:
        modified = file.modified.date()
        if self.start is not None and modified < _as_date(self.start):
            return False
        if self.end is not None and modified > _as_date(self.end):
            return False
        return True

    def validate(self) -> List[str]:
        if self.start is not None and self.end is not None:
            if _as_date(self.start) > _as_date(self.end):
                return [f"date range starts after it ends ({self.start} > {self.end})"]
        return []

    def to_dict(self) -> Dict[str, Any]:
        bounds = {}
        if self.start is not None:
            bounds["after"] = _as_date(self.start).isoformat()
        if self.end is not None:
            bounds["before"] = _as_date(self.end).isoformat()
        return {self.kind: bounds}


@dataclass(frozen=True)
class NameContains:
    """File name contains the substring (case-insensitive)."""

    substring: str

    kind = "name_contains"

    def matches(self, file: FileMetadata) -> bool:
        return self.substring.casefold() in file.name.casefold()

    def validate(self) -> List[str]:
        if not self.substring:
            return ["name_contains predicate needs a non-empty substring"]
        return []

    def to_dict(self) -> Dict[str, Any]:
        return {self.kind: self.substring}


Predicate = Union[ExtensionEquals, ModifiedDateInRange, NameContains]

PREDICATE_TYPES = (ExtensionEquals, ModifiedDateInRange, NameContains)


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_date(value: Any) -> Optional[date]:
    """Parse a date bound from config data (ISO string, date or None)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        return datetime.fromisoformat(str(value)).date()


def predicate_from_dict(data: Dict[str, Any]) -> Predicate:
    """Build a predicate from its single-key dictionary form.

    Examples:
        {"extension": "pdf"}
        {"modified": {"after": "2024-01-01", "before": "2024-12-31"}}
        {"name_contains": "invoice"}

    Raises:
        ValueError: If the dictionary does not describe a known predicate
    """
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"Predicate must be a single-key mapping, got: {data!r}")

    kind, value = next(iter(data.items()))

    if kind == ExtensionEquals.kind:
        return ExtensionEquals(str(value))

    if kind == NameContains.kind:
        return NameContains(str(value))

    if kind == ModifiedDateInRange.kind:
        if not isinstance(value, dict):
            raise ValueError("modified predicate needs 'after' and/or 'before'")
        unknown = set(value) - {"after", "before"}
        if unknown:
            raise ValueError(f"Unknown modified bounds: {sorted(unknown)}")
        return ModifiedDateInRange(
            start=parse_date(value.get("after")), end=parse_date(value.get("before"))
        )

    raise ValueError(f"Unknown predicate type: {kind}")
