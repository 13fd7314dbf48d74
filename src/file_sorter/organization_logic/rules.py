"""
Rules and rule sets.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from file_sorter.file_access.local_accessor import FileMetadata
from .name_template import CustomText, NameTemplate, render_target
from .predicates import Predicate


class UnmatchedPolicy(Enum):
    """What happens to files no rule matches."""

    SKIP = "skip"
    MOVE = "move"


@dataclass(frozen=True)
class Rule:
    """Predicates (all must hold), a target directory and a name template."""

    name: str
    predicates: Tuple[Predicate, ...]
    target_directory: Union[str, Path]
    template: NameTemplate = field(default_factory=NameTemplate.original_name)
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "predicates", tuple(self.predicates))

    def matches(self, file: FileMetadata) -> bool:
        """Check if every predicate holds for the file."""
        return all(predicate.matches(file) for predicate in self.predicates)

    def resolve_target(
        self, root: Union[str, Path], file: Optional[FileMetadata] = None
    ) -> Path:
        """Absolute target directory, relative targets taken from root.

        Placeholders such as ``{ext}`` or ``{modified:YYYY}`` are rendered
        for file; without a file they are left as written.
        """
        text = str(self.target_directory)
        if file is not None:
            text = render_target(text, file)
        target = Path(text).expanduser()
        if not target.is_absolute():
            target = Path(root) / target
        return target

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "when": [predicate.to_dict() for predicate in self.predicates],
            "target": str(self.target_directory),
            "template": self.template.to_text(),
        }
        custom = [c.text for c in self.template.components if isinstance(c, CustomText)]
        if custom:
            data["custom_text"] = custom[0]
        if not self.template.include_extension:
            data["include_extension"] = False
        if self.template.transforms:
            data["transforms"] = list(self.template.transforms)
        if self.description:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class RuleSet:
    """Ordered rules (first match wins) plus the unmatched-file policy."""

    rules: Tuple[Rule, ...] = ()
    unmatched_policy: UnmatchedPolicy = UnmatchedPolicy.SKIP
    catch_all_directory: Optional[Union[str, Path]] = None

    def __post_init__(self):
        object.__setattr__(self, "rules", tuple(self.rules))

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)

    def __getitem__(self, index: int) -> Rule:
        return self.rules[index]

    def resolve_catch_all(self, root: Union[str, Path]) -> Optional[Path]:
        if self.catch_all_directory is None:
            return None
        target = Path(self.catch_all_directory).expanduser()
        if not target.is_absolute():
            target = Path(root) / target
        return target

    def rule_names(self) -> List[str]:
        return [rule.name for rule in self.rules]

    def to_dict(self) -> Dict[str, Any]:
        unmatched: Dict[str, Any] = {"policy": self.unmatched_policy.value}
        if self.catch_all_directory is not None:
            unmatched["directory"] = str(self.catch_all_directory)
        return {
            "rules": [rule.to_dict() for rule in self.rules],
            "unmatched": unmatched,
        }
