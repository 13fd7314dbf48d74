"""
First-match-wins classification of a file against a rule set.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from file_sorter.file_access.local_accessor import FileMetadata
from .rules import Rule, RuleSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleMatch:
    """Index of the winning rule, or None when no rule matched."""

    rule_index: Optional[int] = None

    @classmethod
    def matched(cls, rule_index: int) -> "RuleMatch":
        return cls(rule_index=rule_index)

    @classmethod
    def unmatched(cls) -> "RuleMatch":
        return cls(rule_index=None)

    @property
    def is_matched(self) -> bool:
        return self.rule_index is not None

    def rule(self, rule_set: RuleSet) -> Optional[Rule]:
        if self.rule_index is None:
            return None
        return rule_set[self.rule_index]

    def __repr__(self):
        if self.rule_index is None:
            return "Unmatched"
        return f"Matched({self.rule_index})"


def classify(file: FileMetadata, rule_set: RuleSet) -> RuleMatch:
    """Return the lowest-index rule whose predicates all hold.

    A rule with no predicates matches every file, so placed last it acts as
    a catch-all; placed earlier it shadows everything after it.
    """
    for index, rule in enumerate(rule_set.rules):
        if rule.matches(file):
            logger.debug(f"Rule '{rule.name}' matched {file.path}")
            return RuleMatch.matched(index)

    logger.debug(f"No rule matched {file.path}")
    return RuleMatch.unmatched()
