"""
Organization logic module for file sorting.
"""

from .classifier import RuleMatch, classify
from .conflict_resolver import ConflictResolution, ConflictResolver
from .engine import OrganizationEngine, PlanEntry, execute, plan, validate
from .name_template import NameTemplate, parse_template, render
from .predicates import ExtensionEquals, ModifiedDateInRange, NameContains
from .rule_manager import RuleManager, ValidationResult
from .rules import Rule, RuleSet, UnmatchedPolicy

__all__ = [
    "OrganizationEngine",
    "PlanEntry",
    "validate",
    "plan",
    "execute",
    "ValidationResult",
    "RuleManager",
    "Rule",
    "RuleSet",
    "UnmatchedPolicy",
    "ExtensionEquals",
    "ModifiedDateInRange",
    "NameContains",
    "NameTemplate",
    "parse_template",
    "render",
    "RuleMatch",
    "classify",
    "ConflictResolver",
    "ConflictResolution",
]
