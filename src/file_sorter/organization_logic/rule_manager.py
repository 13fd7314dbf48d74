"""
Rule management: parsing, validation and persistence of rule sets.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from file_sorter.file_access.local_accessor import FileMetadata
from file_sorter.utils.error_handler import TemplateError, ValidationError
from file_sorter.utils.file_utils import is_within_directory
from .name_template import TRANSFORMS, NameTemplate, has_placeholders, parse_target, parse_template
from .predicates import PREDICATE_TYPES, predicate_from_dict
from .rules import Rule, RuleSet, UnmatchedPolicy

logger = logging.getLogger(__name__)

RULE_KEYS = {
    "name",
    "when",
    "target",
    "template",
    "custom_text",
    "include_extension",
    "transforms",
    "description",
}


@dataclass
class ValidationResult:
    """Problems found in a rule set. Errors block a run, warnings do not."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_if_invalid(self):
        if self.errors:
            raise ValidationError(
                f"Rule set validation failed: {'; '.join(self.errors)}", self.errors
            )


def rule_from_dict(data: Dict[str, Any], index: int = 0) -> Rule:
    """Build a Rule from its dictionary form.

    Raises:
        ValidationError: If the dictionary is malformed
    """
    label = f"Rule {index}"
    if not isinstance(data, dict):
        raise ValidationError(f"{label} must be a mapping")

    errors = []
    name = data.get("name")
    if not name:
        errors.append(f"{label} must have a 'name' field")
    else:
        label = f"Rule {index} ('{name}')"

    unknown = set(data) - RULE_KEYS
    if unknown:
        errors.append(f"{label} has unknown fields: {sorted(unknown)}")

    if "target" not in data or not data["target"]:
        errors.append(f"{label} must have a 'target' directory")
    else:
        try:
            parse_target(str(data["target"]))
        except TemplateError as e:
            errors.append(f"{label}: {e}")

    predicates = []
    conditions = data.get("when") or []
    if not isinstance(conditions, list):
        errors.append(f"{label} 'when' must be a list of conditions")
        conditions = []
    for condition in conditions:
        try:
            predicates.append(predicate_from_dict(condition))
        except ValueError as e:
            errors.append(f"{label}: {e}")

    transforms = data.get("transforms") or []
    if isinstance(transforms, str):
        transforms = [transforms]
    for transform in transforms:
        if transform not in TRANSFORMS:
            errors.append(f"{label}: unknown name transform '{transform}'")

    template = NameTemplate.original_name()
    try:
        template = parse_template(
            data.get("template", "{stem}"),
            custom_text=data.get("custom_text"),
            include_extension=bool(data.get("include_extension", True)),
            transforms=tuple(transforms),
        )
    except TemplateError as e:
        errors.append(f"{label}: {e}")

    if errors:
        raise ValidationError("; ".join(errors), errors)

    return Rule(
        name=str(name),
        predicates=tuple(predicates),
        target_directory=str(data["target"]),
        template=template,
        description=data.get("description", ""),
    )


def rule_set_from_dict(data: Dict[str, Any]) -> RuleSet:
    """Build a RuleSet from its dictionary form.

    Raises:
        ValidationError: Listing every malformed rule
    """
    if not isinstance(data, dict):
        raise ValidationError("Rule set must be a mapping with a 'rules' list")

    rules = []
    errors = []
    for index, rule_data in enumerate(data.get("rules") or []):
        try:
            rules.append(rule_from_dict(rule_data, index))
        except ValidationError as e:
            errors.extend(e.errors)

    unmatched = data.get("unmatched") or {}
    if isinstance(unmatched, str):
        unmatched = {"policy": unmatched}

    policy = UnmatchedPolicy.SKIP
    try:
        policy = UnmatchedPolicy(unmatched.get("policy", "skip"))
    except ValueError:
        errors.append(f"Unknown unmatched policy: {unmatched.get('policy')}")

    if errors:
        raise ValidationError(f"Invalid rule set: {'; '.join(errors)}", errors)

    return RuleSet(
        rules=tuple(rules),
        unmatched_policy=policy,
        catch_all_directory=unmatched.get("directory"),
    )


def _sample_files(root: Path) -> List[FileMetadata]:
    """Stand-in snapshots used to render targets that contain placeholders."""
    moment = datetime(2000, 1, 2, 3, 4, 5)
    return [
        FileMetadata(root / name, stem, ext.lower(), ext, moment, moment, moment, 0)
        for name, stem, ext in (("sample.ext", "sample", "ext"), ("sample", "sample", ""))
    ]


def _target_problems(rule: Rule, root: Path) -> List[str]:
    text = str(rule.target_directory)
    if not has_placeholders(text):
        if is_within_directory(rule.resolve_target(root), root):
            return []
        return [f"target {text} is outside the organization root {root}"]

    try:
        parse_target(text)
    except TemplateError as e:
        return [str(e)]

    for sample in _sample_files(root):
        if not is_within_directory(rule.resolve_target(root, sample), root):
            return [f"target {text} renders outside the organization root {root}"]
    return []


def validate_rule_set(rule_set: RuleSet, root: Union[str, Path]) -> ValidationResult:
    """Check a rule set against the organization root.

    Args:
        rule_set: Rule set to validate
        root: Organization root every target must stay inside

    Returns:
        ValidationResult with errors and warnings
    """
    result = ValidationResult()
    root_path = Path(root)

    if not root_path.is_dir():
        result.errors.append(f"Organization root is not a directory: {root_path}")

    if not rule_set.rules:
        result.warnings.append("Rule set has no rules")

    seen_conditions: Dict[Any, str] = {}
    seen_names = set()

    for index, rule in enumerate(rule_set.rules):
        label = f"Rule {index} ('{rule.name}')"

        if rule.name in seen_names:
            result.warnings.append(f"{label} reuses the name of an earlier rule")
        seen_names.add(rule.name)

        if not str(rule.target_directory).strip():
            result.errors.append(f"{label} has an empty target directory")
        else:
            for problem in _target_problems(rule, root_path):
                result.errors.append(f"{label}: {problem}")

        if not isinstance(rule.template, NameTemplate):
            result.errors.append(f"{label} has no valid name template")
        else:
            for problem in rule.template.validate():
                result.errors.append(f"{label}: {problem}")

        for predicate in rule.predicates:
            if not isinstance(predicate, PREDICATE_TYPES):
                result.errors.append(f"{label}: unknown predicate {predicate!r}")
                continue
            for problem in predicate.validate():
                result.errors.append(f"{label}: {problem}")

        if not rule.predicates and index < len(rule_set.rules) - 1:
            result.warnings.append(
                f"{label} has no conditions and shadows every rule after it"
            )

        conditions = frozenset(rule.predicates)
        if conditions in seen_conditions:
            result.warnings.append(
                f"{label} has the same conditions as '{seen_conditions[conditions]}' "
                f"and will never match"
            )
        else:
            seen_conditions[conditions] = rule.name

    if rule_set.unmatched_policy == UnmatchedPolicy.MOVE:
        catch_all = rule_set.resolve_catch_all(root_path)
        if catch_all is None:
            result.errors.append("Unmatched policy 'move' needs a catch-all directory")
        elif not is_within_directory(catch_all, root_path):
            result.errors.append(
                f"Catch-all directory {rule_set.catch_all_directory} is outside the organization root"
            )

    for warning in result.warnings:
        logger.warning(warning)

    return result


class RuleManager:
    """Load and save rule sets as JSON or YAML files."""

    def __init__(self, rules_directory: Optional[str] = None):
        """Initialize rule manager.

        Args:
            rules_directory: Directory to store named rule sets
        """
        if rules_directory:
            self.rules_dir = Path(rules_directory)
            self.rules_dir.mkdir(parents=True, exist_ok=True)
        else:
            self.rules_dir = None

    def load(self, path: Union[str, Path]) -> RuleSet:
        """Load a rule set from a .json, .yaml or .yml file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValidationError: If the content is malformed
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Rules file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            if path.suffix == ".json":
                data = json.load(f)
            elif path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                raise ValidationError(f"Unsupported rules file format: {path}")

        rule_set = rule_set_from_dict(data or {})
        logger.info(f"Loaded {len(rule_set)} rules from {path}")
        return rule_set

    def save(self, rule_set: RuleSet, path: Union[str, Path]):
        """Save a rule set; the format follows the file extension."""
        path = Path(path)
        data = rule_set.to_dict()

        with open(path, "w", encoding="utf-8") as f:
            if path.suffix == ".json":
                json.dump(data, f, indent=2)
            elif path.suffix in (".yaml", ".yml"):
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            else:
                raise ValueError(f"Unsupported rules file format: {path}")

        logger.info(f"Saved {len(rule_set)} rules to {path}")

    def save_rule_set(self, rule_set: RuleSet, name: str) -> Path:
        """Save a named rule set into the rules directory."""
        if not self.rules_dir:
            raise ValueError("No rules directory configured")

        file_path = self.rules_dir / f"{name}.yaml"
        self.save(rule_set, file_path)
        return file_path

    def load_rule_set(self, name: str) -> RuleSet:
        """Load a named rule set from the rules directory."""
        if not self.rules_dir:
            raise ValueError("No rules directory configured")

        for suffix in (".yaml", ".yml", ".json"):
            file_path = self.rules_dir / f"{name}{suffix}"
            if file_path.exists():
                return self.load(file_path)

        raise FileNotFoundError(f"Rule set not found: {name}")

    def list_rule_sets(self) -> List[str]:
        """List available rule set names."""
        if not self.rules_dir:
            return []

        names = {
            f.stem
            for f in self.rules_dir.iterdir()
            if f.suffix in (".yaml", ".yml", ".json")
        }
        return sorted(names)

    def generate_example_rules(self) -> RuleSet:
        """Generate a small example rule set."""
        return rule_set_from_dict(
            {
                "rules": [
                    {
                        "name": "Invoices",
                        "when": [{"extension": "pdf"}, {"name_contains": "invoice"}],
                        "target": "Finance/Invoices",
                        "template": "{modified:YYYY-MM-DD}_{stem}",
                        "description": "PDF invoices, prefixed with their date",
                    },
                    {
                        "name": "Documents",
                        "when": [{"extension": "pdf"}],
                        "target": "Documents",
                        "template": "{created:YYYYMMDD}_{dir}_{stem}",
                    },
                    {
                        "name": "Photos",
                        "when": [{"extension": "jpg"}],
                        "target": "Photos",
                        "template": "{created:YYYYMMDD}_{dir}_{stem}",
                        "transforms": ["lowercase", "underscores"],
                    },
                ],
                "unmatched": {"policy": "move", "directory": "Unsorted"},
            }
        )
