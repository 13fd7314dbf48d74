"""
Main application controller for file sorter.
Wires configuration, logging, rule loading and the organization engine together.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from file_sorter.file_access.local_accessor import collect_candidates
from file_sorter.file_access.relocator import RelocationOutcome, summarize_outcomes
from file_sorter.organization_logic.engine import OrganizationEngine, PlanEntry
from file_sorter.organization_logic.rule_manager import RuleManager, ValidationResult
from file_sorter.organization_logic.rules import RuleSet
from file_sorter.utils.cancellation import CancellationToken
from file_sorter.utils.config_manager import ConfigManager
from file_sorter.utils.error_handler import ErrorHandler
from file_sorter.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


class FileSorterApp:
    """Application controller used by the command line interface."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Mapping[str, Any]] = None,
    ):
        """Initialize the application.

        Args:
            config_file: Path to configuration file
            cli_overrides: Command line values that win over the configuration
        """
        self.config_file = config_file
        self.cli_overrides = dict(cli_overrides or {})
        self.config_manager: Optional[ConfigManager] = None
        self.rule_manager = RuleManager()
        self.error_handler = ErrorHandler()
        self.engine: Optional[OrganizationEngine] = None
        self._is_initialized = False

    def initialize(self):
        """Load configuration, set up logging and build the engine."""
        if self._is_initialized:
            return

        self.config_manager = ConfigManager(
            config_file=Path(self.config_file) if self.config_file else None,
            cli_overrides=self.cli_overrides,
        )
        self._setup_logging()

        self.engine = OrganizationEngine(
            root=self.config_manager.get("organization.root"),
            max_workers=self.config_manager.get("organization.max_workers", 4),
            verify_checksum=self.config_manager.get("organization.verify_checksum", False),
            error_handler=self.error_handler,
        )

        self._is_initialized = True
        logger.debug(f"Application initialized with root {self.engine.root}")

    def _setup_logging(self):
        """Configure logging based on application settings."""
        setup_logging(
            log_level=self.config_manager.get("logging.level"),
            log_file=self.config_manager.get("logging.file"),
            log_format=self.config_manager.get("logging.format"),
        )

    def load_rules(self, rules_file: Optional[Union[str, Path]] = None) -> RuleSet:
        """Load the rule set from rules_file or the configured rules file."""
        self.initialize()
        path = rules_file or self.config_manager.get("organization.rules_file")
        return self.rule_manager.load(path)

    def collect(self, paths: Iterable[Union[str, Path]]) -> List[Path]:
        """Enumerate candidate files under the given paths."""
        self.initialize()
        return collect_candidates(
            paths, recursive=self.config_manager.get("organization.recursive", True)
        )

    def validate(self, rule_set: RuleSet) -> ValidationResult:
        self.initialize()
        return self.engine.validate(rule_set)

    def plan(
        self,
        rule_set: RuleSet,
        candidates: Iterable[Path],
        exclude: Optional[Iterable[Union[str, Path]]] = None,
    ) -> List[PlanEntry]:
        self.initialize()
        return self.engine.plan(rule_set, candidates, exclude=exclude)

    def execute(
        self,
        rule_set: RuleSet,
        candidates: Iterable[Path],
        cancellation_token: Optional[CancellationToken] = None,
        exclude: Optional[Iterable[Union[str, Path]]] = None,
    ) -> Iterator[RelocationOutcome]:
        self.initialize()
        return self.engine.execute(
            rule_set, candidates, cancellation_token=cancellation_token, exclude=exclude
        )

    def summarize(self, outcomes: Iterable[RelocationOutcome]) -> Dict[str, Any]:
        """Summarize a finished run, including the error statistics."""
        summary = summarize_outcomes(outcomes)
        summary["error_statistics"] = self.error_handler.get_error_statistics()
        return summary
