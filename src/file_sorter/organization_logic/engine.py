"""
Organization engine: validate a rule set, plan a run, execute a run.
"""

import logging
import os
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional, Set, Union

from file_sorter.file_access.local_accessor import FileMetadata
from file_sorter.file_access.relocator import (
    RelocationExecutor,
    RelocationOutcome,
    SkipReason,
)
from file_sorter.utils.cancellation import CancellationToken
from file_sorter.utils.error_handler import (
    ConflictResolutionExhausted,
    ErrorHandler,
    RelocationError,
    categorize_error,
)
from .classifier import RuleMatch, classify
from .conflict_resolver import ConflictResolver
from .name_template import render
from .rule_manager import ValidationResult, validate_rule_set
from .rules import Rule, RuleSet, UnmatchedPolicy

logger = logging.getLogger(__name__)

Candidate = Union[str, Path, FileMetadata]


class PlanEntry(NamedTuple):
    """Where a file would go, without touching the filesystem."""

    source_path: Path
    planned_destination: Optional[Path]
    match: RuleMatch


@dataclass
class _PreparedFile:
    """A candidate after snapshot, classification and rendering."""

    source: Path
    match: RuleMatch
    rule: Optional[Rule] = None
    proposed: Optional[Path] = None
    extension: str = ""
    destination: Optional[Path] = None
    outcome: Optional[RelocationOutcome] = None
    error: Optional[BaseException] = None


def _path_key(path: Union[str, Path]) -> str:
    return os.path.normcase(os.path.abspath(str(path)))


class OrganizationEngine:
    """Apply a rule set to candidate files under an organization root."""

    def __init__(
        self,
        root: Union[str, Path],
        max_workers: int = 4,
        verify_checksum: bool = False,
        error_handler: Optional[ErrorHandler] = None,
    ):
        """Initialize organization engine.

        Args:
            root: Organization root; every target directory must lie inside it
            max_workers: Worker threads for per-file work
            verify_checksum: Compare checksums of cross-device copies
            error_handler: Collector for per-file failures
        """
        self.root = Path(root).expanduser().absolute()
        self.max_workers = max(1, max_workers)
        self.verify_checksum = verify_checksum
        self.error_handler = error_handler or ErrorHandler()

    def validate(self, rule_set: RuleSet) -> ValidationResult:
        """Check a rule set without touching any file."""
        return validate_rule_set(rule_set, self.root)

    def plan(
        self,
        rule_set: RuleSet,
        candidates: Iterable[Candidate],
        exclude: Optional[Iterable[Union[str, Path]]] = None,
    ) -> List[PlanEntry]:
        """Dry run: compute every destination without moving anything.

        Args:
            rule_set: Validated rule set
            candidates: Files to organize, as paths or snapshots
            exclude: Paths the user excluded from this run

        Returns:
            One PlanEntry per candidate, in candidate order. The destination
            is None for files that would be skipped or could not be read.
        """
        self.validate(rule_set).raise_if_invalid()

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            prepared = self._prepare_all(rule_set, list(candidates), exclude, executor)
        self._resolve_all(prepared)

        entries = []
        for item in prepared:
            if item.error is not None:
                logger.warning(f"No destination for {item.source}: {item.error}")
            entries.append(PlanEntry(item.source, item.destination, item.match))
        return entries

    def execute(
        self,
        rule_set: RuleSet,
        candidates: Iterable[Candidate],
        cancellation_token: Optional[CancellationToken] = None,
        exclude: Optional[Iterable[Union[str, Path]]] = None,
    ) -> Iterator[RelocationOutcome]:
        """Organize files, yielding one outcome per candidate as it completes.

        The rule set is validated before this returns, so an invalid rule set
        raises ValidationError here and no file is touched. The returned
        iterator is lazy, finite and cannot be restarted.

        Args:
            rule_set: Rule set to apply
            candidates: Files to organize, as paths or snapshots
            cancellation_token: Checked before each file is started
            exclude: Paths the user excluded from this run

        Raises:
            ValidationError: If the rule set is invalid
        """
        self.validate(rule_set).raise_if_invalid()
        return self._run(
            rule_set,
            list(candidates),
            cancellation_token or CancellationToken(),
            exclude,
        )

    def _run(
        self,
        rule_set: RuleSet,
        candidates: List[Candidate],
        token: CancellationToken,
        exclude: Optional[Iterable[Union[str, Path]]],
    ) -> Iterator[RelocationOutcome]:
        relocator = RelocationExecutor(verify_checksum=self.verify_checksum)
        max_in_flight = self.max_workers * 2
        logger.info(f"Organizing {len(candidates)} files into {self.root}")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            prepared = self._prepare_all(rule_set, candidates, exclude, executor)
            self._resolve_all(prepared)

            in_flight: Dict[Future, _PreparedFile] = {}
            for item in prepared:
                if item.outcome is not None:
                    yield self._record(item.outcome)
                    continue

                while len(in_flight) >= max_in_flight:
                    yield from self._collect(in_flight)

                if token.is_cancelled:
                    yield RelocationOutcome.skipped(
                        item.source, SkipReason.CANCELLED, self._rule_name(item)
                    )
                    continue

                future = executor.submit(relocator.relocate, item.source, item.destination)
                in_flight[future] = item

            while in_flight:
                yield from self._collect(in_flight)

        if token.is_cancelled:
            logger.info("Run cancelled; files not yet started were skipped")

    def _collect(self, in_flight: Dict[Future, _PreparedFile]) -> Iterator[RelocationOutcome]:
        done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
        for future in done:
            item = in_flight.pop(future)
            try:
                outcome = future.result()
            except Exception as e:
                outcome = RelocationOutcome.failed(
                    item.source, categorize_error(e), str(e), item.destination
                )
            yield self._record(outcome.with_rule(self._rule_name(item)))

    def _record(self, outcome: RelocationOutcome) -> RelocationOutcome:
        if not outcome.success and outcome.error_kind is not None:
            self.error_handler.handle_error(
                RelocationError(
                    outcome.error or "Relocation failed",
                    outcome.error_kind,
                    outcome.partially_moved,
                ),
                str(outcome.source),
            )
        return outcome

    @staticmethod
    def _rule_name(item: _PreparedFile) -> Optional[str]:
        return item.rule.name if item.rule is not None else None

    def _prepare_all(
        self,
        rule_set: RuleSet,
        candidates: List[Candidate],
        exclude: Optional[Iterable[Union[str, Path]]],
        executor: ThreadPoolExecutor,
    ) -> List[_PreparedFile]:
        excluded: Set[str] = {_path_key(path) for path in (exclude or [])}
        futures = [
            executor.submit(self._prepare, candidate, rule_set, excluded)
            for candidate in candidates
        ]
        return [future.result() for future in futures]

    def _prepare(
        self, candidate: Candidate, rule_set: RuleSet, excluded: Set[str]
    ) -> _PreparedFile:
        """Snapshot, classify and render one candidate."""
        if isinstance(candidate, FileMetadata):
            source = candidate.path
        else:
            source = Path(candidate).expanduser().absolute()

        if _path_key(source) in excluded:
            logger.info(f"Excluded: {source}")
            return _PreparedFile(
                source=source,
                match=RuleMatch.unmatched(),
                outcome=RelocationOutcome.skipped(source, SkipReason.EXCLUDED),
            )

        try:
            file = candidate if isinstance(candidate, FileMetadata) else FileMetadata.from_path(source)
        except (OSError, ValueError, OverflowError) as e:
            return _PreparedFile(
                source=source,
                match=RuleMatch.unmatched(),
                outcome=RelocationOutcome.failed(source, categorize_error(e), str(e)),
                error=e,
            )

        match = classify(file, rule_set)
        rule = match.rule(rule_set)

        if rule is not None:
            proposed = rule.resolve_target(self.root, file) / render(rule.template, file, rule)
            logger.debug(f"{source.name}: rule '{rule.name}' -> {proposed}")
            return _PreparedFile(
                source=source,
                match=match,
                rule=rule,
                proposed=proposed,
                extension=file.raw_extension,
            )

        if rule_set.unmatched_policy == UnmatchedPolicy.MOVE:
            catch_all = rule_set.resolve_catch_all(self.root)
            return _PreparedFile(
                source=source,
                match=match,
                proposed=catch_all / file.name,
                extension=file.raw_extension,
            )

        logger.info(f"Skipped (no matching rule): {source}")
        return _PreparedFile(
            source=source,
            match=match,
            outcome=RelocationOutcome.skipped(source, SkipReason.UNMATCHED),
        )

    def _resolve_all(self, prepared: List[_PreparedFile]):
        """Pick final destinations in candidate order with a fresh resolver."""
        resolver = ConflictResolver()
        for item in prepared:
            if item.proposed is None:
                continue
            try:
                item.destination = resolver.resolve(item.proposed, item.extension)
            except ConflictResolutionExhausted as e:
                item.error = e
                item.outcome = RelocationOutcome.failed(
                    item.source,
                    categorize_error(e),
                    str(e),
                    item.proposed,
                    rule_name=self._rule_name(item),
                )


def validate(rule_set: RuleSet, root: Union[str, Path]) -> ValidationResult:
    """Validate rule_set against root."""
    return OrganizationEngine(root).validate(rule_set)


def plan(
    rule_set: RuleSet, candidates: Iterable[Candidate], root: Union[str, Path]
) -> List[PlanEntry]:
    """Plan a run of rule_set over candidates without moving anything."""
    return OrganizationEngine(root).plan(rule_set, candidates)


def execute(
    rule_set: RuleSet,
    candidates: Iterable[Candidate],
    root: Union[str, Path],
    cancellation_token: Optional[CancellationToken] = None,
) -> Iterator[RelocationOutcome]:
    """Run rule_set over candidates, yielding outcomes as they complete."""
    return OrganizationEngine(root).execute(rule_set, candidates, cancellation_token)
