"""
Unit tests for rules and first-match classification.
"""

from datetime import date, datetime
from pathlib import Path

from file_sorter.organization_logic.classifier import RuleMatch, classify
from file_sorter.organization_logic.predicates import (
    ExtensionEquals,
    ModifiedDateInRange,
    NameContains,
)
from file_sorter.organization_logic.rules import Rule, RuleSet, UnmatchedPolicy


def _rule(name, *predicates, target="Target"):
    return Rule(name=name, predicates=predicates, target_directory=target)


class TestRule:
    """Test Rule behaviour."""

    def test_all_predicates_must_hold(self, make_file):
        rule = _rule("r", ExtensionEquals("pdf"), NameContains("invoice"))
        assert rule.matches(make_file("/in/invoice-1.pdf"))
        assert not rule.matches(make_file("/in/report.pdf"))
        assert not rule.matches(make_file("/in/invoice-1.txt"))

    def test_no_predicates_matches_everything(self, make_file):
        assert _rule("all").matches(make_file("/in/anything.bin"))

    def test_resolve_target(self):
        assert _rule("r", target="Docs/2024").resolve_target("/root") == Path("/root/Docs/2024")
        assert _rule("r", target="/elsewhere").resolve_target("/root") == Path("/elsewhere")

    def test_resolve_target_with_placeholders(self, make_file):
        rule = _rule("r", target="Media/{ext}/{modified:YYYY}")
        file = make_file("/in/photo.JPG", modified=datetime(2024, 6, 1))

        assert rule.resolve_target("/root", file) == Path("/root/Media/jpg/2024")
        assert rule.resolve_target("/root") == Path("/root/Media/{ext}/{modified:YYYY}")

    def test_resolve_target_without_extension(self, make_file):
        rule = _rule("r", target="ByType/{ext}")
        assert rule.resolve_target("/root", make_file("/in/Makefile")) == Path(
            "/root/ByType/no_extension"
        )

    def test_predicates_are_stored_as_tuple(self):
        rule = Rule(name="r", predicates=[ExtensionEquals("pdf")], target_directory="T")
        assert rule.predicates == (ExtensionEquals("pdf"),)


class TestClassify:
    """Test classification against a rule set."""

    def test_first_match_wins(self, make_file):
        rule_set = RuleSet(
            rules=(
                _rule("invoices", NameContains("invoice")),
                _rule("pdfs", ExtensionEquals("pdf")),
            )
        )
        assert classify(make_file("/in/invoice.pdf"), rule_set) == RuleMatch.matched(0)
        assert classify(make_file("/in/report.pdf"), rule_set) == RuleMatch.matched(1)

    def test_unmatched(self, make_file):
        rule_set = RuleSet(rules=(_rule("pdfs", ExtensionEquals("pdf")),))
        match = classify(make_file("/in/notes.txt"), rule_set)

        assert match == RuleMatch.unmatched()
        assert not match.is_matched
        assert match.rule(rule_set) is None
        assert repr(match) == "Unmatched"

    def test_date_out_of_range_is_unmatched(self, make_file):
        rule_set = RuleSet(
            rules=(
                _rule(
                    "2024 pdfs",
                    ExtensionEquals("pdf"),
                    ModifiedDateInRange(date(2024, 1, 1), date(2024, 12, 31)),
                ),
            )
        )
        file = make_file("/in/old.pdf", modified=datetime(2023, 6, 1))
        assert classify(file, rule_set) == RuleMatch.unmatched()

    def test_catch_all_rule_last(self, make_file):
        rule_set = RuleSet(rules=(_rule("pdfs", ExtensionEquals("pdf")), _rule("rest")))
        match = classify(make_file("/in/notes.txt"), rule_set)

        assert match.rule_index == 1
        assert match.rule(rule_set).name == "rest"
        assert repr(match) == "Matched(1)"

    def test_empty_rule_set(self, make_file):
        assert not classify(make_file("/in/a.pdf"), RuleSet()).is_matched

    def test_classification_is_deterministic(self, make_file):
        rule_set = RuleSet(rules=(_rule("a", NameContains("a")), _rule("b", NameContains("b"))))
        file = make_file("/in/ab.txt")
        assert {classify(file, rule_set) for _ in range(10)} == {RuleMatch.matched(0)}


class TestRuleSet:
    """Test RuleSet helpers."""

    def test_defaults(self):
        rule_set = RuleSet()
        assert len(rule_set) == 0
        assert rule_set.unmatched_policy == UnmatchedPolicy.SKIP
        assert rule_set.resolve_catch_all("/root") is None

    def test_sequence_access(self):
        rules = [_rule("a"), _rule("b")]
        rule_set = RuleSet(rules=rules)
        assert rule_set[1].name == "b"
        assert [rule.name for rule in rule_set] == ["a", "b"]
        assert rule_set.rule_names() == ["a", "b"]

    def test_catch_all_directory(self):
        rule_set = RuleSet(unmatched_policy=UnmatchedPolicy.MOVE, catch_all_directory="Unsorted")
        assert rule_set.resolve_catch_all("/root") == Path("/root/Unsorted")

    def test_to_dict(self):
        rule_set = RuleSet(
            rules=(_rule("pdfs", ExtensionEquals("pdf"), target="Docs"),),
            unmatched_policy=UnmatchedPolicy.MOVE,
            catch_all_directory="Misc",
        )
        assert rule_set.to_dict() == {
            "rules": [
                {
                    "name": "pdfs",
                    "when": [{"extension": "pdf"}],
                    "target": "Docs",
                    "template": "{stem}",
                }
            ],
            "unmatched": {"policy": "move", "directory": "Misc"},
        }
