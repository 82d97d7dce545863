"""
Test Rules Module
=================

Unit tests for rule validation, the rule model and the rule store.
"""

import json
import pytest
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.cooldown import CooldownTracker
from core.exceptions import RuleFileNotFoundError, RuleParseError, RuleValidationError
from rules.model import Rule
from rules.store import DEFAULT_RULES, RuleStore, merge_rules, parse_rules
from rules.validator import validate_rules


def make_rule(trigger="ping", response="pong", **kwargs):
    """Build a rule on libera/#test."""
    data = {
        "server": "libera",
        "listen_channel": "#test",
        "trigger_text": trigger,
        "response_text": response,
    }
    data.update(kwargs)
    return Rule.from_dict(data)


class TestValidateRules:
    """Tests for validate_rules."""

    def test_valid_document(self):
        """A well-formed document passes."""
        rules = [{"server": "s", "listen_channel": "#c", "trigger_text": "t", "response_text": "r"}]
        result = validate_rules(rules)
        assert result.is_valid
        assert result.error is None
        assert bool(result)

    def test_empty_list_is_valid(self):
        """An empty rule list is valid."""
        assert validate_rules([]).is_valid

    def test_not_an_array(self):
        """Non-list documents are rejected."""
        result = validate_rules({"server": "s"})
        assert not result.is_valid
        assert result.error == "The provided rules data is not an array."

    def test_non_object_entry(self):
        """Entries must be objects."""
        result = validate_rules([{"server": "s", "listen_channel": "#c", "trigger_text": "t",
                                  "response_text": "r"}, "oops"])
        assert result.error == "Rule #2 is not a valid object."

    def test_missing_required_field(self):
        """Missing required fields are reported by name."""
        result = validate_rules([{"server": "s", "listen_channel": "#c", "trigger_text": "t"}])
        assert not result.is_valid
        assert "Rule #1" in result.error
        assert "'response_text'" in result.error

    def test_blank_required_field(self):
        """Whitespace-only required fields count as empty."""
        result = validate_rules([{"server": "  ", "listen_channel": "#c", "trigger_text": "t",
                                  "response_text": "r"}])
        assert "'server'" in result.error

    def test_optional_string_type(self):
        """Optional string fields must be strings when present."""
        result = validate_rules([{"server": "s", "listen_channel": "#c", "trigger_text": "t",
                                  "response_text": "r", "trigger_flags": 3}])
        assert not result.is_valid
        assert "'trigger_flags'" in result.error

    def test_numeric_string_is_coerced(self):
        """Numeric strings in timing fields become numbers."""
        rules = [{"server": "s", "listen_channel": "#c", "trigger_text": "t",
                  "response_text": "r", "cooldown_seconds": "10", "delay_seconds": " 1.5 "}]
        assert validate_rules(rules).is_valid
        assert rules[0]["cooldown_seconds"] == 10
        assert rules[0]["delay_seconds"] == 1.5

    def test_non_numeric_string(self):
        """Non-numeric strings are rejected with the offending value."""
        result = validate_rules([{"server": "s", "listen_channel": "#c", "trigger_text": "t",
                                  "response_text": "r", "cooldown_seconds": "soon"}])
        assert not result.is_valid
        assert "'cooldown_seconds'" in result.error
        assert "'soon'" in result.error

    def test_negative_value(self):
        """Negative timings are rejected."""
        result = validate_rules([{"server": "s", "listen_channel": "#c", "trigger_text": "t",
                                  "response_text": "r", "delay_seconds": -1}])
        assert not result.is_valid
        assert "negative" in result.error

    def test_boolean_is_not_a_number(self):
        """Booleans are not accepted as timings."""
        result = validate_rules([{"server": "s", "listen_channel": "#c", "trigger_text": "t",
                                  "response_text": "r", "cooldown_seconds": True}])
        assert not result.is_valid

    def test_reports_first_failure_only(self):
        """Validation stops at the first bad rule."""
        result = validate_rules([{"server": "s"}, "bad"])
        assert result.error.startswith("Rule #1")


class TestRule:
    """Tests for the Rule model."""

    def test_from_dict_defaults(self):
        """Optional fields default to empty or None."""
        rule = make_rule()
        assert rule.trigger_flags == ""
        assert rule.response_channel == ""
        assert rule.cooldown_seconds is None
        assert rule.delay == 0.0

    def test_listens_to(self):
        """Server matches exactly, channel case-insensitively."""
        rule = make_rule()
        assert rule.listens_to("libera", "#TEST")
        assert not rule.listens_to("Libera", "#test")
        assert not rule.listens_to("libera", "#other")

    def test_identity_and_equality(self):
        """Rules compare by object, identity gives the logical key."""
        a = make_rule()
        b = make_rule()
        assert a != b
        assert a.identity == b.identity == ("libera", "#test", "ping")

    def test_to_dict_keeps_extra_keys(self):
        """Unknown keys survive a round trip; unset optionals are omitted."""
        rule = make_rule(comment="hello")
        data = rule.to_dict()
        assert data["comment"] == "hello"
        assert "delay_seconds" not in data
        assert "trigger_flags" not in data


class TestMergeRules:
    """Tests for merge_rules."""

    def test_appends_new_rules(self):
        """Rules with new identities are appended in order."""
        existing = [make_rule("a")]
        result = merge_rules(existing, [make_rule("b"), make_rule("c")])
        assert [r.trigger_text for r in result.rules] == ["a", "b", "c"]
        assert result.added == 2
        assert result.overwritten == 0

    def test_overwrites_in_place(self):
        """A rule with the same identity replaces the existing one at its position."""
        existing = [make_rule("a", "old"), make_rule("b")]
        result = merge_rules(existing, [make_rule("a", "new")])
        assert [r.response_text for r in result.rules] == ["new", "pong"]
        assert result.overwritten == 1
        assert result.added == 0

    def test_inputs_untouched(self):
        """The existing list is not modified."""
        existing = [make_rule("a")]
        merge_rules(existing, [make_rule("b")])
        assert len(existing) == 1

    def test_duplicate_incoming(self):
        """Later duplicates in the incoming batch win."""
        result = merge_rules([], [make_rule("a", "1"), make_rule("a", "2")])
        assert len(result.rules) == 1
        assert result.rules[0].response_text == "2"


class TestParseRules:
    """Tests for parse_rules."""

    def test_invalid_raises(self):
        """Invalid documents raise RuleValidationError."""
        with pytest.raises(RuleValidationError):
            parse_rules({"not": "a list"})

    def test_builds_rules(self):
        """Valid documents become Rule objects."""
        rules = parse_rules(list(DEFAULT_RULES))
        assert len(rules) == 1
        assert rules[0].trigger_text == "ping"


class TestRuleStore:
    """Tests for RuleStore."""

    @pytest.fixture
    def store(self, tmp_path):
        """Store backed by a temporary rules file."""
        return RuleStore(str(tmp_path / "rules.json"))

    def test_ensure_exists_writes_defaults(self, store):
        """A missing file is created with the example rule."""
        assert store.ensure_exists()
        data = json.loads(store.rules_path.read_text(encoding="utf-8"))
        assert data == DEFAULT_RULES
        assert not store.ensure_exists()

    def test_load(self, store):
        """Loading swaps in the rules from disk."""
        store.ensure_exists()
        messages = []
        assert store.load(notify=messages.append)
        assert len(store) == 1
        assert messages == ["Rules successfully reloaded. Found 1 rules."]

    def test_load_missing_file_keeps_rules(self, store):
        """A missing file is reported and current rules stay."""
        store.replace([make_rule()])
        messages = []
        assert not store.load(notify=messages.append)
        assert len(store) == 1
        assert messages[0].startswith("ERROR: Configuration file not found")

    def test_load_bad_json_keeps_rules(self, store):
        """Syntax errors are reported and current rules stay."""
        store.replace([make_rule()])
        store.rules_path.write_text("[{", encoding="utf-8")
        assert not store.load()
        assert len(store) == 1

    def test_load_invalid_rules_keeps_rules(self, store):
        """Schema errors are reported and current rules stay."""
        store.replace([make_rule()])
        store.rules_path.write_text('[{"server": "s"}]', encoding="utf-8")
        messages = []
        assert not store.load(notify=messages.append)
        assert len(store) == 1
        assert "Invalid rules" in messages[0]

    def test_read_rules_errors(self, store):
        """read_rules raises typed errors."""
        with pytest.raises(RuleFileNotFoundError):
            store.read_rules()
        store.rules_path.write_text("not json", encoding="utf-8")
        with pytest.raises(RuleParseError):
            store.read_rules()

    def test_reload_clears_cooldowns(self, tmp_path):
        """Every successful reload clears cooldown state."""
        tracker = CooldownTracker(clock=lambda: 0.0)
        store = RuleStore(str(tmp_path / "rules.json"), cooldowns=tracker)
        store.ensure_exists()
        store.load()
        tracker.mark_fired(store.get_rules()[0])
        assert len(tracker) == 1

        store.load()
        assert len(tracker) == 0

    def test_save_round_trip(self, store):
        """Saved rules load back with the same content."""
        rules = [make_rule("a", delay_seconds=2), make_rule("b", response_channel="#log")]
        assert store.save(rules)
        assert store.rules_path.read_text(encoding="utf-8").endswith("\n")

        loaded = store.read_rules()
        assert [r.to_dict() for r in loaded] == [r.to_dict() for r in rules]

    def test_save_failure(self, tmp_path):
        """Write failures return False and notify."""
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        store = RuleStore(str(blocker / "rules.json"))
        messages = []
        assert not store.save([make_rule()], notify=messages.append)
        assert messages[0].startswith("CRITICAL: Failed to save rules")

    def test_snapshot_is_a_copy(self, store):
        """get_rules returns a copy of the live list."""
        store.replace([make_rule()])
        snapshot = store.get_rules()
        snapshot.clear()
        assert len(store) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
