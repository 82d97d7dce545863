"""
Test Matcher Module
===================

Unit tests for trigger matching and response templates.
"""

import re
import pytest
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.exceptions import PatternError
from rules.matcher import MatchResult, PatternMatcher, parse_flags, prepare_trigger
from rules.model import Rule
from rules.templates import ResponseTemplate, build_response


def make_rule(trigger, flags=""):
    return Rule(
        server="libera",
        listen_channel="#test",
        trigger_text=trigger,
        response_text="ok",
        trigger_flags=flags,
    )


class TestParseFlags:
    """Tests for flag parsing."""

    def test_empty(self):
        assert parse_flags("") == 0

    def test_known_flags(self):
        """Letters map to re flags."""
        assert parse_flags("im") == re.IGNORECASE | re.MULTILINE

    def test_ignored_flags(self):
        """g and u are accepted and ignored."""
        assert parse_flags("gui") == re.IGNORECASE

    def test_sticky_flag_accepted(self):
        """y is accepted; it changes how matching runs, not the re flags."""
        assert parse_flags("yi") == re.IGNORECASE

    def test_unknown_flag(self):
        with pytest.raises(PatternError):
            parse_flags("q")

    def test_repeated_flag(self):
        with pytest.raises(PatternError):
            parse_flags("ii")


class TestPrepareTrigger:
    """Tests for {{me}} substitution."""

    def test_replaces_nick(self):
        assert prepare_trigger("hello {{me}}", "Bot") == "hello Bot"

    def test_escapes_nick(self):
        """Regex metacharacters in the nick match literally."""
        source = prepare_trigger("^{{me}}:", "bot[away]")
        assert re.search(source, "bot[away]: hi")
        assert not re.search(source, "bota: hi")

    def test_without_placeholder(self):
        assert prepare_trigger("ping", "Bot") == "ping"


class TestPatternMatcher:
    """Tests for PatternMatcher."""

    @pytest.fixture
    def matcher(self):
        return PatternMatcher()

    def test_substring_match(self, matcher):
        """Plain words match anywhere in the text."""
        result = matcher.match(make_rule("ping"), "well ping there", "Bot")
        assert result is not None
        assert result.text == "ping"

    def test_case_sensitive_by_default(self, matcher):
        assert matcher.match(make_rule("ping"), "PING", "Bot") is None

    def test_case_insensitive_flag(self, matcher):
        assert matcher.match(make_rule("ping", "i"), "PING", "Bot") is not None

    def test_sticky_flag_anchors_at_start(self, matcher):
        """With y the trigger only matches at the start of the text."""
        rule = make_rule("ping", "y")
        assert matcher.match(rule, "ping me", "Bot") is not None
        assert matcher.match(rule, "well ping there", "Bot") is None

    def test_capture_groups(self, matcher):
        """Groups are returned in order."""
        rule = make_rule(r"order (\w+) and (\w+)")
        result = matcher.match(rule, "please order pizza and soda", "Bot")
        assert result.groups == ("pizza", "soda")
        assert result.group(1) == "pizza"
        assert result.group(3) is None

    def test_nick_follows_current_nick(self, matcher):
        """{{me}} uses the nick passed at match time."""
        rule = make_rule("^{{me}}: help")
        assert matcher.match(rule, "Bot: help", "Bot")
        assert matcher.match(rule, "Bot: help", "Bot2") is None
        assert matcher.match(rule, "Bot2: help", "Bot2")

    def test_invalid_pattern(self, matcher):
        """Invalid regexes raise PatternError."""
        with pytest.raises(PatternError) as exc:
            matcher.match(make_rule("(unclosed"), "text", "Bot")
        assert exc.value.pattern == "(unclosed"

    def test_invalid_flags(self, matcher):
        with pytest.raises(PatternError):
            matcher.match(make_rule("ping", "z"), "ping", "Bot")

    def test_cache_is_bounded(self):
        """The cache is emptied once it reaches its limit."""
        matcher = PatternMatcher(max_cache=2)
        for word in ("a", "b", "c"):
            matcher.compile(make_rule(word), "Bot")
        assert len(matcher._cache) <= 2


class TestResponseTemplate:
    """Tests for response rendering."""

    def test_sender(self):
        assert build_response("Hi {{sender}}, {{sender}}!", "Alice") == "Hi Alice, Alice!"

    def test_groups(self):
        match = MatchResult("order pizza and soda", ("pizza", "soda"))
        text = build_response("Ordering $1 and $2 for {{sender}}.", "Alice", match)
        assert text == "Ordering pizza and soda for Alice."

    def test_missing_group_kept(self):
        """Out-of-range and non-participating groups stay as placeholders."""
        match = MatchResult("x", (None,))
        assert build_response("$1 $2 $0", "Alice", match) == "$1 $2 $0"

    def test_no_match(self):
        """Without a match, $N is untouched."""
        assert ResponseTemplate("cost: $5").render("Alice") == "cost: $5"

    def test_sender_substituted_before_groups(self):
        """{{sender}} is replaced first, so $N in the nick is expanded too."""
        match = MatchResult("x", ("group",))
        assert build_response("{{sender}}", "$1", match) == "group"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
