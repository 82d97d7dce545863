"""
Pattern Matcher - Trigger compilation and message matching
==========================================================

Every trigger is a regular expression; a plain word is simply a
pattern without metacharacters. Before compilation the ``{{me}}``
placeholder is replaced with the bot's current nickname so rules keep
working across nick changes.
"""

import re
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Pattern, Tuple

from core.exceptions import PatternError
from .model import Rule

ME_PLACEHOLDER = "{{me}}"

# Letters that map to Python flags
FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "a": re.ASCII,
}

# Letters accepted for compatibility with shared rule files, no effect on a search
IGNORED_FLAGS = frozenset("gu")

# Sticky: the trigger must match at the start of the message
STICKY_FLAG = "y"


@dataclass(frozen=True)
class MatchResult:
    """
    Result of a trigger matching a message.

    Attributes:
        text (str): The full matched substring
        groups (tuple): Capture groups in order, None for groups that
            did not participate in the match
    """
    text: str
    groups: Tuple[Optional[str], ...] = ()

    def group(self, number: int) -> Optional[str]:
        """Return capture group ``number`` (1-based) or None if absent."""
        if 1 <= number <= len(self.groups):
            return self.groups[number - 1]
        return None


def parse_flags(flags: str) -> int:
    """
    Convert a flag string into ``re`` flags.

    Args:
        flags: Flag letters, e.g. "im"

    Returns:
        Combined ``re`` flag value

    Raises:
        PatternError: On unknown or repeated letters
    """
    value = 0
    seen = set()

    for letter in flags or "":
        if letter in seen:
            raise PatternError(f"Repeated regex flag '{letter}' in '{flags}'")
        seen.add(letter)

        if letter in FLAG_MAP:
            value |= FLAG_MAP[letter]
        elif letter not in IGNORED_FLAGS and letter != STICKY_FLAG:
            raise PatternError(f"Invalid regex flag '{letter}' in '{flags}'")

    return value


def prepare_trigger(trigger_text: str, nick: str) -> str:
    """
    Substitute ``{{me}}`` with the bot's nickname.

    The nickname is escaped so characters common in IRC nicks
    (``[]\\^{}|``) match literally.

    Args:
        trigger_text: Raw trigger from the rule
        nick: Bot's current nickname on the network

    Returns:
        Pattern source ready for compilation
    """
    if ME_PLACEHOLDER not in trigger_text:
        return trigger_text
    return trigger_text.replace(ME_PLACEHOLDER, re.escape(nick or ""))


class PatternMatcher:
    """
    Compiles rule triggers and tests messages against them.

    Compiled patterns are cached per (source, flags) pair; the cache
    is bounded and simply emptied when it grows past ``max_cache``.

    Example:
        matcher = PatternMatcher()
        result = matcher.match(rule, "order pizza and soda", nick="Bot")
        if result:
            print(result.groups)
    """

    def __init__(self, max_cache: int = 512):
        self.max_cache = max_cache
        self._cache: Dict[Tuple[str, str], Pattern] = {}
        self._lock = threading.Lock()

    def compile(self, rule: Rule, nick: str) -> Pattern:
        """
        Compile a rule's trigger for a given nickname.

        Args:
            rule: Rule to compile
            nick: Bot's current nickname

        Returns:
            Compiled pattern

        Raises:
            PatternError: If the pattern or its flags are invalid
        """
        source = prepare_trigger(rule.trigger_text, nick)
        flags = rule.trigger_flags or ""
        key = (source, flags)

        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            compiled = re.compile(source, parse_flags(flags))
        except re.error as e:
            raise PatternError(
                f"Invalid trigger pattern: {e}",
                pattern=source,
                details={"flags": flags},
            )
        except PatternError as e:
            e.pattern = source
            raise

        with self._lock:
            if len(self._cache) >= self.max_cache:
                self._cache.clear()
            self._cache[key] = compiled

        return compiled

    def match(self, rule: Rule, text: str, nick: str) -> Optional[MatchResult]:
        """
        Test a message against a rule's trigger.

        The search is unanchored unless the rule has the sticky flag, in
        which case the trigger must match at the start of the text. Case
        is only folded when the rule's flags ask for it.

        Args:
            rule: Rule to test
            text: Incoming message text
            nick: Bot's current nickname

        Returns:
            MatchResult, or None if the trigger does not match

        Raises:
            PatternError: If the trigger cannot be compiled
        """
        pattern = self.compile(rule, nick)
        if STICKY_FLAG in (rule.trigger_flags or ""):
            found = pattern.match(text)
        else:
            found = pattern.search(text)
        if not found:
            return None
        return MatchResult(text=found.group(0), groups=found.groups())

    def clear_cache(self) -> None:
        """Drop all compiled patterns."""
        with self._lock:
            self._cache.clear()
