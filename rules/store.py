"""
Rule Store - Canonical rule list and its on-disk representation
==============================================================

The store owns the live rule set and the rules file. Reloading swaps
the whole list at once and clears cooldown state; saving replaces the
file atomically; merging combines an incoming batch with an existing
list by rule identity without touching disk.
"""

import json
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from core.cooldown import CooldownTracker
from core.exceptions import (
    AnsweringMachineError,
    RuleFileNotFoundError,
    RuleParseError,
    RuleValidationError,
)
from core.logging import get_logger
from .model import Rule, RuleIdentity
from .validator import validate_rules

logger = get_logger("rules.store")

Notify = Callable[[str], None]
RuleLike = Union[Rule, Dict[str, Any]]

DEFAULT_RULES = [
    {
        "server": "libera",
        "listen_channel": "#my-channel",
        "trigger_text": "ping",
        "response_text": "pong",
        "response_channel": "",
        "cooldown_seconds": 5,
    }
]


@dataclass
class MergeResult:
    """
    Outcome of merge_rules.

    Attributes:
        rules (list): Merged rule list
        added (int): Incoming rules appended
        overwritten (int): Existing rules replaced in place
    """
    rules: List[Rule] = field(default_factory=list)
    added: int = 0
    overwritten: int = 0


def merge_rules(existing: Sequence[Rule], incoming: Iterable[Rule]) -> MergeResult:
    """
    Merge an incoming batch into an existing rule list.

    Rules sharing (server, listen_channel, trigger_text) are the same
    logical rule: the incoming one replaces the existing entry at its
    position. Other incoming rules are appended in order. Neither input
    list is modified.

    Args:
        existing: Current rules
        incoming: Rules to merge in

    Returns:
        MergeResult with the merged list and counters
    """
    merged = list(existing)
    index: Dict[RuleIdentity, int] = {}
    for position, rule in enumerate(merged):
        index.setdefault(rule.identity, position)

    result = MergeResult(rules=merged)

    for rule in incoming:
        position = index.get(rule.identity)
        if position is None:
            index[rule.identity] = len(merged)
            merged.append(rule)
            result.added += 1
        else:
            merged[position] = rule
            result.overwritten += 1

    return result


def parse_rules(data: Any) -> List[Rule]:
    """
    Validate a parsed rules document and build Rule objects.

    Args:
        data: Parsed JSON value

    Returns:
        List of rules

    Raises:
        RuleValidationError: If the document fails validation
    """
    result = validate_rules(data)
    if not result.is_valid:
        raise RuleValidationError(result.error)
    return [Rule.from_dict(item) for item in data]


def _to_dict(rule: RuleLike) -> Dict[str, Any]:
    return rule.to_dict() if isinstance(rule, Rule) else dict(rule)


class RuleStore:
    """
    Owner of the live rule set.

    Example:
        store = RuleStore("/home/me/.config/answering-machine/rules.json")
        store.ensure_exists()
        store.load(notify=print)

        for rule in store.get_rules():
            print(rule.describe())
    """

    def __init__(self, rules_path: str, cooldowns: Optional[CooldownTracker] = None):
        """
        Initialize the store.

        Args:
            rules_path: Path to the JSON rules file
            cooldowns: Cooldown tracker cleared on every reload
        """
        self.rules_path = Path(rules_path)
        self.cooldowns = cooldowns if cooldowns is not None else CooldownTracker()
        self._rules: List[Rule] = []
        self._lock = threading.Lock()

    def get_rules(self) -> List[Rule]:
        """Snapshot of the current rule list."""
        with self._lock:
            return list(self._rules)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)

    def ensure_exists(self) -> bool:
        """
        Create the rules file with a single example rule if it is missing.

        Returns:
            True if a default file was written
        """
        if self.rules_path.exists():
            return False

        logger.info(f"Creating default rules file: {self.rules_path}")
        return self.save(DEFAULT_RULES)

    def read_rules(self) -> List[Rule]:
        """
        Read and validate the rules file without touching live state.

        Returns:
            Parsed rules

        Raises:
            RuleFileNotFoundError: If the file does not exist
            RuleParseError: If the file is not valid JSON or unreadable
            RuleValidationError: If the document fails validation
        """
        try:
            with open(self.rules_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise RuleFileNotFoundError(f"Rules file not found at {self.rules_path}.")
        except json.JSONDecodeError as e:
            raise RuleParseError(
                f"Failed to parse {self.rules_path}. Please check for JSON syntax errors.",
                {"error": str(e)},
            )
        except (OSError, UnicodeDecodeError) as e:
            raise RuleParseError(f"Could not read rules from {self.rules_path}.", {"error": str(e)})

        return parse_rules(data)

    def load(self, notify: Optional[Notify] = None) -> bool:
        """
        Reload rules from disk.

        On success the rule list is swapped and all cooldowns are
        cleared. On any failure the current rules stay in place.

        Args:
            notify: Optional callback receiving a human-readable outcome

        Returns:
            True if the rules were replaced
        """
        logger.debug(f"Attempting to load rules from: {self.rules_path}")

        try:
            rules = self.read_rules()
        except RuleFileNotFoundError:
            message = f"ERROR: Configuration file not found at {self.rules_path}."
            logger.error(message)
            self._notify(notify, message)
            return False
        except RuleValidationError as e:
            message = f"ERROR: Invalid rules in {self.rules_path}: {e.message}"
            logger.error(message)
            self._notify(notify, message)
            return False
        except AnsweringMachineError as e:
            message = f"ERROR: {e.message}"
            logger.error(message, extra={"details": e.details})
            self._notify(notify, message)
            return False

        self.replace(rules)

        message = f"Rules successfully reloaded. Found {len(rules)} rules."
        logger.info(message)
        self._notify(notify, message)
        return True

    def replace(self, rules: Sequence[Rule]) -> None:
        """
        Swap in a new rule list and clear cooldowns.

        Both happen under the store lock, so a concurrent reader sees
        either the old list or the new one.
        """
        with self._lock:
            self._rules = list(rules)
            self.cooldowns.clear()

    def save(self, rules: Sequence[RuleLike], notify: Optional[Notify] = None) -> bool:
        """
        Write rules to disk, replacing the file atomically.

        The live rule set is not changed; the file watcher (or an
        explicit load) picks the new content up.

        Args:
            rules: Rules or rule mappings to write
            notify: Optional callback receiving a human-readable outcome

        Returns:
            True on success. On failure the error is logged as critical
            and the file and in-memory rules may differ.
        """
        logger.debug(f"Attempting to save {len(rules)} rules to: {self.rules_path}")
        payload = json.dumps([_to_dict(rule) for rule in rules], indent=2, ensure_ascii=False) + "\n"

        tmp_name = None
        try:
            self.rules_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.rules_path.name}.", suffix=".tmp", dir=str(self.rules_path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.rules_path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            message = f"CRITICAL: Failed to save rules to {self.rules_path}. Changes may not be persisted."
            logger.critical(f"{message} {e}")
            self._notify(notify, f"{message} ({e})")
            return False

        message = f"Successfully saved {len(rules)} rules to {self.rules_path}."
        logger.info(message)
        self._notify(notify, message)
        return True

    def _notify(self, notify: Optional[Notify], message: str) -> None:
        if notify is None:
            return
        try:
            notify(message)
        except Exception as e:
            logger.error(f"Notification callback failed: {e}", exc_info=True)
