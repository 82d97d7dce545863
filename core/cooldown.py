"""
Cooldown Module - Per-rule rate limiting
========================================

This module tracks when each rule last fired and answers whether a
rule is still cooling down. Entries are keyed by the in-memory rule
object itself, so the whole map is cleared whenever the rule set is
reloaded.
"""

import time
import threading
from typing import Any, Callable, Dict, Optional

from .logging import get_logger

logger = get_logger("cooldown")

DEFAULT_COOLDOWN_SECONDS = 5


def monotonic_ms() -> float:
    """Current monotonic clock reading in milliseconds."""
    return time.monotonic() * 1000.0


def cooldown_ms(rule: Any) -> float:
    """
    Effective cooldown of a rule in milliseconds.

    Rules without a cooldown_seconds value use the 5 second default.
    """
    seconds = getattr(rule, "cooldown_seconds", None)
    if seconds is None:
        seconds = DEFAULT_COOLDOWN_SECONDS
    return float(seconds) * 1000.0


class CooldownTracker:
    """
    Last-fired timestamps per rule.

    Example:
        tracker = CooldownTracker()

        now = tracker.now()
        if not tracker.is_on_cooldown(rule, now):
            tracker.mark_fired(rule, now)
            # Send response
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """
        Initialize the tracker.

        Args:
            clock: Callable returning the current time in milliseconds
                (defaults to the monotonic clock)
        """
        self._clock = clock or monotonic_ms
        self._last_fired: Dict[Any, float] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        """Current time in milliseconds according to the tracker's clock."""
        return self._clock()

    def is_on_cooldown(self, rule: Any, now_ms: Optional[float] = None) -> bool:
        """
        Check whether a rule fired too recently.

        Args:
            rule: Rule object
            now_ms: Current time in milliseconds (defaults to the clock)

        Returns:
            True iff the rule fired before and its cooldown has not elapsed
        """
        return self.remaining_ms(rule, now_ms) > 0

    def remaining_ms(self, rule: Any, now_ms: Optional[float] = None) -> float:
        """
        Milliseconds until the rule may fire again.

        Args:
            rule: Rule object
            now_ms: Current time in milliseconds (defaults to the clock)

        Returns:
            Remaining cooldown, 0 if the rule may fire now
        """
        if now_ms is None:
            now_ms = self.now()

        with self._lock:
            last = self._last_fired.get(rule)

        if last is None:
            return 0.0

        return max(0.0, cooldown_ms(rule) - (now_ms - last))

    def mark_fired(self, rule: Any, now_ms: Optional[float] = None) -> None:
        """
        Record that a rule fired.

        Args:
            rule: Rule object
            now_ms: Firing time in milliseconds (defaults to the clock)
        """
        if now_ms is None:
            now_ms = self.now()

        with self._lock:
            self._last_fired[rule] = now_ms

    def clear(self) -> None:
        """Forget every timestamp."""
        with self._lock:
            count = len(self._last_fired)
            self._last_fired.clear()

        if count:
            logger.debug(f"Cleared {count} cooldown entries")

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_fired)

    def __contains__(self, rule: Any) -> bool:
        with self._lock:
            return rule in self._last_fired
