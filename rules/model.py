"""
Rule Model - Trigger/response rules scoped to a network and channel
===================================================================

A rule watches one channel on one network, tests incoming text
against its trigger regex and answers with its response template.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

REQUIRED_FIELDS = ("server", "listen_channel", "trigger_text", "response_text")
NUMERIC_FIELDS = ("cooldown_seconds", "delay_seconds")
OPTIONAL_STRING_FIELDS = ("trigger_flags", "response_channel")

RuleIdentity = Tuple[str, str, str]


@dataclass(eq=False)
class Rule:
    """
    A single auto-response rule.

    Rules compare and hash by object identity: two loads of the same
    file produce distinct rules, which keeps cooldown state scoped to
    one load cycle. Use ``identity`` to compare rules logically.

    Attributes:
        server (str): Network name, matched exactly
        listen_channel (str): Channel to watch, matched case-insensitively
        trigger_text (str): Regular expression, may contain {{me}}
        response_text (str): Response template with {{sender}} and $N
        trigger_flags (str): Regex flag letters, e.g. "i"
        response_channel (str): Destination override, empty for the origin
        cooldown_seconds (float): Minimum interval between firings
        delay_seconds (float): Delay before the response is sent
        extra (dict): Unknown keys kept for round-tripping
    """
    server: str
    listen_channel: str
    trigger_text: str
    response_text: str
    trigger_flags: str = ""
    response_channel: str = ""
    cooldown_seconds: Optional[float] = None
    delay_seconds: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def identity(self) -> RuleIdentity:
        """Merge key: (server, listen_channel, trigger_text)."""
        return (self.server, self.listen_channel, self.trigger_text)

    @property
    def delay(self) -> float:
        """Effective delay in seconds."""
        return float(self.delay_seconds or 0)

    def listens_to(self, server: str, channel: str) -> bool:
        """Check the server (exact) and channel (case-insensitive) scope."""
        return self.server == server and self.listen_channel.lower() == channel.lower()

    def to_dict(self) -> Dict[str, Any]:
        """Convert rule to dictionary, omitting unset optional fields."""
        data: Dict[str, Any] = {
            "server": self.server,
            "listen_channel": self.listen_channel,
            "trigger_text": self.trigger_text,
            "response_text": self.response_text,
        }
        if self.trigger_flags:
            data["trigger_flags"] = self.trigger_flags
        if self.response_channel:
            data["response_channel"] = self.response_channel
        if self.cooldown_seconds is not None:
            data["cooldown_seconds"] = self.cooldown_seconds
        if self.delay_seconds is not None:
            data["delay_seconds"] = self.delay_seconds
        data.update(self.extra)
        return data

    def describe(self) -> str:
        """JSON rendering used in log messages."""
        return json.dumps(self.to_dict(), ensure_ascii=False, sort_keys=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Rule':
        """
        Create rule from a validated dictionary.

        Args:
            data: Rule mapping that passed validate_rules

        Returns:
            Rule instance
        """
        known = set(REQUIRED_FIELDS) | set(NUMERIC_FIELDS) | set(OPTIONAL_STRING_FIELDS)
        return cls(
            server=data["server"],
            listen_channel=data["listen_channel"],
            trigger_text=data["trigger_text"],
            response_text=data["response_text"],
            trigger_flags=data.get("trigger_flags") or "",
            response_channel=data.get("response_channel") or "",
            cooldown_seconds=data.get("cooldown_seconds"),
            delay_seconds=data.get("delay_seconds"),
            extra={k: v for k, v in data.items() if k not in known},
        )
