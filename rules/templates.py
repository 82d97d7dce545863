"""
Response Templates - Variable and capture-group substitution
===========================================================

Response texts support two kinds of placeholders:
- ``{{sender}}``: nickname of the user who triggered the rule
- ``$1``, ``$2``, ...: capture groups of the trigger match

A numbered placeholder whose group is missing or did not participate
is left as-is so authoring mistakes stay visible in the channel.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .matcher import MatchResult

SENDER_PLACEHOLDER = "{{sender}}"

_GROUP_REF = re.compile(r"\$(\d+)")


@dataclass
class ResponseTemplate:
    """
    A response text with placeholder substitution.

    Attributes:
        content (str): Template content
    """
    content: str

    def render(self, sender: str, match: Optional[MatchResult] = None) -> str:
        """
        Render the template.

        Args:
            sender: Nickname of the triggering user
            match: Trigger match providing capture groups

        Returns:
            Rendered response text
        """
        result = self._process_sender(self.content, sender)
        result = self._process_groups(result, match)
        return result

    def _process_sender(self, text: str, sender: str) -> str:
        """Replace every {{sender}} occurrence."""
        return text.replace(SENDER_PLACEHOLDER, sender)

    def _process_groups(self, text: str, match: Optional[MatchResult]) -> str:
        """Replace $N with the N-th capture group when it exists."""
        if match is None:
            return text

        def replace(found):
            value = match.group(int(found.group(1)))
            if value is None:
                return found.group(0)  # Keep placeholder if not found
            return value

        return _GROUP_REF.sub(replace, text)


def build_response(template: str, sender: str, match: Optional[MatchResult] = None) -> str:
    """
    Render a response text.

    Example:
        >>> m = MatchResult("order pizza and soda", ("pizza", "soda"))
        >>> build_response("Ordering $1 and $2 for {{sender}}.", "Alice", m)
        'Ordering pizza and soda for Alice.'
    """
    return ResponseTemplate(template).render(sender, match)
