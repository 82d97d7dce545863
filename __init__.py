"""
Answering Machine - Rule-based auto-responder for chat networks
===============================================================

Watches incoming chat messages and answers them according to a
user-editable set of trigger rules:
1. Regex triggers with {{me}} substitution
2. Response templates with {{sender}} and $N capture groups
3. Per-rule cooldowns and delayed responses
4. Hot-reloaded rules file with remote rule import

License: MIT
Version: 1.0.0
"""

__version__ = "1.0.0"
__license__ = "MIT"
