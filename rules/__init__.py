"""
Rules Module - Rule model, validation, storage and matching
===========================================================

This module provides:
- The Rule model and its validator
- The rule store (load, save, merge)
- Regex trigger matching with {{me}} substitution
- Response templates with {{sender}} and $N substitution
"""

from .model import Rule
from .validator import validate_rules, ValidationResult
from .store import RuleStore, MergeResult, merge_rules, parse_rules
from .matcher import PatternMatcher, MatchResult
from .templates import ResponseTemplate, build_response

__all__ = [
    "Rule",
    "validate_rules",
    "ValidationResult",
    "RuleStore",
    "MergeResult",
    "merge_rules",
    "parse_rules",
    "PatternMatcher",
    "MatchResult",
    "ResponseTemplate",
    "build_response",
]
