"""
Core Module - Foundation components for Answering Machine
=========================================================

This module provides the foundational components including:
- Settings management
- Logging setup
- Exception handling
- Per-rule cooldown tracking
"""

from .config import Settings, SettingsManager, load_settings, save_settings
from .cooldown import CooldownTracker
from .exceptions import (
    AnsweringMachineError,
    ConfigError,
    RuleFileNotFoundError,
    RuleParseError,
    RuleValidationError,
    PersistenceError,
    PatternError,
    RemoteImportError,
    FetchDisabledError,
    HostNotAllowedError,
    FetchError,
)
from .logging import setup_logging, get_logger, set_debug_logging

__all__ = [
    "Settings",
    "SettingsManager",
    "load_settings",
    "save_settings",
    "CooldownTracker",
    "AnsweringMachineError",
    "ConfigError",
    "RuleFileNotFoundError",
    "RuleParseError",
    "RuleValidationError",
    "PersistenceError",
    "PatternError",
    "RemoteImportError",
    "FetchDisabledError",
    "HostNotAllowedError",
    "FetchError",
    "setup_logging",
    "get_logger",
    "set_debug_logging",
]
