"""
Services Module - Message processing services
=============================================

This module provides the main services:
- Message Handler: rule evaluation per incoming message
- Response Dispatcher: destination lookup and (delayed) sending
- Rule Importer: remote rule sets over HTTP(S)
- File Watcher: hot reload of rules and settings
"""

from .dispatcher import ResponseDispatcher, Network, Channel
from .message_handler import MessageHandler, ListenerRegistry, IncomingMessage
from .remote_import import RuleImporter, ImportResult
from .watcher import FileWatcher
from .machine import AnsweringMachine

__all__ = [
    "ResponseDispatcher",
    "Network",
    "Channel",
    "MessageHandler",
    "ListenerRegistry",
    "IncomingMessage",
    "RuleImporter",
    "ImportResult",
    "FileWatcher",
    "AnsweringMachine",
]
