"""
Answering Machine - Component wiring
====================================

Builds the settings manager, rule store, dispatcher, handler,
listener registry, importer and file watcher for one storage
directory, and drives their startup and shutdown.
"""

from pathlib import Path
from typing import Optional

from core.config import RULES_FILE_NAME, SETTINGS_FILE_NAME, SettingsManager
from core.cooldown import CooldownTracker
from core.logging import get_logger
from rules.matcher import PatternMatcher
from rules.store import RuleStore
from .dispatcher import ResponseDispatcher, Scheduler, SendFunc
from .message_handler import ListenerRegistry, MessageHandler
from .remote_import import RuleImporter
from .watcher import FileWatcher

logger = get_logger("services.machine")


class AnsweringMachine:
    """
    Auto-responder assembled for one host.

    Example:
        machine = AnsweringMachine(config_dir, send=host.send)
        machine.start()
        host.on_message(machine.listeners.listener_for(network))
        ...
        machine.shutdown()
    """

    def __init__(
        self,
        config_dir: str,
        send: SendFunc,
        scheduler: Optional[Scheduler] = None,
        cooldowns: Optional[CooldownTracker] = None,
        load_env: bool = True
    ):
        """
        Initialize all components.

        Args:
            config_dir: Directory holding config.yaml and rules.json
            send: Host send primitive, send(text, destination_id)
            scheduler: Optional scheduler for delayed responses
            cooldowns: Optional cooldown tracker (e.g. with a fake clock)
            load_env: Whether settings honour environment overrides
        """
        self.config_dir = Path(config_dir)

        self.settings = SettingsManager(str(self.config_dir / SETTINGS_FILE_NAME), load_env=load_env)
        self.store = RuleStore(str(self.config_dir / RULES_FILE_NAME), cooldowns=cooldowns)
        self.dispatcher = ResponseDispatcher(send=send, scheduler=scheduler)
        self.handler = MessageHandler(self.store, self.dispatcher, PatternMatcher())
        self.listeners = ListenerRegistry(self.handler)
        self.importer = RuleImporter(self.settings, self.store)
        self.watcher: Optional[FileWatcher] = None

    def start(self, watch: bool = True) -> None:
        """
        Bootstrap files, load settings and rules, and start hot reload.

        Args:
            watch: Whether to start the file watcher thread
        """
        logger.info(f"Using storage directory: {self.config_dir}")
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.settings.ensure_exists()
        self.settings.reload()

        self.store.ensure_exists()
        self.store.load()

        if watch:
            self.watcher = FileWatcher(interval=self.settings.settings.watch_interval)
            self.watcher.watch(str(self.store.rules_path), self.store.load)
            self.watcher.watch(str(self.settings.settings_path), self.settings.reload)
            self.watcher.start()

    def shutdown(self) -> None:
        """Stop hot reload and cancel pending delayed responses."""
        if self.watcher:
            self.watcher.stop()
            self.watcher = None
        self.dispatcher.cancel_pending()
        logger.info("Answering machine stopped")
