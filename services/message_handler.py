"""
Message Handler - Rule evaluation for incoming chat messages
============================================================

For every incoming message the handler walks the rule set in order:
scope check, trigger match, cooldown gate, destination lookup, then
cooldown marking and dispatch of the first eligible rule. A rule that
is cooling down does not stop later rules from firing.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from core.cooldown import CooldownTracker
from core.exceptions import PatternError
from core.logging import get_logger, set_log_context, clear_log_context
from rules.matcher import PatternMatcher
from rules.model import Rule
from rules.store import RuleStore
from .dispatcher import Network, ResponseDispatcher

logger = get_logger("services.handler")


@dataclass
class IncomingMessage:
    """
    A chat line delivered by the host.

    Attributes:
        server (str): Network the message arrived on
        origin_channel (str): Channel or query target it was sent to
        sender_nick (str): Nickname of the author
        text (str): Message body
    """
    server: str
    origin_channel: str
    sender_nick: str
    text: str

    def __str__(self) -> str:
        return f"[{self.server}/{self.origin_channel}] <{self.sender_nick}> {self.text[:50]}"


class MessageHandler:
    """
    Orchestrates matcher, cooldown tracker and dispatcher.

    The rule store and its cooldown tracker are injected so reloads and
    tests operate on explicit instances.

    Example:
        handler = MessageHandler(store, ResponseDispatcher(send=host.send))
        fired = handler.handle(network, IncomingMessage("libera", "#help", "alice", "ping"))
    """

    def __init__(
        self,
        store: RuleStore,
        dispatcher: ResponseDispatcher,
        matcher: Optional[PatternMatcher] = None
    ):
        """
        Initialize the handler.

        Args:
            store: Rule store providing rules and the cooldown tracker
            dispatcher: Response dispatcher
            matcher: Pattern matcher (a new one by default)
        """
        self.store = store
        self.dispatcher = dispatcher
        self.matcher = matcher or PatternMatcher()

    def handle(self, network: Network, message: IncomingMessage) -> Optional[Rule]:
        """
        Evaluate the rule set against one message.

        Args:
            network: Network context (nickname, channel directory)
            message: Incoming message

        Returns:
            The rule that fired, or None
        """
        if network.nick and message.sender_nick.lower() == network.nick.lower():
            return None

        # Fresh snapshot on every message so reloads take effect immediately
        rules = self.store.get_rules()
        cooldowns = self.store.cooldowns

        set_log_context(network=message.server, channel=message.origin_channel)
        try:
            logger.debug(f"Received message: {message}")

            for rule in rules:
                if self._try_rule(rule, network, message, cooldowns):
                    return rule
            return None
        finally:
            clear_log_context()

    def _try_rule(
        self,
        rule: Rule,
        network: Network,
        message: IncomingMessage,
        cooldowns: CooldownTracker
    ) -> bool:
        """Run one rule through the pipeline; True if it fired."""
        if not rule.listens_to(message.server, message.origin_channel):
            return False

        try:
            match = self.matcher.match(rule, message.text, network.nick)
        except PatternError as e:
            logger.error(f"Invalid trigger in rule {rule.describe()}: {e}")
            return False

        if match is None:
            return False

        logger.debug(
            f"Rule triggered by '{message.sender_nick}' in '{message.origin_channel}'. "
            f"Matched rule: {rule.describe()}"
        )

        now = cooldowns.now()
        if cooldowns.is_on_cooldown(rule, now):
            logger.debug(f"Rule for '{rule.trigger_text}' is on cooldown. Skipping.")
            return False

        destination = self.dispatcher.resolve_destination(rule, message.origin_channel, network)
        if destination is None:
            return False

        cooldowns.mark_fired(rule, now)
        self.dispatcher.dispatch(rule, match, message.sender_nick, destination)
        return True


class ListenerRegistry:
    """
    Tracks which networks have an active listener.

    Messages are only evaluated for networks whose listener was started.
    Every operation returns a status line suitable for echoing back to
    the user who issued the command.
    """

    def __init__(self, handler: MessageHandler):
        self.handler = handler
        self._active: Dict[str, Network] = {}
        self._lock = threading.Lock()

    def is_active(self, network: Network) -> bool:
        with self._lock:
            return network.uuid in self._active

    def start(self, network: Network) -> str:
        """Activate the listener for a network."""
        with self._lock:
            if network.uuid in self._active:
                return f"Listener is already active for this network ({network.name})."
            self._active[network.uuid] = network

        logger.info(f"Listener started on {network.name}.")
        return f"Listener started for network: {network.name}."

    def stop(self, network: Network) -> str:
        """Deactivate the listener for a network."""
        with self._lock:
            if self._active.pop(network.uuid, None) is None:
                return f"Listener is not active for this network ({network.name})."

        logger.info(f"Listener stopped on {network.name}.")
        return f"Listener stopped for network: {network.name}."

    def status(self, network: Network) -> str:
        state = "ACTIVE" if self.is_active(network) else "INACTIVE"
        return f"Listener is {state} for network: {network.name}."

    def listener_for(self, network: Network) -> Callable[[IncomingMessage], Optional[Rule]]:
        """
        Build the per-network message callback the host subscribes.

        The callback ignores messages while the listener is stopped.
        """
        def on_message(message: IncomingMessage) -> Optional[Rule]:
            if not self.is_active(network):
                return None
            return self.handler.handle(network, message)

        return on_message
