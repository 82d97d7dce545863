"""
Response Dispatcher - Destination resolution and (delayed) delivery
==================================================================

This module turns a fired rule into an outgoing message:
- Resolves the destination in the network's channel directory
- Renders the response template
- Sends immediately, or arms a timer for delayed responses
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Set

from core.logging import get_logger
from rules.matcher import MatchResult
from rules.model import Rule
from rules.templates import build_response

logger = get_logger("services.dispatcher")

# send(text, destination_id), provided by the host
SendFunc = Callable[[str, Any], None]

# scheduler(delay_seconds, callback)
Scheduler = Callable[[float, Callable[[], None]], Any]


@dataclass
class Channel:
    """
    A channel or query target known to the host.

    Attributes:
        name (str): Display name, e.g. "#general"
        id (Any): Opaque identifier understood by the host's send primitive
    """
    name: str
    id: Any


@dataclass
class Network:
    """
    Host-side view of one connected network.

    Attributes:
        name (str): Network identifier matched against Rule.server
        nick (str): Bot's current nickname on this network
        channels (list): Known channels and query targets
        uuid (str): Host identifier for the connection (defaults to name)
    """
    name: str
    nick: str = ""
    channels: List[Channel] = field(default_factory=list)
    uuid: str = ""

    def __post_init__(self):
        if not self.uuid:
            self.uuid = self.name

    def find_channel(self, name: str) -> Optional[Channel]:
        """Look a channel up by name, case-insensitively."""
        wanted = name.lower()
        for channel in self.channels:
            if channel.name.lower() == wanted:
                return channel
        return None


class ResponseDispatcher:
    """
    Sends rule responses through the host's send primitive.

    Responses with ``delay_seconds`` > 0 are handed to a scheduler and
    the call returns immediately. The default scheduler uses daemon
    ``threading.Timer`` objects, which are tracked so shutdown can
    cancel them. Delayed sends capture their text and destination at
    scheduling time; a rule reload does not affect them.

    Example:
        dispatcher = ResponseDispatcher(send=host.send)
        destination = dispatcher.resolve_destination(rule, "#general", network)
        if destination:
            dispatcher.dispatch(rule, match, "Alice", destination)
    """

    def __init__(self, send: SendFunc, scheduler: Optional[Scheduler] = None):
        """
        Initialize the dispatcher.

        Args:
            send: Host send primitive, called as send(text, destination_id)
            scheduler: Optional replacement for the timer-based scheduler
        """
        self._send_func = send
        self._scheduler = scheduler
        self._timers: Set[threading.Timer] = set()
        self._lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        """Number of armed timers that have not fired yet."""
        with self._lock:
            return len(self._timers)

    def resolve_destination(self, rule: Rule, origin_channel: str, network: Network) -> Optional[Channel]:
        """
        Find where a rule's response should go.

        Uses ``response_channel`` when set, otherwise the channel the
        message came from. There is no fallback: an unknown destination
        is logged and None is returned.

        Args:
            rule: Firing rule
            origin_channel: Channel the message arrived on
            network: Network context with the channel directory

        Returns:
            Channel, or None if the destination is unknown
        """
        target = rule.response_channel or origin_channel
        channel = network.find_channel(target)

        if channel is None:
            logger.error(
                f"Could not find channel '{target}' to send response. Aborting this trigger. "
                f"Rule: {rule.describe()}"
            )
        return channel

    def dispatch(
        self,
        rule: Rule,
        match: Optional[MatchResult],
        sender: str,
        destination: Channel
    ) -> bool:
        """
        Render and deliver a rule's response.

        Args:
            rule: Firing rule
            match: Trigger match for capture-group substitution
            sender: Nickname of the triggering user
            destination: Resolved destination

        Returns:
            True if the response was sent (or scheduled) successfully
        """
        text = build_response(rule.response_text, sender, match)
        delay = rule.delay

        if delay > 0:
            logger.debug(
                f"Scheduling response to '{destination.name}' in {delay}s: {text}"
            )
            return self._schedule(delay, text, destination)

        logger.debug(f"Sending response to '{destination.name}' (ID: {destination.id}): {text}")
        return self._send(text, destination)

    def _send(self, text: str, destination: Channel) -> bool:
        """Call the send primitive; failures are logged, never raised."""
        try:
            self._send_func(text, destination.id)
        except Exception as e:
            logger.error(f"Failed to send response to '{destination.name}': {e}", exc_info=True)
            return False
        return True

    def _schedule(self, delay: float, text: str, destination: Channel) -> bool:
        """Arm a delayed send."""
        if self._scheduler is not None:
            try:
                self._scheduler(delay, lambda: self._send(text, destination))
            except Exception as e:
                logger.error(f"Failed to schedule response to '{destination.name}': {e}", exc_info=True)
                return False
            return True

        def fire():
            with self._lock:
                self._timers.discard(timer)
            self._send(text, destination)

        timer = threading.Timer(delay, fire)
        timer.daemon = True

        with self._lock:
            self._timers.add(timer)
        timer.start()
        return True

    def cancel_pending(self) -> int:
        """
        Cancel every armed timer.

        Used at shutdown. Returns the number of cancelled sends.
        """
        with self._lock:
            timers = list(self._timers)
            self._timers.clear()

        for timer in timers:
            timer.cancel()

        if timers:
            logger.info(f"Cancelled {len(timers)} pending delayed response(s)")
        return len(timers)
