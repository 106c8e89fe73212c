"""Event bus for configuration changes."""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

COLLECTION_EMPTY = "collection:empty"
REMOVED_PROFILE = "removed:profile"
CHANGED = "changed"

Listener = Callable[..., Any]


class EventBus:
    """Fire-and-forget observer channel.

    Listeners run synchronously in subscription order. A failing listener is
    logged and does not stop the others or the emitting operation.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> None:
        """Subscribe ``listener`` to ``event``."""
        self._listeners[event].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        """Unsubscribe ``listener`` from ``event``."""
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def trigger(self, event: str, *args: Any) -> None:
        """Notify every listener of ``event``."""
        logger.debug(f"Event: {event}")
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Listener of '{event}' failed")
