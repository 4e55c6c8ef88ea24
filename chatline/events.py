"""Synchronous event bus.

Subscribers run in registration order, on the caller's stack, before
``emit`` returns. A subscriber that raises is logged and skipped so
the remaining subscribers still run.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List

import structlog

logger = structlog.get_logger("chatline.state")

Listener = Callable[..., Any]


class EventBus:
    """Name-keyed publish/subscribe with exact-name matching only."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def on(self, event_name: str, listener: Listener) -> Callable[[], None]:
        """Subscribe ``listener`` to ``event_name``.

        Returns:
            A callable that removes this subscription.
        """
        self._listeners[event_name].append(listener)

        def unsubscribe() -> None:
            self.off(event_name, listener)

        return unsubscribe

    def off(self, event_name: str, listener: Listener) -> None:
        """Remove one subscription; unknown listeners are ignored."""
        listeners = self._listeners.get(event_name)
        if listeners and listener in listeners:
            listeners.remove(listener)
            if not listeners:
                del self._listeners[event_name]

    def emit(self, event_name: str, *args: Any) -> None:
        """Call every listener of ``event_name`` with ``args``."""
        # Copy so listeners may (un)subscribe while being called
        for listener in list(self._listeners.get(event_name, ())):
            try:
                listener(*args)
            except Exception as e:
                logger.error(
                    "event_listener_error",
                    event_name=event_name,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def listener_count(self, event_name: str) -> int:
        """Number of listeners currently subscribed to ``event_name``."""
        return len(self._listeners.get(event_name, ()))
