"""In-process fan-out of committed domain events.

Aggregates here are persisted through the document store rather than
protean repositories, so nothing dispatches their ``_events``. Writers hand
the events of every committed change to an EventPublisher instead; the
read models and any other listeners subscribe to it.
"""

from collections.abc import Callable, Iterable

import structlog

logger = structlog.get_logger(__name__)


class EventPublisher:
    def __init__(self):
        self._listeners: list[Callable] = []

    def subscribe(self, listener: Callable) -> Callable[[], None]:
        """Register ``listener(event)``. Returns a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, events: Iterable) -> None:
        for event in events:
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception:
                    # The write is committed; a broken listener must not undo it
                    logger.exception(
                        "event_listener_failed",
                        event_type=event.__class__.__name__,
                        listener=getattr(listener, "__name__", repr(listener)),
                    )
