"""Synchronous fan-out of engine events to subscribers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pyvehsim.state.events import EngineEvent

_logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], None]


class Notifier:
    """Deliver published events to every subscriber of that event.

    Subscribers are called in subscription order on the publisher's
    thread. A subscriber that raises is logged and skipped; the rest
    still receive the event.
    """

    def __init__(self) -> None:
        self._subscribers: dict[EngineEvent, list[Subscriber]] = {}

    def subscribe(self, event: EngineEvent, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* for *event*.

        Returns a callable that removes the subscription again.
        """
        self._subscribers.setdefault(event, []).append(callback)
        return lambda: self.unsubscribe(event, callback)

    def unsubscribe(self, event: EngineEvent, callback: Subscriber) -> None:
        """Remove *callback*; unknown callbacks are ignored."""
        callbacks = self._subscribers.get(event)
        if not callbacks:
            return
        try:
            callbacks.remove(callback)
        except ValueError:
            return
        if not callbacks:
            del self._subscribers[event]

    def subscriber_count(self, event: EngineEvent) -> int:
        return len(self._subscribers.get(event, ()))

    def publish(self, event: EngineEvent, payload: Any) -> None:
        # Copy so callbacks may unsubscribe while being notified.
        for callback in list(self._subscribers.get(event, ())):
            try:
                callback(payload)
            except Exception:
                _logger.warning("%s subscriber %r failed", event.value, callback, exc_info=True)
