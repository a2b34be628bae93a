"""Best-effort BetPlaced fan-out to in-process subscribers."""

from __future__ import annotations

from threading import Lock
from typing import Callable

import structlog

from predbets.models import BetPlaced

log = structlog.get_logger(__name__)

Subscriber = Callable[[BetPlaced], None]


class Notifier:
    """Calls every subscriber after a bet commits. Subscriber failures are logged and dropped."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            self.unsubscribe(callback)

        return _unsubscribe

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: BetPlaced) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                log.warning("notification_dropped", market_id=event.market_id, error=str(e))
