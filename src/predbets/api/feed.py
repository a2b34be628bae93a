"""Bridge Notifier callbacks (worker threads) to WebSocket listeners (event loop)."""

from __future__ import annotations

import asyncio
from threading import Lock

import structlog

from predbets.models import BetPlaced

log = structlog.get_logger(__name__)


class FeedHub:
    """Per-market asyncio queues fed by BetPlaced notifications."""

    def __init__(self, max_queue: int = 1000) -> None:
        self._listeners: dict[str, list[tuple[asyncio.AbstractEventLoop, asyncio.Queue[BetPlaced]]]] = {}
        self._lock = Lock()
        self._max_queue = max_queue

    def register(self, market_id: str) -> asyncio.Queue[BetPlaced]:
        """Call from the listener's event loop."""
        queue: asyncio.Queue[BetPlaced] = asyncio.Queue(maxsize=self._max_queue)
        loop = asyncio.get_running_loop()
        with self._lock:
            self._listeners.setdefault(market_id, []).append((loop, queue))
        return queue

    def unregister(self, market_id: str, queue: asyncio.Queue[BetPlaced]) -> None:
        with self._lock:
            listeners = self._listeners.get(market_id, [])
            self._listeners[market_id] = [(lp, q) for lp, q in listeners if q is not queue]
            if not self._listeners[market_id]:
                del self._listeners[market_id]

    def listener_count(self, market_id: str) -> int:
        with self._lock:
            return len(self._listeners.get(market_id, []))

    def on_event(self, event: BetPlaced) -> None:
        """Notifier subscriber. Drops the event for a listener whose queue is full."""
        with self._lock:
            listeners = list(self._listeners.get(event.market_id, []))
        for loop, queue in listeners:
            loop.call_soon_threadsafe(self._offer, queue, event)

    @staticmethod
    def _offer(queue: asyncio.Queue[BetPlaced], event: BetPlaced) -> None:
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            log.warning("feed_queue_full", market_id=event.market_id)
