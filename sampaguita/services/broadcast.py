"""In-process broadcast relay for real-time activity updates.

Every connected client subscribes and receives its own queue; a
published event is copied into each queue. There is no per-client
filtering and no backpressure: a subscriber that stops reading is
dropped once its queue is full.
"""
from __future__ import annotations

import json
import logging
import queue
import threading
from typing import Any, Iterator

logger = logging.getLogger(__name__)

NEW_ACTIVITY = "new_activity"
LOGS_CLEARED = "logs_cleared"


class ActivityBroadcaster:
    def __init__(self, max_queue_size: int = 100) -> None:
        self._subscribers: set[queue.Queue] = set()
        self._lock = threading.Lock()
        self._max_queue_size = max_queue_size

    def subscribe(self) -> queue.Queue:
        q: queue.Queue = queue.Queue(maxsize=self._max_queue_size)
        with self._lock:
            self._subscribers.add(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers.discard(q)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: str, data: Any) -> int:
        """Send ``event`` to every subscriber; returns how many received it."""
        with self._lock:
            subscribers = list(self._subscribers)
        delivered = 0
        for q in subscribers:
            try:
                q.put_nowait((event, data))
                delivered += 1
            except queue.Full:
                logger.warning("Dropping slow activity subscriber")
                self.unsubscribe(q)
        return delivered

    def stream(self, q: queue.Queue, keepalive: float = 15.0) -> Iterator[str]:
        """Yield Server-Sent Event frames read from ``q`` until the client leaves."""
        try:
            while True:
                try:
                    event, data = q.get(timeout=keepalive)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"
        finally:
            self.unsubscribe(q)


broadcaster = ActivityBroadcaster()
