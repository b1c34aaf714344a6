"""
In-memory fan-out of the public roster view.

Each subscriber owns a bounded asyncio.Queue bound to the event loop it
subscribed from. publish() never awaits and may run on a worker thread: views
are handed to the owning loop with call_soon_threadsafe. A full queue drops
its oldest pending view since only the newest one matters, and a failure on
one subscriber does not affect the others. Subscribers leave via
unsubscribe() when their connection closes.
"""

from __future__ import annotations

import asyncio
import threading
from itertools import count
from typing import Callable, Optional

from classgroups.schemas.roster_schemas import PublicView
from classgroups.utils.logger import configure_logging

logger = configure_logging()

_ids = count(1)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Subscription:
    def __init__(self, queue_size: int):
        self.id = next(_ids)
        self.loop = _running_loop()
        self.queue: asyncio.Queue[PublicView] = asyncio.Queue(maxsize=max(1, queue_size))
        self.closed = False

    def offer(self, view: PublicView) -> None:
        """Queue `view`; must run on the subscription's loop."""
        if self.queue.full():
            self.queue.get_nowait()
            logger.debug("subscriber=%s slow, dropped oldest view", self.id)
        self.queue.put_nowait(view)

    def _offer_logged(self, view: PublicView) -> None:
        try:
            self.offer(view)
        except Exception:
            logger.exception("push to subscriber=%s failed", self.id)

    def send(self, view: PublicView) -> None:
        """offer() from any thread."""
        if self.loop is None or self.loop is _running_loop():
            self.offer(view)
        else:
            self.loop.call_soon_threadsafe(self._offer_logged, view)

    async def get(self) -> PublicView:
        return await self.queue.get()


class ChangeNotifier:
    def __init__(self, queue_size: int = 16):
        self.queue_size = queue_size
        self._subscribers: set[Subscription] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, current: Callable[[], PublicView]) -> Subscription:
        """
        Register a subscriber and queue `current()` for it first.

        `current` is evaluated under the same lock publish() takes, so a view
        committed concurrently is either in the initial view or pushed after it.
        """
        sub = Subscription(self.queue_size)
        with self._lock:
            sub.offer(current())
            self._subscribers.add(sub)
            total = len(self._subscribers)
        logger.info("subscriber=%s connected total=%s", sub.id, total)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.closed = True
        with self._lock:
            if sub not in self._subscribers:
                return
            self._subscribers.discard(sub)
            total = len(self._subscribers)
        logger.info("subscriber=%s disconnected total=%s", sub.id, total)

    def publish(self, view: PublicView) -> int:
        """Push `view` to every subscriber. Returns how many accepted it."""
        delivered = 0
        with self._lock:
            for sub in list(self._subscribers):
                if sub.closed:
                    self._subscribers.discard(sub)
                    continue
                try:
                    sub.send(view)
                    delivered += 1
                except Exception:
                    logger.exception("push to subscriber=%s failed", sub.id)
        return delivered
