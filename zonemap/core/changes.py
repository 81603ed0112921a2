"""
In-process change feed.

Write routes publish one ChangeNotification per affected row; every open
realtime WebSocket holds a ChangeSubscription and drains it. Publishing
never awaits, so a write completes regardless of how many clients are
listening or how slow they are.

    hub = get_change_hub()
    sub = hub.subscribe({"events"})
    try:
        notification = await sub.get()
    finally:
        hub.unsubscribe(sub)
"""

import asyncio
import itertools
import logging
from typing import Iterable, Optional

from zonemap.core.config import settings
from zonemap.models.changes import ChangeNotification

logger = logging.getLogger(__name__)


class ChangeSubscription:
    """One listener's bounded queue plus its table filter (None = all tables)."""

    def __init__(self, sub_id: int, tables: Optional[frozenset[str]], maxsize: int):
        self.id = sub_id
        self.tables = tables
        self.queue: asyncio.Queue[ChangeNotification] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def matches(self, notification: ChangeNotification) -> bool:
        return self.tables is None or notification.table in self.tables

    async def get(self) -> ChangeNotification:
        return await self.queue.get()


class ChangeHub:
    def __init__(self, queue_size: Optional[int] = None):
        self._queue_size = queue_size or settings.realtime_queue_size
        self._subscriptions: dict[int, ChangeSubscription] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, tables: Optional[Iterable[str]] = None) -> ChangeSubscription:
        table_filter = frozenset(tables) if tables else None
        sub = ChangeSubscription(next(self._ids), table_filter, self._queue_size)
        self._subscriptions[sub.id] = sub
        logger.debug("Realtime subscriber %d attached (tables: %s)", sub.id, table_filter or "all")
        return sub

    def unsubscribe(self, sub: ChangeSubscription) -> None:
        if self._subscriptions.pop(sub.id, None) is not None:
            logger.debug("Realtime subscriber %d detached", sub.id)

    def publish(self, notification: ChangeNotification) -> int:
        """Queue *notification* for every matching subscriber. Returns the fan-out count."""
        delivered = 0
        for sub in list(self._subscriptions.values()):
            if not sub.matches(notification):
                continue
            try:
                sub.queue.put_nowait(notification)
                delivered += 1
            except asyncio.QueueFull:
                sub.dropped += 1
                logger.warning(
                    "Realtime subscriber %d is %d notifications behind; dropping %s on %s",
                    sub.id, sub.queue.qsize(), notification.change_kind, notification.table,
                )
        return delivered


change_hub = ChangeHub()


def get_change_hub() -> ChangeHub:
    """FastAPI dependency; override in tests with app.dependency_overrides."""
    return change_hub
