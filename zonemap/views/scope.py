"""
scope.py — Lifetime of a mounted view.

Every asynchronous operation a view starts captures the view's scope when
it is issued and checks `scope.alive` before touching view state with the
result. Background tasks spawned by the view are tracked here and
cancelled on close(), so nothing lands in a view after unmount.
"""

import asyncio
import logging
from typing import Coroutine

logger = logging.getLogger(__name__)


class ViewScope:
    def __init__(self) -> None:
        self._alive = True
        self._tasks: set[asyncio.Task] = set()

    @property
    def alive(self) -> bool:
        return self._alive

    def spawn(self, coro: Coroutine) -> "asyncio.Task | None":
        """Run *coro* in the background for as long as the scope lives."""
        if not self._alive:
            coro.close()
            return None
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def close(self) -> None:
        self._alive = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.debug("Cancelled %d pending view task(s)", len(tasks))
