"""
realtime.py — ChangeService over the /api/v1/realtime WebSocket.

One connection per subscription, drained by a background task that
validates each frame into a ChangeNotification and hands it to the
callback (sync or async). There is no reconnect: when the socket drops
the subscription ends and the view keeps whatever it last rendered.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional
from urllib.parse import urlencode

import websockets
from pydantic import ValidationError

from zonemap.client.interfaces import ChangeCallback, ChangeServiceError
from zonemap.models.changes import ChangeNotification

logger = logging.getLogger(__name__)


class RealtimeSubscription:
    """Handle returned by WebSocketChangeService.subscribe()."""

    def __init__(self, connection: Any, task: "asyncio.Task[None]"):
        self.connection = connection
        self.task = task

    @property
    def active(self) -> bool:
        return not self.task.done()


class WebSocketChangeService:
    def __init__(
        self,
        url: str,
        connect: Callable[[str], Awaitable[Any]] = websockets.connect,
    ):
        self._url = url
        self._connect = connect

    def _subscription_url(self, tables: Optional[Iterable[str]]) -> str:
        if not tables:
            return self._url
        return f"{self._url}?{urlencode({'tables': ','.join(sorted(tables))})}"

    async def subscribe(
        self,
        callback: ChangeCallback,
        tables: Optional[Iterable[str]] = None,
    ) -> RealtimeSubscription:
        url = self._subscription_url(tables)
        try:
            connection = await self._connect(url)
        except (OSError, websockets.WebSocketException) as exc:
            raise ChangeServiceError(f"Could not open change feed at {url}: {exc}") from exc

        task = asyncio.create_task(self._listen(connection, callback))
        logger.info("Change feed attached: %s", url)
        return RealtimeSubscription(connection, task)

    async def unsubscribe(self, handle: RealtimeSubscription) -> None:
        handle.task.cancel()
        try:
            await handle.task
        except asyncio.CancelledError:
            pass
        await handle.connection.close()
        logger.info("Change feed detached")

    @staticmethod
    async def _listen(connection: Any, callback: ChangeCallback) -> None:
        try:
            async for raw in connection:
                try:
                    notification = ChangeNotification.model_validate_json(raw)
                except ValidationError as exc:
                    logger.warning("Ignoring malformed change frame: %s", exc)
                    continue
                try:
                    result = callback(notification)
                    if inspect.isawaitable(result):
                        await result
                except Exception:
                    # One bad handler run must not end the subscription
                    logger.exception("Change callback failed for %s on %s",
                                     notification.change_kind, notification.table)
        except websockets.ConnectionClosed as exc:
            logger.warning("Change feed closed by server: %s", exc)
