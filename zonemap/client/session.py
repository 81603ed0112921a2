"""
session.py — Wire the production collaborators from settings.

    async with open_services() as (tables, changes):
        view = MapView(tables, changes)
        await view.mount()
        ...
        await view.unmount()
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from zonemap.client.http_tables import HttpTableService
from zonemap.client.realtime import WebSocketChangeService
from zonemap.core.config import Settings, settings as default_settings


@asynccontextmanager
async def open_services(
    settings: Optional[Settings] = None,
) -> AsyncIterator[tuple[HttpTableService, WebSocketChangeService]]:
    cfg = settings or default_settings
    async with httpx.AsyncClient(base_url=cfg.api_base_url, timeout=10.0) as http:
        yield HttpTableService(http), WebSocketChangeService(cfg.realtime_url)
