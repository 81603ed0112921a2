"""
realtime.py — Live change feed over WebSocket.

Routes:
  WS /api/v1/realtime                     — every table
  WS /api/v1/realtime?tables=events,areas — only the listed tables

An unknown table name in `tables` closes the handshake with 1008.

HOW THE DATA FLOWS
──────────────────
1. A view loads its snapshot over the REST routes on mount.
2. It opens this WebSocket and receives one JSON text frame per row-level
   change (see zonemap.models.changes for the shape).
3. Write routes publish into the ChangeHub; this handler drains the
   subscriber queue into the socket.

The subscription is registered before the handshake completes, so a write
issued right after the client sees the connection open is never missed.
Client frames are read only to notice the disconnect; their content is
ignored.

  python -m websockets ws://localhost:8000/api/v1/realtime?tables=events
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from zonemap.core.changes import ChangeHub, ChangeSubscription, get_change_hub
from zonemap.models.changes import TABLES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/realtime", tags=["realtime"])


def _parse_tables(raw: Optional[str]) -> Optional[set[str]]:
    """Table filter from the query string; None means every table."""
    if not raw:
        return None
    tables = {t.strip() for t in raw.split(",") if t.strip()}
    unknown = tables - set(TABLES)
    if unknown:
        raise ValueError(f"Unknown table(s): {', '.join(sorted(unknown))}")
    return tables or None


async def _pump(websocket: WebSocket, sub: ChangeSubscription) -> None:
    while True:
        notification = await sub.get()
        await websocket.send_text(notification.model_dump_json())


@router.websocket("")
async def realtime_stream(
    websocket: WebSocket,
    tables: Optional[str] = Query(default=None),
    hub: ChangeHub = Depends(get_change_hub),
):
    try:
        table_filter = _parse_tables(tables)
    except ValueError as exc:
        logger.warning("Rejecting realtime client: %s", exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(exc))
        return

    sub = hub.subscribe(table_filter)
    await websocket.accept()
    logger.info("Realtime client connected (subscriber %d, %d open)", sub.id, hub.subscriber_count)

    pump = asyncio.create_task(_pump(websocket, sub))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        # Tab closed or view unmounted; normal, not an error
        logger.info("Realtime client disconnected (subscriber %d)", sub.id)
    except Exception as exc:
        logger.warning("Realtime socket error (subscriber %d): %s", sub.id, exc)
    finally:
        pump.cancel()
        try:
            await pump
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.warning("Realtime send failed (subscriber %d): %s", sub.id, exc)
        hub.unsubscribe(sub)
