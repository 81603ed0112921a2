"""
Health check endpoint.

Used by container health checks and by the views to tell "API down"
apart from "API up but DB unreachable". Also reports how many realtime
listeners are attached.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from zonemap.core import database as db_module
from zonemap.core.changes import change_hub

logger = logging.getLogger(__name__)
router = APIRouter()

VERSION = "0.1.0"


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    database: str  # "connected" | "disconnected"
    environment: str
    realtime_subscribers: int


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """
    Returns the liveness status of the API and its database connection.

    The API answers 200 even when the database is disconnected.
    """
    from zonemap.core.config import settings

    db_status = "disconnected"
    try:
        # Access via module reference so tests can patch db_module.db_client
        if db_module.db_client.client is not None:
            await db_module.db_client.client.admin.command("ping")
            db_status = "connected"
    except Exception as exc:
        logger.warning("DB ping failed: %s", exc)

    return HealthResponse(
        status="ok",
        version=VERSION,
        database=db_status,
        environment=settings.environment,
        realtime_subscribers=change_hub.subscriber_count,
    )
