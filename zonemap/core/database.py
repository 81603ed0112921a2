"""
MongoDB connection management using Motor (async driver).

A single DatabaseClient instance is shared across all requests via a
module-level singleton. FastAPI's dependency injection (get_db) gives
routes access without importing the singleton directly.

Every game table (factions, areas, events) is one collection. Rows use
integer ids stored as the document `_id`, allocated from the `counters`
collection so that event ids grow with creation time.

The connection is opened in FastAPI's lifespan (startup) and closed
on shutdown.
"""

import logging
import re

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument

from zonemap.core.config import settings

logger = logging.getLogger(__name__)

COUNTERS_COLLECTION = "counters"


class DatabaseClient:
    """
    Holds the Motor client and selected database.

    Tests replace .client and .db directly (monkeypatching a class
    attribute is cleaner than replacing module-level vars).
    """

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None


# Module-level singleton: all app code references this object
db_client = DatabaseClient()


async def connect_to_mongo() -> None:
    """
    Create the MongoDB connection and validate it with a ping.

    Called once at app startup (via lifespan). If MongoDB is unavailable
    the API still starts; table routes answer 503 and the health check
    reports "disconnected".
    """
    logger.info("Connecting to MongoDB at %s", _redact_uri(settings.mongo_uri))
    try:
        kwargs = {"serverSelectionTimeoutMS": 5000}
        if settings.mongo_uri.startswith("mongodb+srv://"):
            # Atlas TLS needs a CA bundle the system store may lack.
            kwargs["tlsCAFile"] = certifi.where()
        db_client.client = AsyncIOMotorClient(settings.mongo_uri, **kwargs)
        db_client.db = db_client.client[settings.mongo_db_name]
        await db_client.client.admin.command("ping")
        logger.info("MongoDB connection established (db: %s)", settings.mongo_db_name)
    except Exception as exc:
        logger.warning(
            "MongoDB unavailable at startup: %s. "
            "API running in degraded mode, table endpoints will fail.",
            exc,
        )
        db_client.client = None
        db_client.db = None


async def close_mongo_connection() -> None:
    """Close the MongoDB connection gracefully on app shutdown."""
    if db_client.client is not None:
        db_client.client.close()
        logger.info("MongoDB connection closed")


def get_db() -> AsyncIOMotorDatabase | None:
    """
    FastAPI dependency: inject the database into route handlers.

    Returns None when MongoDB is unavailable so routes can answer 503
    instead of crashing.

    Usage in a route:
        async def my_route(db = Depends(get_db)):
            if db is None:
                raise HTTPException(status_code=503, detail="Database unavailable")
    """
    return db_client.db


async def next_id(db, table: str) -> int:
    """Allocate the next integer id for *table* (1, 2, 3, ...)."""
    counter = await db[COUNTERS_COLLECTION].find_one_and_update(
        {"_id": table},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return int(counter["seq"])


def _redact_uri(uri: str) -> str:
    """Strip credentials from URI before logging."""
    return re.sub(r"://[^:]+:[^@]+@", "://<redacted>@", uri)
