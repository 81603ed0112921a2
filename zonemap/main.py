"""
Zone Map API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers the table and realtime
route groups, and manages the MongoDB connection lifecycle.

Extension points:
  - Add new tables with app.include_router() below and list them in
    zonemap.models.changes.TABLES so the realtime feed accepts them
  - Change startup behaviour in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from zonemap.core import database as db_module
from zonemap.core.config import settings
from zonemap.core.rate_limit import limiter
from zonemap.routes.areas import router as areas_router
from zonemap.routes.events import router as events_router
from zonemap.routes.factions import router as factions_router
from zonemap.routes.health import VERSION
from zonemap.routes.health import router as health_router
from zonemap.routes.realtime import router as realtime_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage startup and shutdown lifecycle.

    Code before `yield` runs on startup; code after runs on shutdown.
    The database hooks are looked up on the module so tests can patch them.
    """
    logger.info("Starting Zone Map API (env: %s)", settings.environment)
    await db_module.connect_to_mongo()
    yield
    logger.info("Shutting down Zone Map API")
    await db_module.close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Zone Map API",
    description="Factions, areas and events for the tactical zone map, with a live change feed.",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Routes opt-in with @limiter.limit(...) + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])

app.include_router(factions_router)
app.include_router(areas_router)
app.include_router(events_router)

app.include_router(realtime_router)


@app.get("/", tags=["root"])
async def root():
    """API root: basic metadata."""
    return {
        "name": "Zone Map API",
        "version": VERSION,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
        "realtime": "/api/v1/realtime",
    }
