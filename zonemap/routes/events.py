"""
events.py — Game event (log / ping) table routes.

Routes:
  GET    /api/v1/events        — full snapshot, newest first
  POST   /api/v1/events        — create an event
  PATCH  /api/v1/events/{id}   — partial update
  DELETE /api/v1/events/{id}   — permanent delete (no soft-delete)

Every successful write publishes a ChangeNotification on the `events`
table so open map pages update without a reload.

  curl http://localhost:8000/api/v1/events
  curl -X POST http://localhost:8000/api/v1/events \\
    -H 'Content-Type: application/json' \\
    -d '{"title": "ALERTA", "color": "#ff3333", "message": "Anomalia detectada"}'
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from zonemap.core.changes import ChangeHub, get_change_hub
from zonemap.core.config import settings
from zonemap.core.database import get_db, next_id
from zonemap.core.rate_limit import limiter
from zonemap.models.changes import ChangeNotification
from zonemap.models.event import EventCreate, EventUpdate, GameEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/events", tags=["events"])

TABLE = "events"

# Fields an update may clear with an explicit null; nulls elsewhere are ignored.
NULLABLE = {"top_pos", "left_pos", "location_name"}


def _doc_to_event(doc: dict) -> GameEvent:
    fields = {k: v for k, v in doc.items() if k != "_id"}
    created_at = fields.get("created_at")
    if isinstance(created_at, datetime) and created_at.tzinfo is None:
        # Motor hands back naive datetimes that are UTC
        fields["created_at"] = created_at.replace(tzinfo=timezone.utc)
    return GameEvent(id=doc["_id"], **fields)


async def _load_event(db, event_id: int) -> dict:
    doc = await db[TABLE].find_one({"_id": event_id})
    if not doc:
        raise HTTPException(status_code=404, detail="Event not found")
    return doc


@router.get("", response_model=list[GameEvent])
async def list_events(db=Depends(get_db)):
    """Return every event ordered by creation time, most recent first."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    events = []
    async for doc in db[TABLE].find({}).sort("created_at", -1):
        try:
            events.append(_doc_to_event(doc))
        except Exception as exc:
            logger.warning("Skipping malformed event doc %s: %s", doc.get("_id"), exc)
    return events


@router.post("", response_model=GameEvent, status_code=201)
@limiter.limit(settings.write_rate_limit)
async def create_event(
    request: Request,
    payload: EventCreate,
    db=Depends(get_db),
    hub: ChangeHub = Depends(get_change_hub),
):
    """Create an event. Only events that carry a position show up as map pings."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    doc = {
        "_id": await next_id(db, TABLE),
        **payload.model_dump(),
        "created_at": datetime.now(tz=timezone.utc),
    }
    await db[TABLE].insert_one(doc)
    event = _doc_to_event(doc)
    logger.info("Event %d created: [%s] %s", event.id, event.title, event.location_name or "log-only")

    hub.publish(ChangeNotification(
        table=TABLE, change_kind="insert", new_record=event.model_dump(mode="json"),
    ))
    return event


@router.patch("/{event_id}", response_model=GameEvent)
@limiter.limit(settings.write_rate_limit)
async def update_event(
    request: Request,
    event_id: int,
    payload: EventUpdate,
    db=Depends(get_db),
    hub: ChangeHub = Depends(get_change_hub),
):
    """Overwrite the fields present in the body; explicit nulls clear the ping position."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    old_doc = await _load_event(db, event_id)
    changes = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE
    }
    if changes:
        await db[TABLE].update_one({"_id": event_id}, {"$set": changes})

    old_event = _doc_to_event(old_doc)
    event = old_event.model_copy(update=changes)
    hub.publish(ChangeNotification(
        table=TABLE,
        change_kind="update",
        old_record=old_event.model_dump(mode="json"),
        new_record=event.model_dump(mode="json"),
    ))
    return event


@router.delete("/{event_id}", status_code=204)
@limiter.limit(settings.write_rate_limit)
async def delete_event(
    request: Request,
    event_id: int,
    db=Depends(get_db),
    hub: ChangeHub = Depends(get_change_hub),
):
    """Delete an event for good; subscribers drop it from their local lists."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    old_doc = await _load_event(db, event_id)
    await db[TABLE].delete_one({"_id": event_id})
    logger.info("Event %d deleted", event_id)

    hub.publish(ChangeNotification(
        table=TABLE, change_kind="delete", old_record=_doc_to_event(old_doc).model_dump(mode="json"),
    ))
    return Response(status_code=204)
