"""
factions.py — Faction table routes.

Routes:
  GET   /api/v1/factions       — all factions ordered by name
  PATCH /api/v1/factions/{id}  — partial update (reputation slider)

Reputation is validated to [0, 100]; out-of-range values get a 422.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from zonemap.core.changes import ChangeHub, get_change_hub
from zonemap.core.config import settings
from zonemap.core.database import get_db
from zonemap.core.rate_limit import limiter
from zonemap.models.changes import ChangeNotification
from zonemap.models.faction import Faction, FactionUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/factions", tags=["factions"])

TABLE = "factions"


def _doc_to_faction(doc: dict) -> Faction:
    return Faction(id=doc["_id"], **{k: v for k, v in doc.items() if k != "_id"})


@router.get("", response_model=list[Faction])
async def list_factions(db=Depends(get_db)):
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    factions = []
    async for doc in db[TABLE].find({}).sort("name", 1):
        try:
            factions.append(_doc_to_faction(doc))
        except Exception as exc:
            logger.warning("Skipping malformed faction doc %s: %s", doc.get("_id"), exc)
    return factions


@router.patch("/{faction_id}", response_model=Faction)
@limiter.limit(settings.write_rate_limit)
async def update_faction(
    request: Request,
    faction_id: int,
    payload: FactionUpdate,
    db=Depends(get_db),
    hub: ChangeHub = Depends(get_change_hub),
):
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    old_doc = await db[TABLE].find_one({"_id": faction_id})
    if not old_doc:
        raise HTTPException(status_code=404, detail="Faction not found")

    changes = payload.model_dump(exclude_none=True)
    if changes:
        await db[TABLE].update_one({"_id": faction_id}, {"$set": changes})

    old_faction = _doc_to_faction(old_doc)
    faction = old_faction.model_copy(update=changes)
    logger.debug("Faction %s reputation %d -> %d", faction.slug, old_faction.reputation, faction.reputation)

    hub.publish(ChangeNotification(
        table=TABLE,
        change_kind="update",
        old_record=old_faction.model_dump(mode="json"),
        new_record=faction.model_dump(mode="json"),
    ))
    return faction
