"""
areas.py — Map area table routes.

Routes:
  GET    /api/v1/areas                 — all areas ordered by name
  GET    /api/v1/areas?expand=faction  — same, each joined with its dominant faction
  POST   /api/v1/areas                 — create an area (slug must be unique)
  PATCH  /api/v1/areas/{slug}          — partial update
  DELETE /api/v1/areas/{slug}          — delete

Areas are addressed by slug on write routes because the admin form
selects them by slug; ids stay internal to the join.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from zonemap.core.changes import ChangeHub, get_change_hub
from zonemap.core.config import settings
from zonemap.core.database import get_db, next_id
from zonemap.core.rate_limit import limiter
from zonemap.models.area import Area, AreaCreate, AreaUpdate, AreaWithFaction
from zonemap.models.changes import ChangeNotification
from zonemap.models.faction import Faction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/areas", tags=["areas"])

TABLE = "areas"

# Fields an update may clear with an explicit null; nulls elsewhere are ignored.
NULLABLE = {"faction_id", "image_url", "top_pos", "left_pos", "width_css", "ping_top", "ping_left"}


def _doc_to_area(doc: dict) -> Area:
    return Area(id=doc["_id"], **{k: v for k, v in doc.items() if k != "_id"})


async def _load_area(db, slug: str) -> dict:
    doc = await db[TABLE].find_one({"slug": slug})
    if not doc:
        raise HTTPException(status_code=404, detail=f"Area '{slug}' not found")
    return doc


@router.get("", response_model=list[AreaWithFaction])
async def list_areas(
    expand: Optional[str] = Query(default=None, description="Pass 'faction' to embed the dominant faction"),
    db=Depends(get_db),
):
    """Return every area ordered by name, optionally joined with its faction."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    if expand not in (None, "faction"):
        raise HTTPException(status_code=400, detail=f"Unsupported expand '{expand}'. Use 'faction'.")

    factions: dict[int, Faction] = {}
    if expand == "faction":
        # The factions table is a handful of rows; one scan beats a per-area lookup.
        async for doc in db["factions"].find({}):
            factions[doc["_id"]] = Faction(id=doc["_id"], **{k: v for k, v in doc.items() if k != "_id"})

    areas = []
    async for doc in db[TABLE].find({}).sort("name", 1):
        try:
            area = _doc_to_area(doc)
        except Exception as exc:
            logger.warning("Skipping malformed area doc %s: %s", doc.get("_id"), exc)
            continue
        faction = factions.get(area.faction_id) if area.faction_id is not None else None
        areas.append(AreaWithFaction(**area.model_dump(), faction=faction))
    return areas


@router.post("", response_model=Area, status_code=201)
@limiter.limit(settings.write_rate_limit)
async def create_area(
    request: Request,
    payload: AreaCreate,
    db=Depends(get_db),
    hub: ChangeHub = Depends(get_change_hub),
):
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    if await db[TABLE].find_one({"slug": payload.slug}):
        raise HTTPException(status_code=409, detail=f"Area '{payload.slug}' already exists")

    doc = {"_id": await next_id(db, TABLE), **payload.model_dump()}
    await db[TABLE].insert_one(doc)
    area = _doc_to_area(doc)
    logger.info("Area %s created", area.slug)

    hub.publish(ChangeNotification(table=TABLE, change_kind="insert", new_record=area.model_dump(mode="json")))
    return area


@router.patch("/{slug}", response_model=Area)
@limiter.limit(settings.write_rate_limit)
async def update_area(
    request: Request,
    slug: str,
    payload: AreaUpdate,
    db=Depends(get_db),
    hub: ChangeHub = Depends(get_change_hub),
):
    """Overwrite the fields present in the body. `faction_id: null` clears the dominant faction."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    old_doc = await _load_area(db, slug)
    changes = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE
    }
    if changes:
        await db[TABLE].update_one({"_id": old_doc["_id"]}, {"$set": changes})

    old_area = _doc_to_area(old_doc)
    area = old_area.model_copy(update=changes)
    logger.info("Area %s updated (%s)", slug, ", ".join(sorted(changes)) or "no fields")

    hub.publish(ChangeNotification(
        table=TABLE,
        change_kind="update",
        old_record=old_area.model_dump(mode="json"),
        new_record=area.model_dump(mode="json"),
    ))
    return area


@router.delete("/{slug}", status_code=204)
@limiter.limit(settings.write_rate_limit)
async def delete_area(
    request: Request,
    slug: str,
    db=Depends(get_db),
    hub: ChangeHub = Depends(get_change_hub),
):
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    old_doc = await _load_area(db, slug)
    await db[TABLE].delete_one({"_id": old_doc["_id"]})
    logger.info("Area %s deleted", slug)

    hub.publish(ChangeNotification(
        table=TABLE, change_kind="delete", old_record=_doc_to_area(old_doc).model_dump(mode="json"),
    ))
    return Response(status_code=204)
