#!/usr/bin/env python3
"""
seed_db.py — Populate MongoDB with a playable zone for local development.

Inserts:
  - Factions with starting reputation
  - Map areas (geometry + lore card), one of them contested
  - A welcome event in the log
  - Counters so new rows continue the id sequence
  - Required indexes

Usage:
    python scripts/seed_db.py

Requires:
    pip install -e .
    MongoDB running locally (or set MONGO_URI / MONGO_DB_NAME)

Safe to re-run: drops the game collections first, then re-inserts.
"""

import asyncio
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorClient

from zonemap.core.config import settings
from zonemap.core.database import COUNTERS_COLLECTION
from zonemap.models.changes import TABLES
from zonemap.models.faction import FactionCreate

FACTIONS = [
    {"_id": 1, "slug": "dever", "name": "Dever", "reputation": 50},
    {"_id": 2, "slug": "liberdade", "name": "Liberdade", "reputation": 50},
    {"_id": 3, "slug": "monolito", "name": "Monolito", "reputation": 10},
    {"_id": 4, "slug": "ecologistas", "name": "Ecologistas", "reputation": 70},
]

AREAS = [
    {
        "_id": 1, "slug": "cordao", "name": "Cordão", "faction_id": None, "danger": "BAIXO",
        "description": "Posto militar na entrada da Zona. Soldados atiram primeiro.",
        "image_url": None, "top_pos": "72%", "left_pos": "8%", "width_css": "18%", "z_index": 2,
        "ping_top": "80%", "ping_left": "16%",
    },
    {
        "_id": 2, "slug": "lixao", "name": "Lixão", "faction_id": 2, "danger": "MÉDIO",
        "description": "Cemitério de veículos irradiados. ||Frequência 104.2|| ativa à noite.",
        "image_url": None, "top_pos": "55%", "left_pos": "30%", "width_css": "16%", "z_index": 3,
        "ping_top": "62%", "ping_left": "37%",
    },
    {
        "_id": 3, "slug": "agroprom", "name": "Instituto Agroprom", "faction_id": 1, "danger": "ALTO",
        "description": "Laboratórios subterrâneos. O Dever guarda a entrada.",
        "image_url": None, "top_pos": "40%", "left_pos": "12%", "width_css": "14%", "z_index": 3,
        "ping_top": None, "ping_left": None,
    },
    {
        "_id": 4, "slug": "duga", "name": "Radar Duga", "faction_id": 3, "danger": "EXTREMO",
        "description": "A antena ainda transmite. ||NÃO SE APROXIME||",
        "image_url": None, "top_pos": "8%", "left_pos": "60%", "width_css": "20%", "z_index": 4,
        "ping_top": "14%", "ping_left": "70%",
    },
]

WELCOME_EVENT = {
    "_id": 1, "active": True, "type": "info", "title": "INFO", "color": "#33ff33",
    "message": "Rede de rádio da Zona online. Aguardando transmissões.",
    "top_pos": None, "left_pos": None, "location_name": None,
}


async def seed() -> None:
    print("Connecting to MongoDB...")
    client = AsyncIOMotorClient(settings.mongo_uri, serverSelectionTimeoutMS=5000)
    db = client[settings.mongo_db_name]

    try:
        # Verify connection
        await client.admin.command("ping")
        print("Connected.")

        # ─── Clean up previous data ───────────────────────────────────────────
        for table in (*TABLES, COUNTERS_COLLECTION):
            await db.drop_collection(table)
        print("Dropped game collections.")

        # ─── Insert rows ──────────────────────────────────────────────────────
        factions = [{"_id": f["_id"], **FactionCreate.model_validate(f).model_dump()} for f in FACTIONS]
        await db.factions.insert_many(factions)
        await db.areas.insert_many(AREAS)
        await db.events.insert_one({**WELCOME_EVENT, "created_at": datetime.now(timezone.utc)})
        print(f"Inserted {len(FACTIONS)} factions, {len(AREAS)} areas, 1 event.")

        await db[COUNTERS_COLLECTION].insert_many([
            {"_id": "factions", "seq": len(FACTIONS)},
            {"_id": "areas", "seq": len(AREAS)},
            {"_id": "events", "seq": 1},
        ])

        # ─── Ensure indexes exist ─────────────────────────────────────────────
        await db.areas.create_index("slug", unique=True)
        await db.areas.create_index("name")
        await db.factions.create_index("name")
        await db.events.create_index([("created_at", -1)])
        print("Indexes ensured.")

        print("\nSeed complete! Areas:")
        async for doc in db.areas.find({}).sort("name", 1):
            print(f"  {doc['slug']}: {doc['name']} (faction {doc['faction_id']})")

    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(seed())
