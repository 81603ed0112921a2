"""
faction.py — Pydantic schemas for factions.

Faction        — a row of the factions table
FactionCreate  — seed rows (there is no public create route)
FactionUpdate  — PATCH body (the admin only ever moves reputation)
"""

from typing import Optional

from pydantic import BaseModel, Field

REPUTATION_MIN = 0
REPUTATION_MAX = 100


def clamp_reputation(value: int) -> int:
    """Clamp *value* into the documented reputation range."""
    return max(REPUTATION_MIN, min(REPUTATION_MAX, int(value)))


class Faction(BaseModel):
    id: int
    slug: str
    name: str
    reputation: int = Field(default=50, ge=REPUTATION_MIN, le=REPUTATION_MAX)


class FactionCreate(BaseModel):
    """Used by the seed script; there is no public create route."""
    slug: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=120)
    reputation: int = Field(default=50, ge=REPUTATION_MIN, le=REPUTATION_MAX)


class FactionUpdate(BaseModel):
    """Partial update: only provided fields are changed."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    reputation: Optional[int] = Field(default=None, ge=REPUTATION_MIN, le=REPUTATION_MAX)
