"""
area.py — Pydantic schemas for map areas.

Area            — a row of the areas table (map piece + lore card)
AreaWithFaction — Area joined with its dominant faction (map view)
AreaCreate      — POST body
AreaUpdate      — PATCH body, keyed by slug

Geometry fields are CSS strings ("42%", "310px") because the map page
positions pieces absolutely over a background image.
"""

from typing import Optional

from pydantic import BaseModel, Field

from zonemap.models.faction import Faction


class Area(BaseModel):
    id: int
    slug: str
    name: str
    description: str = ""
    danger: str = ""
    faction_id: Optional[int] = None
    image_url: Optional[str] = None

    # ── Map geometry ─────────────────────────────────────────────────────────
    top_pos: Optional[str] = None
    left_pos: Optional[str] = None
    width_css: Optional[str] = None
    z_index: int = 1

    # Where pings for this area are drawn; falls back to top_pos / left_pos.
    ping_top: Optional[str] = None
    ping_left: Optional[str] = None

    def ping_position(self) -> tuple[Optional[str], Optional[str]]:
        return (self.ping_top or self.top_pos, self.ping_left or self.left_pos)


class AreaWithFaction(Area):
    faction: Optional[Faction] = None


class AreaCreate(BaseModel):
    slug: str = Field(min_length=1, max_length=64, pattern=r"^[a-z0-9][a-z0-9_-]*$")
    name: str = Field(min_length=1, max_length=120)
    description: str = Field(default="", max_length=20_000)
    danger: str = Field(default="", max_length=40)
    faction_id: Optional[int] = None
    image_url: Optional[str] = None
    top_pos: Optional[str] = None
    left_pos: Optional[str] = None
    width_css: Optional[str] = None
    z_index: int = 1
    ping_top: Optional[str] = None
    ping_left: Optional[str] = None


class AreaUpdate(BaseModel):
    """
    Partial update. Omitted fields are left untouched. An explicit null
    clears an optional field (faction_id=None means "no dominant faction")
    and is ignored on required ones.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=20_000)
    danger: Optional[str] = Field(default=None, max_length=40)
    faction_id: Optional[int] = None
    image_url: Optional[str] = None
    top_pos: Optional[str] = None
    left_pos: Optional[str] = None
    width_css: Optional[str] = None
    z_index: Optional[int] = None
    ping_top: Optional[str] = None
    ping_left: Optional[str] = None
