"""
event.py — Pydantic schemas for game events (logs and map pings).

GameEvent    — a row of the events table
EventCreate  — POST body
EventUpdate  — PATCH body

An event is a map ping only when it carries a position; the position is
copied from an area at write time. Events without one are log-only.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, model_validator

DEFAULT_TITLE = "INFO"
DEFAULT_COLOR = "#33ff33"

_HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class GameEvent(BaseModel):
    id: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    active: bool = True
    type: str = "info"            # legacy column, the UI shows `title`
    title: str = DEFAULT_TITLE    # e.g. "PROTOCOLO 9"
    color: str = DEFAULT_COLOR
    message: str = ""
    top_pos: Optional[str] = None
    left_pos: Optional[str] = None
    location_name: Optional[str] = None

    @property
    def is_ping(self) -> bool:
        return self.active and bool(self.top_pos)


class _PositionMixin(BaseModel):
    @model_validator(mode="after")
    def _position_is_complete(self):
        if (self.top_pos is None) != (self.left_pos is None):
            raise ValueError("top_pos and left_pos must be set together")
        return self


class EventCreate(_PositionMixin):
    title: str = Field(default=DEFAULT_TITLE, min_length=1, max_length=80)
    color: str = Field(default=DEFAULT_COLOR, pattern=_HEX_COLOR)
    message: str = Field(min_length=1, max_length=5000)
    active: bool = True
    type: str = "info"
    top_pos: Optional[str] = None
    left_pos: Optional[str] = None
    location_name: Optional[str] = None


class EventUpdate(_PositionMixin):
    """Partial update: only fields present in the request body are written."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=80)
    color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)
    message: Optional[str] = Field(default=None, min_length=1, max_length=5000)
    active: Optional[bool] = None
    top_pos: Optional[str] = None
    left_pos: Optional[str] = None
    location_name: Optional[str] = None
