"""
changes.py — Row-level change notifications pushed over the realtime feed.

Message format (JSON text frame):
  {
    "table":            "events",
    "change_kind":      "insert" | "update" | "delete",
    "old_record":       {...} | null,   // present for update / delete
    "new_record":       {...} | null,   // present for insert / update
    "commit_timestamp": "2026-10-19T18:00:00+00:00"
  }

Delivery is at-least-once: a reconnecting client may see the same
insert twice, so consumers must be idempotent on `id`.
"""

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

ChangeKind = Literal["insert", "update", "delete"]

TABLES = ("factions", "areas", "events")


class ChangeNotification(BaseModel):
    table: str
    change_kind: ChangeKind
    old_record: Optional[dict[str, Any]] = None
    new_record: Optional[dict[str, Any]] = None
    commit_timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @property
    def record_id(self) -> Optional[Any]:
        """Id of the affected row, whichever side of the change carries it."""
        for record in (self.new_record, self.old_record):
            if record and "id" in record:
                return record["id"]
        return None
