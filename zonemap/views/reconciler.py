"""
reconciler.py — Keep a local event list consistent with the events table.

The list is seeded by a full snapshot (newest first) and then patched by
row-level change notifications:

    insert  → prepend, unless the id was already seen (duplicate delivery)
    update  → replace in place, keeping the list position
    delete  → remove

The list is never re-sorted after the snapshot. A very late insert for an
old row therefore shows up at the top; that is accepted.

`seen_ids` always equals the set of ids in `events`. Only apply_insert()
with a new id fires the arrival callback; snapshots never do.
"""

import logging
from typing import Callable, Optional

from pydantic import ValidationError

from zonemap.client.interfaces import TableService, TableServiceError
from zonemap.models.changes import ChangeNotification
from zonemap.models.event import GameEvent
from zonemap.views.scope import ViewScope

logger = logging.getLogger(__name__)

EVENTS_TABLE = "events"


class EventStreamReconciler:
    def __init__(
        self,
        tables: TableService,
        on_arrival: Optional[Callable[[GameEvent], None]] = None,
        scope: Optional[ViewScope] = None,
    ):
        self._tables = tables
        self._on_arrival = on_arrival
        self.scope = scope or ViewScope()
        self._events: list[GameEvent] = []
        self._seen_ids: set[int] = set()
        self._snapshot_generation = 0

    @property
    def events(self) -> list[GameEvent]:
        return list(self._events)

    @property
    def seen_ids(self) -> frozenset[int]:
        return frozenset(self._seen_ids)

    def get(self, event_id: int) -> Optional[GameEvent]:
        return next((ev for ev in self._events if ev.id == event_id), None)

    # ── Snapshot ──────────────────────────────────────────────────────────────

    async def load_snapshot(self) -> bool:
        """
        Replace the list with the current table contents.

        Returns False (store untouched) when the fetch fails, when a newer
        snapshot was issued while this one was in flight, or when the
        owning view was torn down meanwhile.
        """
        self._snapshot_generation += 1
        generation = self._snapshot_generation
        scope = self.scope

        try:
            rows = await self._tables.select(EVENTS_TABLE, order_by="created_at", descending=True)
            events = [GameEvent.model_validate(row) for row in rows]
        except (TableServiceError, ValidationError) as exc:
            logger.warning("Event snapshot failed, keeping %d cached events: %s", len(self._events), exc)
            return False

        if not scope.alive:
            logger.debug("Discarding event snapshot for a closed view")
            return False
        if generation != self._snapshot_generation:
            logger.debug("Discarding stale event snapshot %d (latest is %d)", generation, self._snapshot_generation)
            return False

        self.replace(events)
        return True

    def replace(self, events: list[GameEvent]) -> None:
        # Last occurrence of a duplicated id wins; the snapshot is authoritative.
        unique: dict[int, GameEvent] = {}
        for ev in events:
            unique[ev.id] = ev
        self._events = [ev for ev in events if unique[ev.id] is ev]
        self._seen_ids = set(unique)

    # ── Incremental changes ───────────────────────────────────────────────────

    def apply_insert(self, record: GameEvent) -> bool:
        if record.id in self._seen_ids:
            logger.debug("Ignoring duplicate insert for event %d", record.id)
            return False
        self._seen_ids.add(record.id)
        self._events.insert(0, record)
        if self._on_arrival is not None:
            self._on_arrival(record)
        return True

    def apply_update(self, record: GameEvent) -> bool:
        for index, ev in enumerate(self._events):
            if ev.id == record.id:
                self._events[index] = record
                return True
        # Update raced ahead of its insert; the next snapshot will carry it.
        return False

    def apply_delete(self, event_id: int) -> bool:
        if event_id not in self._seen_ids:
            return False
        self._seen_ids.discard(event_id)
        self._events = [ev for ev in self._events if ev.id != event_id]
        return True

    def apply_notification(self, notification: ChangeNotification) -> bool:
        """
        Route an events-table notification to the matching apply_* call.

        Returns False for any other table so the caller can decide what to
        do with it. Malformed records are logged and dropped.
        """
        if notification.table != EVENTS_TABLE:
            return False

        try:
            if notification.change_kind == "insert" and notification.new_record:
                self.apply_insert(GameEvent.model_validate(notification.new_record))
            elif notification.change_kind == "update" and notification.new_record:
                self.apply_update(GameEvent.model_validate(notification.new_record))
            elif notification.change_kind == "delete" and notification.record_id is not None:
                self.apply_delete(int(notification.record_id))
            else:
                logger.warning("Event %s notification without a record", notification.change_kind)
        except (ValidationError, TypeError, ValueError) as exc:
            logger.warning("Dropping malformed event %s notification: %s", notification.change_kind, exc)
        return True
