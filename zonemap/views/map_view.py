"""
map_view.py — Public tactical map.

Holds the areas (joined with their factions) and an EventStreamReconciler
for the event log. On mount it loads both snapshots and attaches to the
change feed for every table:

  events table      → applied incrementally by the reconciler
  any other table   → full reload (areas and factions are not mirrored
                      incrementally; a reload is cheap and always right)

A genuinely new event opens the history panel and emits the "ping" cue.
UI clicks emit the "click" cue. Cues go to the `on_sound` callback; this
module never plays audio itself.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from pydantic import ValidationError

from zonemap.client.interfaces import ChangeService, ChangeServiceError, TableService, TableServiceError
from zonemap.models.area import AreaWithFaction
from zonemap.models.changes import ChangeNotification
from zonemap.models.event import GameEvent
from zonemap.views.formatting import TextSegment, map_reputation_color, split_transmission
from zonemap.views.reconciler import EventStreamReconciler
from zonemap.views.scope import ViewScope

logger = logging.getLogger(__name__)

CONTESTED_TERRITORY = "TERRITÓRIO CONTESTADO"

SOUND_CLICK = "click"
SOUND_PING = "ping"


@dataclass(frozen=True)
class MapPing:
    event_id: int
    top: str
    left: str
    color: str


@dataclass(frozen=True)
class AreaPanel:
    name: str
    domain: str
    danger: str
    reputation: int
    reputation_color: str
    description: list[TextSegment]


@dataclass(frozen=True)
class LogEntry:
    event_id: int
    color: str
    title: list[TextSegment]
    time: str
    message: list[TextSegment]
    location: Optional[str]


class MapView:
    def __init__(
        self,
        tables: TableService,
        changes: ChangeService,
        on_sound: Optional[Callable[[str], None]] = None,
    ):
        self._tables = tables
        self._changes = changes
        self._on_sound = on_sound
        self._scope = ViewScope()
        self._subscription = None
        self._areas_generation = 0

        self.areas: list[AreaWithFaction] = []
        self.selected_area: Optional[AreaWithFaction] = None
        self.is_history_open = False
        self.reconciler = EventStreamReconciler(tables, on_arrival=self._on_new_event, scope=self._scope)

    @property
    def events(self) -> list[GameEvent]:
        return self.reconciler.events

    @property
    def mounted(self) -> bool:
        return self._subscription is not None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def mount(self) -> None:
        if self.mounted:
            return
        if not self._scope.alive:
            self._scope = ViewScope()
            self.reconciler.scope = self._scope
        scope = self._scope

        await self.reload()
        if not scope.alive:
            return
        try:
            self._subscription = await self._changes.subscribe(self.handle_notification)
        except ChangeServiceError as exc:
            # No live updates for this session; the snapshot stays on screen.
            logger.warning("Map running without live updates: %s", exc)

    async def unmount(self) -> None:
        subscription, self._subscription = self._subscription, None
        try:
            if subscription is not None:
                await self._changes.unsubscribe(subscription)
        finally:
            await self._scope.close()

    # ── Data ──────────────────────────────────────────────────────────────────

    async def reload(self) -> None:
        """Fetch areas and events; a failed fetch keeps what is on screen."""
        await asyncio.gather(self._load_areas(), self.reconciler.load_snapshot())

    async def _load_areas(self) -> bool:
        self._areas_generation += 1
        generation = self._areas_generation
        scope = self._scope

        try:
            rows = await self._tables.select("areas", order_by="name", expand="faction")
            areas = [AreaWithFaction.model_validate(row) for row in rows]
        except (TableServiceError, ValidationError) as exc:
            logger.warning("Area snapshot failed, keeping %d cached areas: %s", len(self.areas), exc)
            return False

        if not scope.alive or generation != self._areas_generation:
            return False

        self.areas = areas
        if self.selected_area is not None:
            self.selected_area = next((a for a in areas if a.id == self.selected_area.id), None)
        return True

    async def handle_notification(self, notification: ChangeNotification) -> None:
        if not self._scope.alive:
            return
        if self.reconciler.apply_notification(notification):
            return
        logger.debug("%s change on %s, reloading map", notification.change_kind, notification.table)
        self._scope.spawn(self.reload())

    def _on_new_event(self, event: GameEvent) -> None:
        self.is_history_open = True
        self._play(SOUND_PING)

    def _play(self, cue: str) -> None:
        if self._on_sound is None:
            return
        try:
            self._on_sound(cue)
        except Exception as exc:
            # Sound is decoration; a failing player must not break the view
            logger.debug("Sound cue %r failed: %s", cue, exc)

    # ── Interaction ───────────────────────────────────────────────────────────

    def select_area(self, area_id: int) -> Optional[AreaWithFaction]:
        """Toggle the info panel for an area; clicking the open area closes it."""
        self._play(SOUND_CLICK)
        if self.selected_area is not None and self.selected_area.id == area_id:
            self.selected_area = None
        else:
            self.selected_area = next((a for a in self.areas if a.id == area_id), None)
        return self.selected_area

    def close_area_panel(self) -> None:
        self.selected_area = None

    def toggle_history(self) -> bool:
        self._play(SOUND_CLICK)
        self.is_history_open = not self.is_history_open
        return self.is_history_open

    # ── Render model ──────────────────────────────────────────────────────────

    @property
    def pings(self) -> list[MapPing]:
        """Markers for active events that were written against an area."""
        return [
            MapPing(ev.id, ev.top_pos, ev.left_pos or "", ev.color)
            for ev in self.reconciler.events
            if ev.is_ping
        ]

    @property
    def log_entries(self) -> list[LogEntry]:
        return [
            LogEntry(
                event_id=ev.id,
                color=ev.color,
                title=split_transmission(ev.title),
                time=ev.created_at.astimezone().strftime("%H:%M"),
                message=split_transmission(ev.message),
                location=ev.location_name,
            )
            for ev in self.reconciler.events
        ]

    def area_panel(self) -> Optional[AreaPanel]:
        area = self.selected_area
        if area is None:
            return None
        reputation = area.faction.reputation if area.faction else 0
        return AreaPanel(
            name=area.name,
            domain=area.faction.name if area.faction else CONTESTED_TERRITORY,
            danger=area.danger,
            reputation=reputation,
            reputation_color=map_reputation_color(reputation),
            description=split_transmission(area.description),
        )
