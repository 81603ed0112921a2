"""
admin_view.py — Game master control panel.

Sections (same as the page the game master uses):
  1. Faction status   — reputation sliders (optimistic, see below)
  2. Event form       — create or edit a log entry / map ping
  3. Event list       — edit / delete existing events
  4. Area editor      — name, danger, dominant faction, description

CONSISTENCY
───────────
Every write is followed by a full reload of factions, areas and events
instead of patching local state; any change-feed notification triggers
the same reload. The one exception is reputation: the slider patches the
local faction immediately and sends the write afterwards. If that write
fails the panel keeps showing the new value until the next reload brings
the stored one back (unless `rollback_on_failure` is set).

ERROR SURFACING
───────────────
Area writes alert on failure. Event and faction writes only log. Reads
never surface errors; the panel keeps its last good data.

The alert / confirm / scroll-to-top callbacks stand in for the browser
dialogs so the view can run headless.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import ValidationError

from zonemap.client.interfaces import ChangeService, ChangeServiceError, TableService, TableServiceError
from zonemap.core.config import settings
from zonemap.models.area import Area
from zonemap.models.changes import ChangeNotification
from zonemap.models.event import DEFAULT_COLOR, DEFAULT_TITLE, GameEvent
from zonemap.models.faction import Faction, clamp_reputation
from zonemap.views.formatting import admin_reputation_color
from zonemap.views.reconciler import EventStreamReconciler
from zonemap.views.scope import ViewScope

logger = logging.getLogger(__name__)

CREATING = "creating"
EDITING = "editing"

MSG_LOGIN_FAILED = "Erro"
MSG_EVENT_CREATED = "Evento Criado!"
MSG_EVENT_UPDATED = "Evento Atualizado!"
MSG_CONFIRM_DELETE = "Tem certeza que quer deletar este log?"
MSG_AREA_FAILED = "Erro ao atualizar área."


@dataclass
class EventForm:
    mode: str = CREATING
    target_id: Optional[int] = None
    title: str = DEFAULT_TITLE
    color: str = DEFAULT_COLOR
    message: str = ""
    area_slug: str = ""  # "" = log only, no ping

    @property
    def editing(self) -> bool:
        return self.mode == EDITING

    def set_title(self, value: str) -> None:
        self.title = value.upper()

    def back_to_creating(self) -> None:
        # Colour and location stay selected for the next transmission.
        self.mode = CREATING
        self.target_id = None
        self.message = ""
        self.title = DEFAULT_TITLE


@dataclass
class AreaForm:
    slug: str = ""
    name: str = ""
    description: str = ""
    faction_id: int = 0  # 0 = no dominant faction
    danger: str = ""

    def fill(self, area: Area) -> None:
        self.slug = area.slug
        self.name = area.name
        self.description = area.description
        self.faction_id = area.faction_id or 0
        self.danger = area.danger


class AdminView:
    def __init__(
        self,
        tables: TableService,
        changes: ChangeService,
        *,
        password: Optional[str] = None,
        alert: Optional[Callable[[str], None]] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        scroll_to_top: Optional[Callable[[], None]] = None,
        rollback_on_failure: bool = False,
    ):
        self._tables = tables
        self._changes = changes
        self._password = (password if password is not None else settings.admin_password).upper()
        self._alert = alert or (lambda message: logger.info("alert: %s", message))
        self._confirm = confirm or (lambda message: True)
        self._scroll_to_top = scroll_to_top or (lambda: None)
        self.rollback_on_failure = rollback_on_failure

        self._scope = ViewScope()
        self._subscription = None
        self._generations: dict[str, int] = {}

        self.is_authenticated = False
        self.factions: list[Faction] = []
        self.areas: list[Area] = []
        self.reconciler = EventStreamReconciler(tables, scope=self._scope)
        self.event_form = EventForm()
        self.area_form = AreaForm()

    @property
    def events(self) -> list[GameEvent]:
        return self.reconciler.events

    # ── Gate & lifecycle ──────────────────────────────────────────────────────

    async def login(self, password: str) -> bool:
        if password.upper() != self._password:
            self._alert(MSG_LOGIN_FAILED)
            return False
        self.is_authenticated = True
        await self._activate()
        return True

    async def logout(self) -> None:
        self.is_authenticated = False
        await self._deactivate()

    async def _activate(self) -> None:
        if self._subscription is not None:
            # Already live; a repeated login only refreshes.
            await self.reload()
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
            logger.warning("Admin panel running without live updates: %s", exc)

    async def _deactivate(self) -> None:
        subscription, self._subscription = self._subscription, None
        try:
            if subscription is not None:
                await self._changes.unsubscribe(subscription)
        finally:
            await self._scope.close()

    # ── Data ──────────────────────────────────────────────────────────────────

    async def reload(self) -> None:
        await asyncio.gather(
            self._load_factions(),
            self._load_areas(),
            self.reconciler.load_snapshot(),
        )

    async def _select(self, table: str, model: Any) -> Optional[list]:
        """Fetch *table*; None when the fetch failed or a newer one was issued meanwhile."""
        generation = self._generations.get(table, 0) + 1
        self._generations[table] = generation
        scope = self._scope
        try:
            rows = await self._tables.select(table, order_by="name")
            items = [model.model_validate(row) for row in rows]
        except (TableServiceError, ValidationError) as exc:
            logger.warning("%s snapshot failed, keeping cached rows: %s", table, exc)
            return None
        if not scope.alive or generation != self._generations[table]:
            logger.debug("Discarding stale %s snapshot %d", table, generation)
            return None
        return items

    async def _load_factions(self) -> None:
        factions = await self._select("factions", Faction)
        if factions is not None:
            self.factions = factions

    async def _load_areas(self) -> None:
        areas = await self._select("areas", Area)
        if areas is not None:
            self.areas = areas

    async def handle_notification(self, notification: ChangeNotification) -> None:
        if self._scope.alive:
            self._scope.spawn(self.reload())

    # ── 1. Faction reputation ─────────────────────────────────────────────────

    def faction_color(self, faction: Faction) -> str:
        return admin_reputation_color(faction.reputation)

    async def update_reputation(self, faction_id: int, value: int) -> bool:
        value = clamp_reputation(value)
        index = next((i for i, f in enumerate(self.factions) if f.id == faction_id), None)
        previous = None
        if index is not None:
            previous = self.factions[index].reputation
            self.factions[index] = self.factions[index].model_copy(update={"reputation": value})

        try:
            await self._tables.update("factions", {"reputation": value}, {"id": faction_id})
        except TableServiceError as exc:
            logger.warning("Reputation update for faction %s failed: %s", faction_id, exc)
            if self.rollback_on_failure and previous is not None:
                self._rollback_reputation(faction_id, value, previous)
            return False
        return True

    def _rollback_reputation(self, faction_id: int, sent: int, previous: int) -> None:
        for i, faction in enumerate(self.factions):
            # Leave it alone if a later slider move or reload already changed it.
            if faction.id == faction_id and faction.reputation == sent:
                self.factions[i] = faction.model_copy(update={"reputation": previous})

    # ── 2/3. Events ───────────────────────────────────────────────────────────

    def start_edit_event(self, event_id: int) -> bool:
        event = self.reconciler.get(event_id)
        if event is None:
            return False
        form = self.event_form
        form.mode = EDITING
        form.target_id = event.id
        form.title = event.title
        form.color = event.color
        form.message = event.message
        area = next((a for a in self.areas if a.name == event.location_name), None)
        form.area_slug = area.slug if area else ""
        self._scroll_to_top()
        return True

    def cancel_edit(self) -> None:
        self.event_form.back_to_creating()

    def _event_payload(self) -> dict:
        form = self.event_form
        payload = {
            "title": form.title.upper(),
            "color": form.color,
            "message": form.message,
            "active": True,
        }
        area = next((a for a in self.areas if a.slug == form.area_slug), None)
        if area is not None:
            top, left = area.ping_position()
            payload.update(top_pos=top, left_pos=left, location_name=area.name)
        elif form.editing:
            # Switching an edited event to "log only" removes its ping.
            payload.update(top_pos=None, left_pos=None, location_name=None)
        return payload

    async def save_event(self) -> bool:
        """Create or update from the form, then reload. An empty message is ignored."""
        form = self.event_form
        if not form.message:
            return False

        scope = self._scope
        payload = self._event_payload()
        editing, target_id = form.editing, form.target_id
        saved = True
        try:
            if editing:
                await self._tables.update("events", payload, {"id": target_id})
            else:
                await self._tables.insert("events", payload)
        except TableServiceError as exc:
            saved = False
            logger.warning("Saving event %s failed: %s", target_id or "(new)", exc)

        if not scope.alive:
            return saved
        if saved:
            self._alert(MSG_EVENT_UPDATED if editing else MSG_EVENT_CREATED)

        await self.reload()
        form.back_to_creating()
        return saved

    async def delete_event(self, event_id: int) -> bool:
        if not self._confirm(MSG_CONFIRM_DELETE):
            return False
        try:
            await self._tables.delete("events", {"id": event_id})
        except TableServiceError as exc:
            logger.warning("Deleting event %s failed: %s", event_id, exc)
            return False
        if self._scope.alive:
            await self.reload()
        return True

    # ── 4. Areas ──────────────────────────────────────────────────────────────

    def select_area_for_edit(self, slug: str) -> bool:
        area = next((a for a in self.areas if a.slug == slug), None)
        if area is None:
            self.area_form = AreaForm()
            return False
        self.area_form.fill(area)
        return True

    async def save_area(self) -> bool:
        form = self.area_form
        if not form.slug:
            return False

        patch = {
            "name": form.name,
            "description": form.description,
            "faction_id": form.faction_id or None,
            "danger": form.danger,
        }
        try:
            await self._tables.update("areas", patch, {"slug": form.slug})
        except TableServiceError as exc:
            logger.warning("Updating area %s failed: %s", form.slug, exc)
            self._alert(MSG_AREA_FAILED)
            return False

        if not self._scope.alive:
            return True
        self._alert(f"Área {form.name} atualizada!")
        await self.reload()
        self.select_area_for_edit(form.slug)
        return True

    async def create_area(self, record: dict) -> bool:
        try:
            await self._tables.insert("areas", record)
        except TableServiceError as exc:
            logger.warning("Creating area %s failed: %s", record.get("slug"), exc)
            self._alert(MSG_AREA_FAILED)
            return False
        if self._scope.alive:
            self._alert(f"Área {record.get('name', record.get('slug'))} criada!")
            await self.reload()
        return True

    async def delete_area(self, slug: str) -> bool:
        if not self._confirm(f"Tem certeza que quer deletar a área {slug}?"):
            return False
        try:
            await self._tables.delete("areas", {"slug": slug})
        except TableServiceError as exc:
            logger.warning("Deleting area %s failed: %s", slug, exc)
            self._alert(MSG_AREA_FAILED)
            return False
        if self.area_form.slug == slug:
            self.area_form = AreaForm()
        if self._scope.alive:
            await self.reload()
        return True
