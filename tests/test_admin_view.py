"""
test_admin_view.py — Tests for the game master control panel view-model.
"""

import asyncio

import pytest

from zonemap.views.admin_view import (
    CREATING,
    EDITING,
    MSG_AREA_FAILED,
    MSG_CONFIRM_DELETE,
    MSG_EVENT_CREATED,
    MSG_EVENT_UPDATED,
    MSG_LOGIN_FAILED,
    AdminView,
)
from zonemap.views.formatting import ALLIED, HOSTILE, NEUTRAL


class Dialogs:
    """Records alert / confirm / scroll calls; confirm answers `answer`."""

    def __init__(self):
        self.alerts: list[str] = []
        self.confirms: list[str] = []
        self.scrolls = 0
        self.answer = True

    def alert(self, message):
        self.alerts.append(message)

    def confirm(self, message):
        self.confirms.append(message)
        return self.answer

    def scroll_to_top(self):
        self.scrolls += 1


@pytest.fixture()
def dialogs():
    return Dialogs()


def _admin(fake_tables, fake_changes, dialogs, **kwargs):
    return AdminView(
        fake_tables, fake_changes,
        alert=dialogs.alert, confirm=dialogs.confirm, scroll_to_top=dialogs.scroll_to_top,
        **kwargs,
    )


@pytest.fixture()
async def admin(fake_tables, fake_changes, dialogs):
    view = _admin(fake_tables, fake_changes, dialogs)
    assert await view.login("meowl")
    dialogs.alerts.clear()
    yield view
    await view.logout()


def _reputation(view, faction_id):
    return next(f.reputation for f in view.factions if f.id == faction_id)


class TestGate:
    async def test_wrong_password_alerts_and_loads_nothing(self, fake_tables, fake_changes, dialogs):
        view = _admin(fake_tables, fake_changes, dialogs)
        assert await view.login("wrong") is False

        assert dialogs.alerts == [MSG_LOGIN_FAILED]
        assert view.is_authenticated is False
        assert fake_tables.calls == []
        assert fake_changes.subscribers == {}

    async def test_password_is_case_insensitive(self, fake_tables, fake_changes, dialogs):
        view = _admin(fake_tables, fake_changes, dialogs)
        assert await view.login("MeOwL") is True
        assert view.is_authenticated
        await view.logout()

    async def test_explicit_password(self, fake_tables, fake_changes, dialogs):
        view = _admin(fake_tables, fake_changes, dialogs, password="zona")
        assert await view.login("meowl") is False
        assert await view.login("ZONA") is True
        await view.logout()

    async def test_login_loads_everything(self, admin):
        assert [f.name for f in admin.factions] == ["Dever", "Liberdade"]
        assert [a.slug for a in admin.areas] == ["cordao", "duga"]
        assert [ev.id for ev in admin.events] == [2, 1]

    async def test_logout_releases_subscription(self, fake_tables, fake_changes, dialogs):
        view = _admin(fake_tables, fake_changes, dialogs)
        await view.login("MEOWL")
        assert len(fake_changes.subscribers) == 1

        await view.logout()
        assert fake_changes.subscribers == {}
        assert view.is_authenticated is False

    async def test_second_login_keeps_one_listener(self, admin, fake_changes):
        assert await admin.login("MEOWL")
        assert len(fake_changes.subscribers) == 1

    async def test_any_change_triggers_reload(self, admin, fake_tables, fake_changes):
        fake_tables.rows["factions"][1]["reputation"] = 5
        await fake_changes.push("factions", "update", new_record={"id": 2, "reputation": 5})
        for _ in range(10):
            await asyncio.sleep(0)

        assert _reputation(admin, 2) == 5


class TestReputation:
    async def test_optimistic_update_then_write(self, admin, fake_tables):
        assert await admin.update_reputation(1, 70) is True

        assert _reputation(admin, 1) == 70
        assert fake_tables.writes() == [("update", "factions", {"reputation": 70}, {"id": 1})]

    async def test_failed_write_keeps_local_value_until_reload(self, admin, fake_tables):
        fake_tables.fail_writes = {"factions"}

        assert await admin.update_reputation(1, 70) is False
        assert _reputation(admin, 1) == 70

        await admin.reload()
        assert _reputation(admin, 1) == 45

    async def test_rollback_on_failure(self, fake_tables, fake_changes, dialogs):
        view = _admin(fake_tables, fake_changes, dialogs, rollback_on_failure=True)
        await view.login("MEOWL")
        fake_tables.fail_writes = {"factions"}

        assert await view.update_reputation(1, 70) is False
        assert _reputation(view, 1) == 45
        await view.logout()

    @pytest.mark.parametrize("raw, stored", [(-20, 0), (150, 100)])
    async def test_value_is_clamped(self, admin, fake_tables, raw, stored):
        await admin.update_reputation(2, raw)
        assert _reputation(admin, 2) == stored
        assert fake_tables.writes()[-1][2] == {"reputation": stored}

    @pytest.mark.parametrize("value, color", [(29, HOSTILE), (30, NEUTRAL), (60, NEUTRAL), (61, ALLIED)])
    async def test_admin_color_bands(self, admin, value, color):
        await admin.update_reputation(1, value)
        faction = next(f for f in admin.factions if f.id == 1)
        assert admin.faction_color(faction) == color


class TestEventForm:
    async def test_create_log_only_event(self, admin, fake_tables, dialogs):
        form = admin.event_form
        form.set_title("protocolo 9")
        form.message = "Silêncio de rádio"

        assert await admin.save_event() is True

        (write,) = fake_tables.writes()
        assert write[:2] == ("insert", "events")
        assert write[2]["title"] == "PROTOCOLO 9"
        assert "top_pos" not in write[2]
        assert dialogs.alerts == [MSG_EVENT_CREATED]
        assert len(admin.events) == 3

    async def test_create_ping_copies_area_position(self, admin, fake_tables):
        form = admin.event_form
        form.message = "Movimento no radar"
        form.area_slug = "duga"
        form.color = "#ff3333"

        await admin.save_event()

        payload = fake_tables.writes()[0][2]
        assert payload["top_pos"] == "22%"
        assert payload["left_pos"] == "33%"
        assert payload["location_name"] == "Radar Duga"

    async def test_ping_falls_back_to_area_origin(self, admin, fake_tables):
        admin.event_form.message = "Patrulha"
        admin.event_form.area_slug = "cordao"

        await admin.save_event()

        payload = fake_tables.writes()[0][2]
        assert (payload["top_pos"], payload["left_pos"]) == ("80%", "10%")

    async def test_empty_message_is_ignored(self, admin, fake_tables, dialogs):
        assert await admin.save_event() is False
        assert fake_tables.writes() == []
        assert dialogs.alerts == []

    async def test_form_resets_but_keeps_color_and_area(self, admin):
        form = admin.event_form
        form.set_title("alerta")
        form.color = "#ff3333"
        form.area_slug = "duga"
        form.message = "x"

        await admin.save_event()

        assert form.mode == CREATING
        assert form.message == ""
        assert form.title == "INFO"
        assert form.color == "#ff3333"
        assert form.area_slug == "duga"

    async def test_failed_create_does_not_alert(self, admin, fake_tables, dialogs):
        fake_tables.fail_writes = {"events"}
        admin.event_form.message = "perdido"

        assert await admin.save_event() is False
        assert dialogs.alerts == []
        assert admin.event_form.message == ""


class TestEventEditing:
    async def test_start_edit_fills_form(self, admin, dialogs):
        assert admin.start_edit_event(2) is True

        form = admin.event_form
        assert form.mode == EDITING
        assert form.target_id == 2
        assert (form.title, form.color, form.message) == ("ALERTA", "#ff3333", "Emissão")
        assert form.area_slug == "duga"
        assert dialogs.scrolls == 1

    async def test_start_edit_unknown_event(self, admin):
        assert admin.start_edit_event(99) is False
        assert admin.event_form.mode == CREATING

    async def test_cancel_returns_to_creating(self, admin):
        admin.start_edit_event(1)
        admin.cancel_edit()
        assert admin.event_form.mode == CREATING
        assert admin.event_form.target_id is None

    async def test_save_updates_target(self, admin, fake_tables, dialogs):
        admin.start_edit_event(1)
        admin.event_form.message = "Rede instável"

        assert await admin.save_event() is True

        (write,) = fake_tables.writes()
        assert write[0:2] == ("update", "events")
        assert write[3] == {"id": 1}
        assert dialogs.alerts == [MSG_EVENT_UPDATED]
        assert admin.reconciler.get(1).message == "Rede instável"
        assert admin.event_form.mode == CREATING

    async def test_switching_to_log_only_clears_ping(self, admin, fake_tables):
        admin.start_edit_event(2)
        admin.event_form.area_slug = ""

        await admin.save_event()

        payload = fake_tables.writes()[0][2]
        assert payload["top_pos"] is None
        assert payload["left_pos"] is None
        assert payload["location_name"] is None
        assert admin.reconciler.get(2).is_ping is False


class TestEventDelete:
    async def test_delete_after_confirm(self, admin, fake_tables, dialogs):
        assert await admin.delete_event(1) is True

        assert dialogs.confirms == [MSG_CONFIRM_DELETE]
        assert fake_tables.writes() == [("delete", "events", {"id": 1})]
        assert [ev.id for ev in admin.events] == [2]

    async def test_declined_confirm_does_nothing(self, admin, fake_tables, dialogs):
        dialogs.answer = False
        assert await admin.delete_event(1) is False
        assert fake_tables.writes() == []

    async def test_failed_delete_keeps_event(self, admin, fake_tables):
        fake_tables.fail_writes = {"events"}
        assert await admin.delete_event(1) is False
        assert admin.reconciler.get(1) is not None


class TestAreaEditor:
    async def test_select_fills_form(self, admin):
        assert admin.select_area_for_edit("duga") is True
        form = admin.area_form
        assert (form.name, form.danger, form.faction_id) == ("Radar Duga", "ALTO", 1)

    async def test_neutral_area_maps_to_zero(self, admin):
        admin.select_area_for_edit("cordao")
        assert admin.area_form.faction_id == 0

    async def test_save_sends_patch_and_alerts(self, admin, fake_tables, dialogs):
        admin.select_area_for_edit("duga")
        admin.area_form.danger = "EXTREMO"
        admin.area_form.faction_id = 0

        assert await admin.save_area() is True

        (write,) = fake_tables.writes()
        assert write == (
            "update", "areas",
            {"name": "Radar Duga", "description": "Antena ||sinal 9||", "faction_id": None, "danger": "EXTREMO"},
            {"slug": "duga"},
        )
        assert dialogs.alerts == ["Área Radar Duga atualizada!"]
        assert admin.area_form.danger == "EXTREMO"

    async def test_save_failure_alerts(self, admin, fake_tables, dialogs):
        fake_tables.fail_writes = {"areas"}
        admin.select_area_for_edit("duga")

        assert await admin.save_area() is False
        assert dialogs.alerts == [MSG_AREA_FAILED]

    async def test_save_without_selection_is_ignored(self, admin, fake_tables):
        assert await admin.save_area() is False
        assert fake_tables.writes() == []

    async def test_reload_does_not_clobber_form(self, admin):
        admin.select_area_for_edit("duga")
        admin.area_form.name = "rascunho"
        await admin.reload()
        assert admin.area_form.name == "rascunho"

    async def test_create_area(self, admin, fake_tables, dialogs):
        assert await admin.create_area({"slug": "jupiter", "name": "Jupiter"}) is True
        assert any(a.slug == "jupiter" for a in admin.areas)
        assert dialogs.alerts == ["Área Jupiter criada!"]

    async def test_delete_area_clears_form(self, admin, dialogs):
        admin.select_area_for_edit("cordao")
        assert await admin.delete_area("cordao") is True
        assert admin.area_form.slug == ""
        assert [a.slug for a in admin.areas] == ["duga"]


class TestOverlappingReloads:
    async def test_only_latest_issued_reload_applies(self, admin, fake_tables):
        release_first = asyncio.Event()
        original_select = fake_tables.select
        held = {"factions": 0, "areas": 0}

        async def select(table, **kwargs):
            rows = await original_select(table, **kwargs)
            if table in held:
                held[table] += 1
                if held[table] == 1:
                    await release_first.wait()
            return rows

        fake_tables.select = select
        fake_tables.rows["factions"][0]["reputation"] = 10
        fake_tables.rows["areas"][1]["name"] = "Cordão velho"
        first = asyncio.create_task(admin.reload())
        for _ in range(5):
            await asyncio.sleep(0)

        fake_tables.rows["factions"][0]["reputation"] = 90
        fake_tables.rows["areas"][1]["name"] = "Cordão novo"
        await admin.reload()
        release_first.set()
        await first

        assert _reputation(admin, 1) == 90
        assert any(a.name == "Cordão novo" for a in admin.areas)
        assert not any(a.name == "Cordão velho" for a in admin.areas)
