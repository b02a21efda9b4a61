"""Tests for state/app_state.py — hydration, pointer rules, persisted subset."""

import asyncio

import pytest

from copydesk.errors import InvariantViolation, NotFoundError
from copydesk.hierarchy.types import Document
from copydesk.state.app_state import HYDRATED, HYDRATING, NOT_HYDRATED, AppStateStore
from copydesk.storage.local import APP_STATE_KEY, LocalStore


def _docs(*docs: Document):
    by_id = {d.id: d for d in docs}
    return by_id.get


@pytest.fixture
def store(local: LocalStore) -> AppStateStore:
    return AppStateStore(
        local,
        tool_ids=["expand", "shorten"],
        resolve_document=_docs(
            Document(id="d1", project_id="p1", base_title="Brief"),
            Document(id="d2", project_id="p2", base_title="Other"),
        ),
    )


class TestHydration:
    async def test_phases(self, store: AppStateStore):
        phases: list[str] = []
        store.subscribe(lambda s: phases.append(s.phase))
        assert store.phase == NOT_HYDRATED
        await store.hydrate()
        assert phases == [HYDRATING, HYDRATED]
        assert store.is_hydrated

    async def test_restores_persisted_pointers(self, local: LocalStore):
        local.write(
            APP_STATE_KEY,
            {"active_project_id": "p1", "active_tool_id": "expand", "left_sidebar_open": False},
        )
        store = AppStateStore(local)
        await store.hydrate()
        assert store.state.active_project_id == "p1"
        assert store.state.active_tool_id == "expand"
        assert store.state.left_sidebar_open is False
        assert store.state.right_sidebar_open is True

    async def test_corrupt_state_fails_open(self, local: LocalStore):
        local.data_dir.mkdir(parents=True)
        local.path_for(APP_STATE_KEY).write_text("{oops")
        store = AppStateStore(local)
        await store.hydrate()
        assert store.phase == HYDRATED
        assert store.state.active_project_id is None

    async def test_invalid_utf8_state_fails_open(self, local: LocalStore):
        local.data_dir.mkdir(parents=True)
        local.path_for(APP_STATE_KEY).write_bytes(b"\xff{\"active_project_id\": \"p1\"}")
        store = AppStateStore(local)
        await store.hydrate()
        assert store.phase == HYDRATED
        assert store.state.active_project_id is None

    async def test_wrong_type_fails_open(self, local: LocalStore):
        local.write(APP_STATE_KEY, ["not", "a", "dict"])
        store = AppStateStore(local)
        await store.hydrate()
        assert store.phase == HYDRATED

    async def test_runs_once(self, store: AppStateStore, local: LocalStore):
        await store.hydrate()
        store.set_active_project_id("p1")
        local.write(APP_STATE_KEY, {"active_project_id": "other"})
        await store.hydrate()
        assert store.state.active_project_id == "p1"

    async def test_wait_until_hydrated(self, store: AppStateStore):
        waiter = asyncio.create_task(store.wait_until_hydrated())
        await asyncio.sleep(0)
        assert not waiter.done()
        await store.hydrate()
        await asyncio.wait_for(waiter, 1)

    async def test_no_persist_while_hydrating(self, store: AppStateStore, local: LocalStore):
        local.write(APP_STATE_KEY, {"active_project_id": "p1"})
        store.state.phase = HYDRATING
        store.set_active_tool("expand")
        assert local.load(APP_STATE_KEY) == {"active_project_id": "p1"}


class TestPointers:
    async def test_switch_project_clears_document_and_tools(self, store: AppStateStore):
        await store.hydrate()
        store.set_active_project_id("p1")
        store.set_active_document_id("d1")
        token = store.begin_tool_run("expand")
        store.finish_tool_run("expand", token, result="Longer copy")

        store.set_active_project_id("p2")

        assert store.state.active_document_id is None
        assert all(run.is_initial for run in store.state.tool_runs.values())

    async def test_document_must_belong_to_project(self, store: AppStateStore):
        await store.hydrate()
        store.set_active_project_id("p1")
        with pytest.raises(InvariantViolation):
            store.set_active_document_id("d2")
        assert store.state.active_document_id is None

    async def test_unknown_document(self, store: AppStateStore):
        await store.hydrate()
        store.set_active_project_id("p1")
        with pytest.raises(NotFoundError):
            store.set_active_document_id("nope")

    async def test_document_needs_project(self, store: AppStateStore):
        await store.hydrate()
        with pytest.raises(InvariantViolation):
            store.set_active_document_id("d1")

    async def test_clear_document(self, store: AppStateStore):
        await store.hydrate()
        store.set_active_project_id("p1")
        store.set_active_document_id("d1")
        store.set_active_document_id(None)
        assert store.state.active_document_id is None

    async def test_in_flight_run_dropped_after_switch(self, store: AppStateStore):
        await store.hydrate()
        store.set_active_project_id("p1")
        token = store.begin_tool_run("expand")
        store.set_active_project_id("p2")
        assert store.finish_tool_run("expand", token, result="p1 output") is False
        assert store.tool_run("expand").result is None


class TestPanels:
    async def test_tool_opens_hidden_right_panel(self, store: AppStateStore):
        await store.hydrate()
        store.set_right_sidebar_open(False)
        store.set_active_tool("expand")
        assert store.state.right_sidebar_open is True

    async def test_clearing_tool_leaves_panel(self, store: AppStateStore):
        await store.hydrate()
        store.set_right_sidebar_open(False)
        store.set_active_tool(None)
        assert store.state.right_sidebar_open is False

    async def test_toggle_right_panel_keeps_sections(self, store: AppStateStore, local: LocalStore):
        await store.hydrate()
        store.toggle_section("brand")
        store.toggle_right_sidebar()
        assert store.state.right_sidebar_open is False
        store.toggle_right_sidebar()
        assert store.state.right_sidebar_open is True
        assert store.sections.open_id == "brand"
        assert local.load(APP_STATE_KEY)["right_sidebar_open"] is True

    async def test_reopening_left_panel_collapses_sections(self, store: AppStateStore):
        await store.hydrate()
        store.toggle_section("optimizer")
        store.toggle_left_sidebar()
        store.toggle_left_sidebar()
        assert store.sections.open_id is None

    async def test_sections_are_exclusive(self, store: AppStateStore):
        store.toggle_section("optimizer")
        store.toggle_section("brand")
        assert store.sections.open_ids() == {"brand"}


class TestPersistence:
    async def test_only_subset_persisted(self, store: AppStateStore, local: LocalStore):
        await store.hydrate()
        store.set_active_project_id("p1")
        store.set_active_document_id("d1")
        store.set_active_tool("expand")
        token = store.begin_tool_run("expand")
        store.finish_tool_run("expand", token, result="secret output")

        saved = local.load(APP_STATE_KEY)
        assert saved == {
            "active_project_id": "p1",
            "active_document_id": "d1",
            "active_tool_id": "expand",
            "left_sidebar_open": True,
            "right_sidebar_open": True,
        }

    async def test_unsubscribe(self, store: AppStateStore):
        seen: list[str] = []
        unsubscribe = store.subscribe(lambda s: seen.append(s.phase))
        unsubscribe()
        await store.hydrate()
        assert seen == []

    async def test_failing_listener_does_not_break_store(self, store: AppStateStore):
        def boom(state):
            raise RuntimeError("render failed")

        store.subscribe(boom)
        await store.hydrate()
        assert store.is_hydrated
