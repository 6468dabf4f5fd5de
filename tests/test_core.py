"""Tests for sessions, row identity, storage, events, hooks and schedulers."""

import asyncio
import json

import pytest
from loguru import logger

from tablekit.core.errors import (
    DuplicateSessionError,
    HookError,
    MissingRowIdError,
    UnknownTableError,
)
from tablekit.core.events import EngineEvent, EventBus
from tablekit.core.hooks import call_hook, check_hook_result
from tablekit.core.rows import extract_row_id, find_row_id, get_nested_value, set_nested_value
from tablekit.core.scheduler import AsyncioScheduler, ManualScheduler
from tablekit.core.session import EditSession, SearchMode, SearchState, SessionStore
from tablekit.core.storage import JsonFileStore, MemoryStore, storage_key


class TestSessionStore:

    def test_create_and_get(self):
        store = SessionStore()
        session = store.create("orders")
        assert store.get("orders") is session
        assert "orders" in store
        assert store.table_ids == ["orders"]

    def test_duplicate_raises(self):
        store = SessionStore()
        store.create("orders")
        with pytest.raises(DuplicateSessionError) as info:
            store.create("orders")
        assert info.value.table_id == "orders"

    def test_unknown_table_is_key_error(self):
        store = SessionStore()
        with pytest.raises(KeyError):
            store.get("missing")
        with pytest.raises(UnknownTableError, match="missing"):
            store.get("missing")

    def test_destroy_then_recreate(self):
        store = SessionStore()
        first = store.create("orders")
        first.selection.add(1)
        store.destroy("orders")
        assert "orders" not in store
        second = store.create("orders")
        assert second.selection == set()

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            SessionStore().create("")

    def test_sessions_are_independent(self):
        store = SessionStore()
        a, b = store.create("a"), store.create("b")
        a.selection.add(1)
        assert b.selection == set()


class TestSessionState:

    def test_search_state_active(self):
        assert not SearchState().active
        assert SearchState(text="abc").active
        assert not SearchState(mode=SearchMode.COLUMN, text="0=x").active
        assert SearchState(mode=SearchMode.COLUMN, column_filters={0: "x"}).active

    def test_edit_session_error_is_last(self):
        es = EditSession(row=0, col=1, row_index=3, field="score", original=1, pending=2)
        assert es.error is None
        es.errors = ["first", "second"]
        assert es.error == "second"
        assert es.cell == (0, 1)


class TestRows:

    def test_nested_get(self):
        row = {"owner": {"email": "a@b.c"}}
        assert get_nested_value(row, "owner.email") == "a@b.c"
        assert get_nested_value(row, "owner.phone") is None
        assert get_nested_value(row, "missing.deep.path") is None
        assert get_nested_value(row, None) is row

    def test_nested_set_creates_parents(self):
        row = {"id": 1}
        set_nested_value(row, "meta.tags.primary", "x")
        assert row == {"id": 1, "meta": {"tags": {"primary": "x"}}}

    def test_set_empty_path_rejected(self):
        with pytest.raises(ValueError):
            set_nested_value({}, "", 1)

    def test_find_row_id_order(self):
        assert find_row_id({"id": 0, "_id": "x"}) == 0
        assert find_row_id({"_id": "x"}) == "x"
        assert find_row_id({"uuid": "u-1"}, alias="uuid") == "u-1"
        assert find_row_id({"meta": {"key": 7}}, alias="meta.key") == 7
        assert find_row_id({"name": "no id"}) is None

    def test_extract_row_id_raises(self):
        with pytest.raises(MissingRowIdError, match="uuid"):
            extract_row_id({"name": "x"}, alias="uuid")


class TestStorage:

    def test_storage_key(self):
        assert storage_key("orders", "selection") == "orders:selection"

    def test_memory_store_json_round_trip(self):
        store = MemoryStore()
        store.set("k", (1, 2))
        assert store.get("k") == [1, 2]
        assert store.get("missing", "default") == "default"
        store.delete("k")
        store.delete("k")
        assert store.keys() == []

    def test_json_file_store(self, tmp_path):
        path = tmp_path / "state" / "tables.json"
        store = JsonFileStore(path)
        store.set("a:selection", [1, 2])
        store.set("b:selection", ["x"])
        assert JsonFileStore(path).get("a:selection") == [1, 2]
        store.delete("a:selection")
        assert json.loads(path.read_text()) == {"b:selection": ["x"]}

    def test_json_file_store_tolerates_corruption(self, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text("{not json")
        assert JsonFileStore(path).get("k", []) == []
        path.write_text("[1, 2]")
        assert JsonFileStore(path).get("k") is None


class TestEventBus:

    def test_kind_and_wildcard_subscribers(self):
        bus = EventBus()
        kinds, everything = [], []
        bus.subscribe(EngineEvent.CELL_SAVED, lambda e: kinds.append(e))
        bus.subscribe(None, lambda e: everything.append(e.kind))
        bus.emit(EngineEvent.CELL_SAVED, "t", value=1)
        bus.emit(EngineEvent.SEARCH_CLEARED, "t")
        assert [e.payload["value"] for e in kinds] == [1]
        assert everything == [EngineEvent.CELL_SAVED, EngineEvent.SEARCH_CLEARED]

    def test_subscribe_by_name(self):
        bus = EventBus()
        seen = []
        bus.subscribe("selection-changed", seen.append)
        bus.emit(EngineEvent.SELECTION_CHANGED, "t", selected=1, total=3)
        assert len(seen) == 1

    def test_unsubscribe(self):
        bus = EventBus()
        seen = []
        unsubscribe = bus.subscribe(None, seen.append)
        unsubscribe()
        unsubscribe()
        bus.emit(EngineEvent.SEARCH_CLEARED, "t")
        assert seen == []

    def test_failing_subscriber_does_not_stop_others(self):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(None, broken)
        bus.subscribe(None, seen.append)
        bus.emit(EngineEvent.SEARCH_CLEARED, "t")
        assert len(seen) == 1

    def test_notify(self):
        bus = EventBus()
        seen = []
        bus.subscribe(EngineEvent.NOTIFICATION, seen.append)
        bus.notify("t", "Saved", "success")
        assert seen[0].payload == {"message": "Saved", "level": "success"}


class TestHooks:

    def test_call_hook_sync_and_async(self):
        async def async_hook(x):
            return x * 2

        assert asyncio.run(call_hook(lambda x: x + 1, 1)) == 2
        assert asyncio.run(call_hook(async_hook, 2)) == 4

    @pytest.mark.parametrize("result", [False, {"success": False}])
    def test_failure_shapes(self, result):
        with pytest.raises(HookError):
            check_hook_result(result, "Save")

    def test_failure_message_from_dict(self):
        with pytest.raises(HookError, match="locked"):
            check_hook_result({"success": False, "message": "locked"}, "Save")

    @pytest.mark.parametrize("result", [True, None, {"success": True}, {"id": 3}])
    def test_success_shapes(self, result):
        check_hook_result(result, "Save")


class TestSchedulers:

    def test_manual_scheduler_fires_in_order(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(2.0, lambda: fired.append("late"))
        scheduler.call_later(0.5, lambda: fired.append("early"))
        scheduler.advance(1.0)
        assert fired == ["early"]
        assert scheduler.pending == 1
        scheduler.run_all()
        assert fired == ["early", "late"]
        assert scheduler.now == 2.0

    def test_manual_scheduler_spawn_runs_to_completion(self):
        scheduler = ManualScheduler()
        done = []

        async def work():
            done.append(True)

        scheduler.spawn(work())
        assert done == [True]

    def test_asyncio_scheduler_without_loop_runs_now(self):
        scheduler = AsyncioScheduler()
        fired = []
        scheduler.call_later(5.0, lambda: fired.append(1))
        assert fired == [1]

    def test_asyncio_scheduler_inside_loop(self):
        scheduler = AsyncioScheduler()
        fired = []

        async def main():
            scheduler.call_later(0.01, lambda: fired.append(1))
            assert fired == []
            await asyncio.sleep(0.05)

        asyncio.run(main())
        assert fired == [1]

    def test_asyncio_scheduler_tracks_and_logs_failed_tasks(self):
        scheduler = AsyncioScheduler()
        messages = []
        sink = logger.add(messages.append, level="ERROR")

        async def broken():
            raise ValueError("boom")

        async def main():
            scheduler.spawn(broken())
            assert len(scheduler._tasks) == 1
            await asyncio.sleep(0.01)

        try:
            asyncio.run(main())
        finally:
            logger.remove(sink)
        assert scheduler._tasks == set()
        assert "Spawned task failed" in messages[0]
        assert "ValueError: boom" in messages[0]
