from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from Paid_media.state import (
    SAVED_VIEWS_KEY,
    SNAPSHOT_HISTORY,
    DashboardState,
    JsonFileStateStore,
    MemoryStateStore,
)


@pytest.fixture()
def state() -> DashboardState:
    return DashboardState(MemoryStateStore())


def test_defaults(state):
    assert state.timeframe == 30
    assert state.active_tab == "overview"
    assert state.list_views() == []
    assert state.snapshots() == []


def test_timeframe_persists_and_validates(state):
    state.timeframe = 90
    assert state.timeframe == 90
    with pytest.raises(ValueError):
        state.timeframe = 45
    assert state.timeframe == 90


def test_garbage_timeframe_falls_back_to_default():
    state = DashboardState(MemoryStateStore({"metrics-timeframe": "soon"}))
    assert state.timeframe == 30


def test_active_tab(state):
    state.active_tab = "trends"
    assert state.active_tab == "trends"


def test_save_and_delete_views(state):
    first = state.save_view(" Meta only ", {"platform": "Meta"}, {"start": "2024-06-01", "end": None})
    second = state.save_view("Everything")

    assert first.name == "Meta only"
    assert first.id != second.id
    assert [view.name for view in state.list_views()] == ["Meta only", "Everything"]
    assert state.list_views()[0].filters == {"platform": "Meta"}

    assert state.delete_view(first.id) is True
    assert state.delete_view(first.id) is False
    assert [view.id for view in state.list_views()] == [second.id]


def test_blank_view_name_is_ignored(state):
    assert state.save_view("   ", {"platform": "Meta"}) is None
    assert state.list_views() == []


def test_malformed_views_are_discarded():
    state = DashboardState(MemoryStateStore({SAVED_VIEWS_KEY: "{not json"}))
    assert state.list_views() == []


def test_snapshot_history_is_capped(state):
    for index in range(SNAPSHOT_HISTORY + 2):
        state.record_snapshot({"total_spent": index}, timestamp=datetime(2024, 6, 1, index, tzinfo=timezone.utc))

    history = state.snapshots()
    assert len(history) == SNAPSHOT_HISTORY
    assert history[0].metrics == {"total_spent": 2.0}
    assert history[-1].metrics == {"total_spent": 11.0}
    assert history[-1].timestamp == "2024-06-01T11:00:00+00:00"


def test_json_file_store_round_trip(tmp_path):
    path = tmp_path / "nested" / "state.json"
    state = DashboardState(JsonFileStateStore(path))
    state.timeframe = 14
    view = state.save_view("Widget", {"goods_name": "Widget"})

    reopened = DashboardState(JsonFileStateStore(path))
    assert reopened.timeframe == 14
    assert [item.id for item in reopened.list_views()] == [view.id]
    assert json.loads(path.read_text(encoding="utf-8"))["metrics-timeframe"] == "14"


def test_json_file_store_ignores_unreadable_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("not json", encoding="utf-8")
    store = JsonFileStateStore(path)

    assert store.get("metrics-timeframe") is None
    store.set("metrics-timeframe", "7")
    assert store.get("metrics-timeframe") == "7"
