"""Persisted dashboard UI state: saved views, selected timeframe, snapshot history.

The dashboard reads and writes state through a :class:`StateStore`; analytics
modules never import this module.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from Paid_media.config import ANALYSIS_DAY_OPTIONS

logger = logging.getLogger(__name__)

TIMEFRAME_KEY = "metrics-timeframe"
ACTIVE_TAB_KEY = "metrics-active-tab"
SNAPSHOTS_KEY = "metrics-snapshots"
SAVED_VIEWS_KEY = "savedViews"

DEFAULT_TIMEFRAME = 30
DEFAULT_TAB = "overview"
SNAPSHOT_HISTORY = 10


class StateStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStateStore:
    """Dictionary-backed store, used by tests and single-session runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileStateStore:
    """String values kept in one JSON object on disk, rewritten on every ``set``."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable state file %s", self.path)
            return {}
        return payload if isinstance(payload, dict) else {}

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        payload = self._read()
        payload[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


@dataclass
class SavedView:
    id: str
    name: str
    filters: Dict[str, str] = field(default_factory=dict)
    date_range: Dict[str, Optional[str]] = field(default_factory=dict)


@dataclass
class MetricsSnapshot:
    timestamp: str
    metrics: Dict[str, float]


def _load_list(store: StateStore, key: str) -> List[dict]:
    raw = store.get(key)
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed %s state", key)
        return []
    return [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []


class DashboardState:
    """Typed access to the dashboard's persisted preferences."""

    def __init__(self, store: StateStore) -> None:
        self.store = store

    @property
    def timeframe(self) -> int:
        raw = self.store.get(TIMEFRAME_KEY)
        try:
            return int(raw) if raw else DEFAULT_TIMEFRAME
        except ValueError:
            return DEFAULT_TIMEFRAME

    @timeframe.setter
    def timeframe(self, days: int) -> None:
        if days not in ANALYSIS_DAY_OPTIONS:
            raise ValueError(f"timeframe must be one of {ANALYSIS_DAY_OPTIONS}, got {days!r}")
        self.store.set(TIMEFRAME_KEY, str(days))

    @property
    def active_tab(self) -> str:
        return self.store.get(ACTIVE_TAB_KEY) or DEFAULT_TAB

    @active_tab.setter
    def active_tab(self, tab: str) -> None:
        self.store.set(ACTIVE_TAB_KEY, tab)

    def list_views(self) -> List[SavedView]:
        views = []
        for item in _load_list(self.store, SAVED_VIEWS_KEY):
            views.append(
                SavedView(
                    id=str(item.get("id", "")),
                    name=str(item.get("name", "")),
                    filters=dict(item.get("filters") or {}),
                    date_range=dict(item.get("date_range") or {}),
                )
            )
        return views

    def _write_views(self, views: List[SavedView]) -> None:
        self.store.set(SAVED_VIEWS_KEY, json.dumps([asdict(view) for view in views]))

    def save_view(
        self,
        name: str,
        filters: Optional[Dict[str, str]] = None,
        date_range: Optional[Dict[str, Optional[str]]] = None,
    ) -> Optional[SavedView]:
        """Append a named view; blank names are ignored and return ``None``."""

        if not name or not name.strip():
            return None
        view = SavedView(
            id=uuid.uuid4().hex,
            name=name.strip(),
            filters=dict(filters or {}),
            date_range=dict(date_range or {}),
        )
        self._write_views([*self.list_views(), view])
        return view

    def delete_view(self, view_id: str) -> bool:
        views = self.list_views()
        remaining = [view for view in views if view.id != view_id]
        if len(remaining) == len(views):
            return False
        self._write_views(remaining)
        return True

    def snapshots(self) -> List[MetricsSnapshot]:
        return [
            MetricsSnapshot(timestamp=str(item.get("timestamp", "")), metrics=dict(item.get("metrics") or {}))
            for item in _load_list(self.store, SNAPSHOTS_KEY)
        ]

    def record_snapshot(self, metrics: Dict[str, float], *, timestamp: Optional[datetime] = None) -> MetricsSnapshot:
        """Store a metrics snapshot, keeping only the most recent entries."""

        stamp = (timestamp or datetime.now(timezone.utc)).isoformat()
        snapshot = MetricsSnapshot(timestamp=stamp, metrics={key: float(value) for key, value in metrics.items()})
        history = [*self.snapshots(), snapshot][-SNAPSHOT_HISTORY:]
        self.store.set(SNAPSHOTS_KEY, json.dumps([asdict(item) for item in history]))
        return snapshot
