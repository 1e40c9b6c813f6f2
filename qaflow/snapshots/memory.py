"""In-memory snapshot store, for tests and dry runs."""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any

from qaflow.snapshots.base import SnapshotEntry, SnapshotStore
from qaflow.snapshots.values import to_comparable


class InMemorySnapshotStore(SnapshotStore):
    """Dict-backed store. Values are copied on the way in and out."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._entries: dict[str, SnapshotEntry] = {}
        for key, value in (initial or {}).items():
            self.put(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        return copy.deepcopy(entry.value)

    def put(self, key: str, value: Any) -> None:
        self._entries[key] = SnapshotEntry(
            key=key,
            value=to_comparable(value),
            recorded_at=datetime.now(),
        )

    def exists(self, key: str) -> bool:
        return key in self._entries

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._entries)

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def entries(self) -> list[SnapshotEntry]:
        return [copy.deepcopy(self._entries[key]) for key in self.keys()]
