"""Snapshot store contract.

A store maps snapshot keys to expected values and outlives the process.
Stores only persist and retrieve; comparison and the verify/update policy
live in the executor.

Example:
    >>> class RedisSnapshotStore(SnapshotStore):
    ...     def get(self, key, default=None): ...
    ...     def put(self, key, value): ...
    ...     def exists(self, key): ...
    ...     def delete(self, key): ...
    ...     def keys(self): ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class SnapshotEntry:
    """A stored snapshot with store-side metadata.

    ``recorded_at`` is informational only and never takes part in
    comparisons.
    """

    key: str
    value: Any
    recorded_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }


class SnapshotStore(ABC):
    """Abstract base class for snapshot stores.

    Implementations must guarantee that after ``put(key, value)``,
    ``get(key)`` returns a value structurally equal to ``value`` until the
    key is put again or deleted.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, or ``default`` if absent.

        ``None`` is a valid stored value; use ``exists`` to tell the two apart.
        """
        ...

    @abstractmethod
    def put(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, overwriting any previous value."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Whether a snapshot is stored under ``key``."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the snapshot under ``key``. Returns False if it did not exist."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        """All stored keys, sorted."""
        ...

    def clear(self) -> int:
        """Remove every snapshot. Returns the number removed."""
        removed = 0
        for key in self.keys():
            if self.delete(key):
                removed += 1
        return removed

    def entries(self) -> list[SnapshotEntry]:
        """All snapshots with their metadata, sorted by key."""
        return [SnapshotEntry(key=key, value=self.get(key)) for key in self.keys()]

    def __contains__(self, key: str) -> bool:
        return self.exists(key)
