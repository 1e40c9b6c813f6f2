"""Snapshot storage: the store contract, shipped stores and key derivation."""

from qaflow.snapshots.base import SnapshotEntry, SnapshotStore
from qaflow.snapshots.json_file import JSONFileSnapshotStore
from qaflow.snapshots.keys import KEY_SEPARATOR, check_keys, flow_name_of, snapshot_key
from qaflow.snapshots.memory import InMemorySnapshotStore
from qaflow.snapshots.values import to_comparable

__all__ = [
    "InMemorySnapshotStore",
    "JSONFileSnapshotStore",
    "KEY_SEPARATOR",
    "SnapshotEntry",
    "SnapshotStore",
    "check_keys",
    "flow_name_of",
    "snapshot_key",
    "to_comparable",
]
