"""JSON file snapshot store.

Snapshots are grouped per flow: every flow gets one pretty-printed JSON
document in the snapshot directory, so expectation changes show up as
readable diffs in code review.

Document layout::

    {
      "flow": "Basic API functionality",
      "snapshots": {
        "Basic API functionality > list should be empty": {
          "recorded_at": "2026-01-01T12:00:00",
          "value": {"status_code": 200, "body": {"data": {"todos": []}}}
        }
      },
      "version": 1
    }

Example:
    >>> store = JSONFileSnapshotStore("__snapshots__")
    >>> store.put("todos > list should be empty", {"items": []})
    >>> store.get("todos > list should be empty")
    {'items': []}
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from qaflow.errors import SnapshotLocationError, SnapshotStoreError
from qaflow.snapshots.base import SnapshotEntry, SnapshotStore
from qaflow.snapshots.keys import flow_name_of
from qaflow.snapshots.values import to_comparable

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
SNAPSHOT_SUFFIX = ".snap.json"


def _encode(value: Any) -> str:
    return json.dumps(value, sort_keys=True, ensure_ascii=False)


def _slugify(text: str, max_length: int = 60) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:max_length].rstrip("-") or "flow"


class JSONFileSnapshotStore(SnapshotStore):
    """Durable store keeping one JSON document per flow.

    Writes go to a temporary file that atomically replaces the document, so
    an interrupted run never leaves a half-written snapshot behind.

    Attributes:
        directory: Directory holding the snapshot documents.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

        if self.directory.exists() and not self.directory.is_dir():
            raise SnapshotLocationError(
                message=f"Snapshot location '{self.directory}' exists and is not a directory",
                path=str(self.directory),
            )
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SnapshotLocationError(
                message=f"Cannot create snapshot directory '{self.directory}': {e}",
                path=str(self.directory),
                cause=e,
            ) from e

        self._documents: dict[Path, dict[str, Any]] = {}

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._snapshots_for(key).get(key)
        if entry is None:
            return default
        return copy.deepcopy(entry.get("value"))

    def put(self, key: str, value: Any) -> None:
        value = to_comparable(value)
        path = self._document_path(key)
        document = self._load(path)
        snapshots = document.setdefault("snapshots", {})

        current = snapshots.get(key)
        if current is not None and _encode(current.get("value")) == _encode(value):
            logger.debug(f"Snapshot unchanged, not rewriting: {key}")
            return

        snapshots[key] = {
            "value": value,
            "recorded_at": datetime.now().isoformat(timespec="seconds"),
        }
        document["flow"] = flow_name_of(key)
        self._write(path, document)
        logger.debug(f"Wrote snapshot: {key}")

    def exists(self, key: str) -> bool:
        return key in self._snapshots_for(key)

    def delete(self, key: str) -> bool:
        path = self._document_path(key)
        document = self._load(path)
        snapshots = document.get("snapshots", {})
        if key not in snapshots:
            return False

        del snapshots[key]
        if snapshots:
            self._write(path, document)
        else:
            self._remove(path)
        return True

    def keys(self) -> list[str]:
        keys: list[str] = []
        for path in self._document_paths():
            keys.extend(self._load(path).get("snapshots", {}).keys())
        return sorted(keys)

    def clear(self) -> int:
        removed = 0
        for path in self._document_paths():
            removed += len(self._load(path).get("snapshots", {}))
            self._remove(path)
        return removed

    def entries(self) -> list[SnapshotEntry]:
        entries: list[SnapshotEntry] = []
        for path in self._document_paths():
            for key, entry in self._load(path).get("snapshots", {}).items():
                recorded_at = entry.get("recorded_at")
                entries.append(SnapshotEntry(
                    key=key,
                    value=copy.deepcopy(entry.get("value")),
                    recorded_at=datetime.fromisoformat(recorded_at) if recorded_at else None,
                ))
        return sorted(entries, key=lambda e: e.key)

    def _document_path(self, key: str) -> Path:
        flow_name = flow_name_of(key)
        digest = hashlib.sha1(flow_name.encode("utf-8")).hexdigest()[:8]
        return self.directory / f"{_slugify(flow_name)}-{digest}{SNAPSHOT_SUFFIX}"

    def _document_paths(self) -> list[Path]:
        return sorted(
            path for path in self.directory.glob(f"*{SNAPSHOT_SUFFIX}")
            if not path.name.startswith(".tmp-")
        )

    def _snapshots_for(self, key: str) -> dict[str, Any]:
        return self._load(self._document_path(key)).get("snapshots", {})

    def _load(self, path: Path) -> dict[str, Any]:
        if path in self._documents:
            return self._documents[path]

        if not path.exists():
            document: dict[str, Any] = {"version": FORMAT_VERSION, "snapshots": {}}
        else:
            try:
                with open(path, encoding="utf-8") as f:
                    document = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise SnapshotStoreError(
                    message=f"Cannot read snapshot file '{path}': {e}",
                    path=str(path),
                    cause=e,
                ) from e
            if not isinstance(document, dict) or not isinstance(document.get("snapshots", {}), dict):
                raise SnapshotStoreError(
                    message=f"Snapshot file '{path}' is not a valid snapshot document",
                    path=str(path),
                )

        self._documents[path] = document
        return document

    def _write(self, path: Path, document: dict[str, Any]) -> None:
        document["version"] = FORMAT_VERSION
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=SNAPSHOT_SUFFIX)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, sort_keys=True, ensure_ascii=False)
                    f.write("\n")
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            self._documents.pop(path, None)
            raise SnapshotStoreError(
                message=f"Cannot write snapshot file '{path}': {e}",
                path=str(path),
                cause=e,
            ) from e
        self._documents[path] = document

    def _remove(self, path: Path) -> None:
        self._documents.pop(path, None)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise SnapshotStoreError(
                message=f"Cannot delete snapshot file '{path}': {e}",
                path=str(path),
                cause=e,
            ) from e
