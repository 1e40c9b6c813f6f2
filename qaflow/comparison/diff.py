"""Deep structural comparison of snapshot values.

Checks compare JSON-compatible values: dicts, lists, strings, numbers,
booleans and None. Two values are equal when ``JSONDiff.compare`` returns no
differences.

Example:
    >>> from qaflow.comparison import JSONDiff
    >>>
    >>> diff = JSONDiff()
    >>> items = diff.compare({"id": "abc", "text": "x"}, {"id": "def", "text": "x"})
    >>> [item.path for item in items]
    ['id']
"""

from __future__ import annotations

import fnmatch
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DiffType(Enum):
    """Types of JSON diff operations."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    TYPE_CHANGED = "type_changed"


@dataclass
class DiffConfig:
    """Configuration for comparison behavior.

    The defaults compare strictly: nothing is ignored, whitespace matters and
    list order matters. Non-deterministic fields should be handled by a
    check's normalizer rather than by loosening the comparison.

    Attributes:
        ignore_patterns: Glob patterns for paths to ignore (e.g. "*.timestamp").
        ignore_fields: Exact field names to ignore.
        normalize_whitespace: Collapse whitespace before comparing strings.
        ignore_order: Compare lists as multisets.
        max_depth: Depth below which subtrees are compared whole and reported
            as a single change instead of field by field.
    """

    ignore_patterns: list[str] = field(default_factory=list)
    ignore_fields: set[str] = field(default_factory=set)
    normalize_whitespace: bool = False
    ignore_order: bool = False
    max_depth: int = 100


@dataclass
class JSONDiffItem:
    """A single difference found in JSON comparison.

    Attributes:
        path: Path to the differing value (e.g. "data.todos[0].text").
        diff_type: Type of difference.
        old_value: Value in the snapshot.
        new_value: Value produced by the current run.
    """

    path: str
    diff_type: DiffType
    old_value: Any = None
    new_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "path": self.path,
            "type": self.diff_type.value,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JSONDiffItem:
        """Rebuild an item from ``to_dict`` output, e.g. from an ErrorDetail."""
        return cls(
            path=data.get("path", ""),
            diff_type=DiffType(data.get("type", DiffType.CHANGED.value)),
            old_value=data.get("old_value"),
            new_value=data.get("new_value"),
        )

    def describe(self) -> str:
        """One-line human-readable description."""
        path = self.path or "(root)"
        old = json.dumps(self.old_value, default=str)
        new = json.dumps(self.new_value, default=str)
        if self.diff_type == DiffType.ADDED:
            return f"+ {path}: {new}"
        if self.diff_type == DiffType.REMOVED:
            return f"- {path}: {old}"
        return f"~ {path}: {old} -> {new}"


class JSONDiff:
    """Deep JSON comparison utility.

    Example:
        >>> diff = JSONDiff()
        >>> for item in diff.compare(expected, actual):
        ...     print(item.describe())
    """

    def __init__(self, config: DiffConfig | None = None) -> None:
        self.config = config or DiffConfig()

    def compare(self, old: Any, new: Any, path: str = "") -> list[JSONDiffItem]:
        """Compare two JSON-like structures.

        Args:
            old: The snapshot value.
            new: The current value.
            path: Path prefix (for recursion).

        Returns:
            List of differences; empty when the values are structurally equal.
        """
        items: list[JSONDiffItem] = []
        self._compare_recursive(old, new, path, items, depth=0)
        return items

    def equal(self, old: Any, new: Any) -> bool:
        """Whether two values are structurally equal."""
        return not self.compare(old, new)

    def _should_ignore(self, path: str) -> bool:
        if not path:
            return False

        field_name = path.split(".")[-1]
        if field_name in self.config.ignore_fields:
            return True

        for pattern in self.config.ignore_patterns:
            if fnmatch.fnmatch(path, pattern) or fnmatch.fnmatch(field_name, pattern):
                return True

        return False

    def _compare_recursive(
        self,
        old: Any,
        new: Any,
        path: str,
        items: list[JSONDiffItem],
        depth: int,
    ) -> None:
        if self._should_ignore(path):
            return

        if depth > self.config.max_depth:
            # below the limit a subtree is compared as a whole
            if json.dumps(old, sort_keys=True, default=str) != json.dumps(new, sort_keys=True, default=str):
                items.append(JSONDiffItem(
                    path=path or "(root)",
                    diff_type=DiffType.CHANGED,
                    old_value=old,
                    new_value=new,
                ))
            return

        # bool is an int subclass; True must not equal 1
        if type(old) is not type(new):
            items.append(JSONDiffItem(
                path=path or "(root)",
                diff_type=DiffType.TYPE_CHANGED,
                old_value=old,
                new_value=new,
            ))
            return

        if isinstance(old, dict):
            self._compare_dicts(old, new, path, items, depth)
            return

        if isinstance(old, list):
            self._compare_lists(old, new, path, items, depth)
            return

        if isinstance(old, str) and self.config.normalize_whitespace:
            if " ".join(old.split()) != " ".join(new.split()):
                items.append(JSONDiffItem(
                    path=path or "(root)",
                    diff_type=DiffType.CHANGED,
                    old_value=old,
                    new_value=new,
                ))
            return

        if old != new:
            items.append(JSONDiffItem(
                path=path or "(root)",
                diff_type=DiffType.CHANGED,
                old_value=old,
                new_value=new,
            ))

    def _compare_dicts(
        self,
        old: dict[str, Any],
        new: dict[str, Any],
        path: str,
        items: list[JSONDiffItem],
        depth: int,
    ) -> None:
        all_keys = set(old.keys()) | set(new.keys())

        for key in sorted(all_keys, key=str):
            key_path = f"{path}.{key}" if path else str(key)

            if self._should_ignore(key_path):
                continue

            if key not in old:
                items.append(JSONDiffItem(
                    path=key_path,
                    diff_type=DiffType.ADDED,
                    new_value=new[key],
                ))
            elif key not in new:
                items.append(JSONDiffItem(
                    path=key_path,
                    diff_type=DiffType.REMOVED,
                    old_value=old[key],
                ))
            else:
                self._compare_recursive(old[key], new[key], key_path, items, depth + 1)

    def _compare_lists(
        self,
        old: list[Any],
        new: list[Any],
        path: str,
        items: list[JSONDiffItem],
        depth: int,
    ) -> None:
        if self.config.ignore_order:
            self._compare_lists_unordered(old, new, path, items)
            return

        for i in range(max(len(old), len(new))):
            index_path = f"{path}[{i}]"

            if i >= len(old):
                items.append(JSONDiffItem(
                    path=index_path,
                    diff_type=DiffType.ADDED,
                    new_value=new[i],
                ))
            elif i >= len(new):
                items.append(JSONDiffItem(
                    path=index_path,
                    diff_type=DiffType.REMOVED,
                    old_value=old[i],
                ))
            else:
                self._compare_recursive(old[i], new[i], index_path, items, depth + 1)

    def _compare_lists_unordered(
        self,
        old: list[Any],
        new: list[Any],
        path: str,
        items: list[JSONDiffItem],
    ) -> None:
        remaining = [json.dumps(item, sort_keys=True) for item in new]

        for item in old:
            encoded = json.dumps(item, sort_keys=True)
            if encoded in remaining:
                remaining.remove(encoded)
            else:
                items.append(JSONDiffItem(
                    path=f"{path}[]",
                    diff_type=DiffType.REMOVED,
                    old_value=item,
                ))

        for encoded in remaining:
            items.append(JSONDiffItem(
                path=f"{path}[]",
                diff_type=DiffType.ADDED,
                new_value=json.loads(encoded),
            ))
