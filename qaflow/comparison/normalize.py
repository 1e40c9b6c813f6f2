"""Ready-made normalizers for checks.

A normalizer turns a context value into a comparison value by making
non-deterministic fields (generated ids, timestamps, tokens) stable. Every
helper here returns a pure function: the input is never mutated and equal
inputs give equal outputs.

Example:
    >>> check("returns a 201", strip_fields("id"))
    >>> check("todo has timestamps", mask_fields("created_at", "updated_at"))
    >>> check("token issued", mask_matching(UUID_PATTERN, "<uuid>"))
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

Normalizer = Callable[[Any], Any]

DEFAULT_PLACEHOLDER = "<masked>"

UUID_PATTERN = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
ISO_TIMESTAMP_PATTERN = (
    r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?"
)


def _rebuild(value: Any, transform_dict: Callable[[dict[str, Any]], dict[str, Any]],
             transform_leaf: Callable[[Any], Any] | None = None) -> Any:
    if isinstance(value, dict):
        rebuilt = {k: _rebuild(v, transform_dict, transform_leaf) for k, v in value.items()}
        return transform_dict(rebuilt)
    if isinstance(value, (list, tuple)):
        return [_rebuild(v, transform_dict, transform_leaf) for v in value]
    if transform_leaf is not None:
        return transform_leaf(value)
    return value


def strip_fields(*names: str) -> Normalizer:
    """Remove every key in ``names``, at any depth."""
    targets = frozenset(names)

    def normalize(value: Any) -> Any:
        return _rebuild(value, lambda d: {k: v for k, v in d.items() if k not in targets})

    normalize.__name__ = f"strip_fields({', '.join(names)})"
    return normalize


def mask_fields(*names: str, placeholder: Any = DEFAULT_PLACEHOLDER) -> Normalizer:
    """Replace the value of every key in ``names`` with ``placeholder``, at any depth.

    Unlike ``strip_fields`` this keeps the key, so a missing field still
    shows up as a difference.
    """
    targets = frozenset(names)

    def normalize(value: Any) -> Any:
        return _rebuild(
            value,
            lambda d: {k: (placeholder if k in targets else v) for k, v in d.items()},
        )

    normalize.__name__ = f"mask_fields({', '.join(names)})"
    return normalize


def mask_matching(pattern: str | re.Pattern[str], placeholder: str = DEFAULT_PLACEHOLDER) -> Normalizer:
    """Replace every match of ``pattern`` inside string values with ``placeholder``.

    Dictionary keys are left alone.
    """
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern

    def replace(leaf: Any) -> Any:
        if isinstance(leaf, str):
            return regex.sub(placeholder, leaf)
        return leaf

    def normalize(value: Any) -> Any:
        return _rebuild(value, lambda d: d, replace)

    normalize.__name__ = f"mask_matching({regex.pattern!r})"
    return normalize


def compose(*normalizers: Normalizer) -> Normalizer:
    """Apply normalizers left to right."""

    def normalize(value: Any) -> Any:
        for fn in normalizers:
            value = fn(value)
        return value

    normalize.__name__ = "compose(" + ", ".join(getattr(n, "__name__", "?") for n in normalizers) + ")"
    return normalize
