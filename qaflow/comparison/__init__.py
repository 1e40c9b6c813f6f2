"""Structural comparison and normalization of snapshot values."""

from qaflow.comparison.diff import DiffConfig, DiffType, JSONDiff, JSONDiffItem
from qaflow.comparison.normalize import (
    ISO_TIMESTAMP_PATTERN,
    UUID_PATTERN,
    compose,
    mask_fields,
    mask_matching,
    strip_fields,
)

__all__ = [
    "DiffConfig",
    "DiffType",
    "ISO_TIMESTAMP_PATTERN",
    "JSONDiff",
    "JSONDiffItem",
    "UUID_PATTERN",
    "compose",
    "mask_fields",
    "mask_matching",
    "strip_fields",
]
