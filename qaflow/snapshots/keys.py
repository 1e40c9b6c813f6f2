"""Snapshot key derivation.

A check's key is ``"<flow name> > <label>"``. When the same label appears on
more than one check in a flow, the n-th occurrence (n >= 2) gets a ``[n]``
suffix. Keys therefore stay stable when acts or differently labelled checks
are inserted elsewhere in the flow.

Flow names never contain the separator (see ``Flow.validate_name``), so the
flow name always ends at its first occurrence in a key, even when labels
contain it.
"""

from __future__ import annotations

from qaflow.core.models import NAME_SEPARATOR, Check, Flow

KEY_SEPARATOR = NAME_SEPARATOR


def snapshot_key(flow_name: str, label: str, occurrence: int = 1) -> str:
    """Build the key for the ``occurrence``-th check labelled ``label``."""
    key = f"{flow_name}{KEY_SEPARATOR}{label}"
    if occurrence > 1:
        key = f"{key} [{occurrence}]"
    return key


def flow_name_of(key: str) -> str:
    """The flow-name part of a key, used to group snapshots by flow."""
    return key.split(KEY_SEPARATOR, 1)[0]


def check_keys(flow: Flow) -> dict[int, str]:
    """Map the 1-based ordinal of every check in ``flow`` to its snapshot key."""
    seen: dict[str, int] = {}
    used: set[str] = set()
    keys: dict[int, str] = {}

    for ordinal, step in enumerate(flow.steps, start=1):
        if not isinstance(step, Check):
            continue
        occurrence = seen.get(step.label, 0) + 1
        key = snapshot_key(flow.name, step.label, occurrence)
        # a literal label such as "x [2]" must not take the slot of the second "x"
        while key in used:
            occurrence += 1
            key = snapshot_key(flow.name, step.label, occurrence)
        seen[step.label] = occurrence
        used.add(key)
        keys[ordinal] = key

    return keys
