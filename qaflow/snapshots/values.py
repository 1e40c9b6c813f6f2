"""Canonical, JSON-compatible form of snapshot values.

Every value a check compares or stores goes through ``to_comparable`` first,
so a value read back from disk equals the value that was written and two
runs producing the same data compare equal regardless of container types.
"""

from __future__ import annotations

import dataclasses
import json
import math
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from qaflow.errors import SnapshotSerializationError


def _sort_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def to_comparable(value: Any, _path: str = "") -> Any:
    """Return a JSON-compatible deep copy of ``value``.

    - dict keys are converted to strings
    - lists and tuples become lists; sets become sorted lists
    - pydantic models and dataclasses become dicts
    - datetimes, UUIDs, Decimals and paths become strings; enums their value

    Raises:
        SnapshotSerializationError: If ``value`` contains anything else.
    """
    if isinstance(value, float) and not math.isfinite(value):
        # NaN never equals itself and JSON has no spelling for either value
        raise SnapshotSerializationError(
            message=f"Cannot snapshot non-finite float {value!r}{f' at {_path}' if _path else ''}",
            value_type="float",
            path=_path or "(root)",
        )

    if value is None or isinstance(value, (bool, int, float, str)):
        return value

    if isinstance(value, dict):
        return {str(k): to_comparable(v, f"{_path}.{k}" if _path else str(k)) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [to_comparable(v, f"{_path}[{i}]") for i, v in enumerate(value)]

    if isinstance(value, (set, frozenset)):
        items = [to_comparable(v, f"{_path}[]") for v in value]
        return sorted(items, key=_sort_key)

    if isinstance(value, BaseModel):
        return to_comparable(value.model_dump(mode="json"), _path)

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_comparable(dataclasses.asdict(value), _path)

    if isinstance(value, Enum):
        return to_comparable(value.value, _path)

    if isinstance(value, (datetime, date, time)):
        return value.isoformat()

    if isinstance(value, (UUID, Decimal, PurePath)):
        return str(value)

    raise SnapshotSerializationError(
        message=(
            f"Cannot snapshot value of type {type(value).__name__}"
            f"{f' at {_path}' if _path else ''}; return plain data (dict, list, str, number) "
            "from the act or convert it in the check's normalizer"
        ),
        value_type=type(value).__name__,
        path=_path or "(root)",
    )
