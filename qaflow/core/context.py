"""Execution context threaded through the steps of one flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class FlowContext:
    """The single value passed from step to step within a flow.

    ``value`` starts as None and is replaced by the result of every
    successful act. Checks read it but never replace it.
    """

    flow_name: str
    value: Any = None
    _history: list[tuple[int, str]] = field(default_factory=list)

    def replace(self, ordinal: int, label: str, value: Any) -> None:
        """Replace the context value with the result of the act at ``ordinal``."""
        self.value = value
        self._history.append((ordinal, label))

    @property
    def produced_by(self) -> str | None:
        """Label of the act that produced the current value, if any."""
        if not self._history:
            return None
        return self._history[-1][1]

    @property
    def acts_completed(self) -> int:
        return len(self._history)

    def to_dict(self) -> dict[str, Any]:
        """Export context metadata (not the value itself) for debugging."""
        return {
            "flow_name": self.flow_name,
            "produced_by": self.produced_by,
            "acts_completed": self.acts_completed,
        }
