"""Registry for the flows of one checklist.

Unlike a process-wide singleton, a FlowRegistry is an ordinary object: a
checklist module creates one, registers its flows and hands it to a runner.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterator
from typing import Any, Literal

from qaflow.core.builder import FlowBuilder
from qaflow.core.models import Flow
from qaflow.errors import (
    ConfigurationError,
    DuplicateFlowError,
    ErrorContext,
    FlowValidationError,
)

logger = logging.getLogger(__name__)

DuplicatePolicy = Literal["forbid", "replace"]
DUPLICATE_POLICIES: tuple[str, ...] = ("forbid", "replace")

BuildFunction = Callable[[FlowBuilder], Any]


class FlowRegistry:
    """Ordered collection of uniquely named flows.

    Flows keep their registration order, which is also the order the runner
    executes them in. Replacing a flow keeps its original position.

    Args:
        on_duplicate: "forbid" raises DuplicateFlowError when a name is
            registered twice; "replace" swaps in the new flow and logs a warning.

    Example:
        >>> registry = FlowRegistry()
        >>>
        >>> @registry.flow("Basic API functionality")
        ... def basic(f):
        ...     f.act("fetch todos", fetch_todos)
        ...     f.check("list should be empty")
    """

    def __init__(self, on_duplicate: DuplicatePolicy = "forbid") -> None:
        if on_duplicate not in DUPLICATE_POLICIES:
            raise ConfigurationError(
                message=f"on_duplicate must be one of {', '.join(DUPLICATE_POLICIES)}, got {on_duplicate!r}",
                on_duplicate=on_duplicate,
            )
        self.on_duplicate = on_duplicate
        self._flows: dict[str, Flow] = {}

    def register(self, flow: Flow | FlowBuilder) -> Flow:
        """Register a built flow, or build and register a FlowBuilder."""
        if isinstance(flow, FlowBuilder):
            flow = flow.build()
        if not isinstance(flow, Flow):
            raise FlowValidationError(
                message=f"Expected a Flow or FlowBuilder, got {type(flow).__name__}",
            )

        if flow.name in self._flows:
            if self.on_duplicate == "forbid":
                raise DuplicateFlowError(
                    message=f"Flow '{flow.name}' is already registered",
                    context=ErrorContext(flow_name=flow.name),
                )
            logger.warning(f"Replacing previously registered flow: {flow.name}")
        else:
            logger.debug(f"Registered flow: {flow.name}")

        self._flows[flow.name] = flow
        return flow

    def register_flow(self, name: str, build: BuildFunction) -> Flow:
        """Declare a flow by calling ``build(builder)`` and register the result.

        ``build`` runs synchronously and declares steps on the builder it is
        given. If it returns a Flow or FlowBuilder, that is registered instead.

        Raises:
            FlowValidationError: If ``build`` is asynchronous or declares an
                invalid step.
            DuplicateFlowError: If ``name`` is taken and duplicates are forbidden.
        """
        builder = FlowBuilder(name)
        returned = build(builder)

        if inspect.isawaitable(returned):
            if inspect.iscoroutine(returned):
                returned.close()
            raise FlowValidationError(
                message=f"Flow '{name}' must be declared synchronously; its build function returned an awaitable",
                context=ErrorContext(flow_name=name),
            )

        if isinstance(returned, (Flow, FlowBuilder)):
            return self.register(returned)
        return self.register(builder)

    def flow(self, name: str) -> Callable[[BuildFunction], BuildFunction]:
        """Decorator form of ``register_flow``."""

        def decorator(build: BuildFunction) -> BuildFunction:
            self.register_flow(name, build)
            return build

        return decorator

    def get(self, name: str) -> Flow | None:
        return self._flows.get(name)

    def names(self) -> list[str]:
        return list(self._flows)

    def unregister(self, name: str) -> bool:
        return self._flows.pop(name, None) is not None

    def clear(self) -> None:
        self._flows.clear()

    def __iter__(self) -> Iterator[Flow]:
        return iter(list(self._flows.values()))

    def __len__(self) -> int:
        return len(self._flows)

    def __contains__(self, name: object) -> bool:
        return name in self._flows

    def __repr__(self) -> str:
        return f"FlowRegistry(flows={len(self._flows)}, on_duplicate={self.on_duplicate!r})"
