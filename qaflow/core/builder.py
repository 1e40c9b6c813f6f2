"""Declarative flow builder.

``define_flow`` returns a builder whose ``act`` and ``check`` methods append
steps in declaration order. Nothing is registered globally: the built Flow
is handed to a registry or runner explicitly.

Example:
    >>> flow = (
    ...     define_flow("Basic API functionality")
    ...     .act("fetch todos", fetch_todos)
    ...     .check("list should be empty")
    ...     .act("submit a valid todo", create_todo)
    ...     .check("returns a 201", strip_fields("id"))
    ...     .build()
    ... )
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from qaflow.core.models import Act, Check, Flow, FlowStep, Normalizer, Operation, flow_name_problem
from qaflow.errors import ErrorContext, FlowValidationError


def _validation_messages(error: ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return messages


class FlowBuilder:
    """Collects the ordered steps of one flow.

    Every method that adds a step returns the builder so declarations can be
    chained. Invalid steps raise FlowValidationError immediately, pointing at
    the offending step.
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        tags: list[str] | tuple[str, ...] | None = None,
    ) -> None:
        if not isinstance(name, str) or not name.strip():
            raise FlowValidationError(
                message="Flow name cannot be empty",
                context=ErrorContext(extra={"name": name}),
            )
        problem = flow_name_problem(name.strip())
        if problem:
            raise FlowValidationError(
                message=problem,
                context=ErrorContext(extra={"name": name}),
            )
        self._name = name.strip()
        self._description = description
        self._tags = tuple(tags or ())
        self._steps: list[FlowStep] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def steps(self) -> tuple[FlowStep, ...]:
        return tuple(self._steps)

    def act(self, label: str, operation: Operation, description: str = "") -> FlowBuilder:
        """Append an act step.

        Args:
            label: What the operation does.
            operation: Callable taking nothing or the current context value,
                returning the next context value or an awaitable of it.
            description: Optional longer description.
        """
        self._steps.append(
            self._make_step(Act, label=label, operation=operation, description=description)
        )
        return self

    def check(
        self,
        label: str,
        normalize: Normalizer | None = None,
        description: str = "",
    ) -> FlowBuilder:
        """Append a check step.

        Args:
            label: What is being verified.
            normalize: Optional function making non-deterministic fields stable.
            description: Optional longer description.
        """
        self._steps.append(
            self._make_step(Check, label=label, normalize=normalize, description=description)
        )
        return self

    def add(self, step: FlowStep) -> FlowBuilder:
        """Append an already constructed Act or Check."""
        if not isinstance(step, (Act, Check)):
            raise FlowValidationError(
                message=f"Flow steps must be Act or Check, got {type(step).__name__}",
                context=ErrorContext(flow_name=self._name, ordinal=len(self._steps) + 1),
            )
        self._steps.append(step)
        return self

    def build(self) -> Flow:
        """Freeze the declared steps into an immutable Flow."""
        try:
            return Flow(
                name=self._name,
                steps=tuple(self._steps),
                description=self._description,
                tags=self._tags,
            )
        except ValidationError as e:
            raise FlowValidationError(
                message=f"Flow '{self._name}' is invalid",
                context=ErrorContext(
                    flow_name=self._name,
                    extra={"issues": _validation_messages(e)},
                ),
                cause=e,
            ) from e

    def _make_step(self, step_cls: type[Act] | type[Check], **fields: Any) -> FlowStep:
        ordinal = len(self._steps) + 1
        try:
            return step_cls(**fields)
        except ValidationError as e:
            issues = _validation_messages(e)
            raise FlowValidationError(
                message=f"Invalid {step_cls.__name__.lower()} step #{ordinal} in flow '{self._name}': "
                + "; ".join(issues),
                context=ErrorContext(
                    flow_name=self._name,
                    step_label=fields.get("label") if isinstance(fields.get("label"), str) else None,
                    ordinal=ordinal,
                    extra={"issues": issues},
                ),
                cause=e,
            ) from e

    def __repr__(self) -> str:
        return f"FlowBuilder(name={self._name!r}, steps={len(self._steps)})"


def define_flow(
    name: str,
    description: str = "",
    tags: list[str] | tuple[str, ...] | None = None,
) -> FlowBuilder:
    """Start declaring a flow named ``name``."""
    return FlowBuilder(name, description=description, tags=tags)
