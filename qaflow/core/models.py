"""Core domain models for qaflow.

This module defines the building blocks of a checklist:
- Act: performs an asynchronous side effect and produces the next context value
- Check: verifies the current context value against a recorded snapshot
- Flow: a named, immutable, ordered sequence of acts and checks

and the results produced by running them:
- StepResult, FlowReport, RunReport

Example:
    >>> from qaflow.core import Act, Check, Flow
    >>>
    >>> flow = Flow(
    ...     name="todo basics",
    ...     steps=(
    ...         Act(label="fetch todos", operation=fetch_todos),
    ...         Check(label="list should be empty"),
    ...     ),
    ... )

Flows are usually declared with ``define_flow`` instead of being built by
hand; see ``qaflow.core.builder``.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from qaflow.errors import QAFlowError

Operation = Callable[..., Any]
Normalizer = Callable[[Any], Any]

NAME_SEPARATOR = " > "


class StepKind(Enum):
    """The two kinds of steps a flow is made of."""

    ACT = "act"
    CHECK = "check"


class StepStatus(Enum):
    """Outcome of a single step, flow or run."""

    PASSED = "passed"
    FAILED = "failed"


class SnapshotMode(Enum):
    """How checks treat the snapshot store.

    Attributes:
        VERIFY: Compare against existing snapshots; record missing ones.
        UPDATE: Overwrite every snapshot with the current value.
    """

    VERIFY = "verify"
    UPDATE = "update"


class SnapshotAction(Enum):
    """What a passing check did with its snapshot."""

    MATCHED = "matched"
    RECORDED = "recorded"
    UPDATED = "updated"


def accepts_context(operation: Operation) -> bool:
    """Whether an operation takes the context value as its first argument.

    Operations may be written as ``lambda: client.get("/todos")`` or as
    ``lambda res: res["body"]``; zero-argument callables are invoked without
    the context. Callables whose signature cannot be inspected are assumed
    to take it.
    """
    try:
        signature = inspect.signature(operation)
    except (TypeError, ValueError):
        return True

    for parameter in signature.parameters.values():
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        ):
            return True
    return False


def _clean_label(value: str, what: str) -> str:
    if not value.strip():
        raise ValueError(f"{what} cannot be empty or whitespace")
    return value.strip()


def flow_name_problem(name: str) -> str | None:
    """Why ``name`` cannot be used as a flow name, or None when it can.

    Snapshot keys join the flow name and the check label with
    ``NAME_SEPARATOR``, so a flow name must neither contain it nor end with
    its first half.
    """
    if NAME_SEPARATOR in name or name.endswith(NAME_SEPARATOR.rstrip()):
        return f"Flow name {name!r} cannot contain '{NAME_SEPARATOR.strip()}' after a space"
    return None


class Act(BaseModel):
    """A step that performs an operation and produces the next context value.

    Attributes:
        label: Human-readable description of the action, e.g. "submit a valid todo".
        operation: Callable taking no argument or the current context value.
            It may return a plain value or an awaitable.
        description: Optional longer description.
        takes_context: Whether ``operation`` receives the context value.
            Detected from the operation's signature when not given.

    Example:
        >>> Act(label="fetch todos", operation=lambda: client.get("/todos"))
        >>> Act(label="copy the ids", operation=lambda res: [t["id"] for t in res["todos"]])
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        extra="forbid",
        frozen=True,
    )

    kind: Literal["act"] = "act"
    label: str = Field(..., min_length=1, description="Step label")
    operation: Operation = Field(..., description="Operation producing the next context value")
    description: str = Field(default="", description="Longer description")
    takes_context: bool = Field(default=True, description="Pass the context value to the operation")

    @model_validator(mode="before")
    @classmethod
    def detect_arity(cls, data: Any) -> Any:
        if isinstance(data, dict) and "takes_context" not in data:
            operation = data.get("operation")
            if callable(operation):
                data = {**data, "takes_context": accepts_context(operation)}
        return data

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        return _clean_label(v, "Act label")

    @field_validator("operation", mode="before")
    @classmethod
    def validate_operation(cls, v: Any) -> Operation:
        if not callable(v):
            raise ValueError("Act operation must be callable")
        return v

    @property
    def step_kind(self) -> StepKind:
        return StepKind.ACT


class Check(BaseModel):
    """A step that verifies the current context value against a snapshot.

    Attributes:
        label: What is being verified, e.g. "list should have one todo".
        normalize: Optional pure function applied to a copy of the context
            value before comparison. Use it to replace generated ids,
            timestamps and tokens with stable placeholders.
        description: Optional longer description.

    Example:
        >>> Check(label="returns a 201", normalize=strip_fields("id"))
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        extra="forbid",
        frozen=True,
    )

    kind: Literal["check"] = "check"
    label: str = Field(..., min_length=1, description="Step label")
    normalize: Normalizer | None = Field(default=None, description="Normalizer applied before comparison")
    description: str = Field(default="", description="Longer description")

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        return _clean_label(v, "Check label")

    @field_validator("normalize", mode="before")
    @classmethod
    def validate_normalize(cls, v: Any) -> Normalizer | None:
        if v is not None and not callable(v):
            raise ValueError("Check normalize must be callable or None")
        return v

    @property
    def step_kind(self) -> StepKind:
        return StepKind.CHECK


FlowStep = Act | Check


class Flow(BaseModel):
    """A named, ordered sequence of acts and checks.

    Flows are immutable once built and share no state with one another.

    Attributes:
        name: Unique name of the flow within a run.
        steps: Ordered acts and checks.
        description: Optional description of the scenario.
        tags: Tags for filtering.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        extra="forbid",
        frozen=True,
    )

    name: str = Field(..., min_length=1, description="Flow name")
    steps: tuple[FlowStep, ...] = Field(default_factory=tuple, description="Ordered steps")
    description: str = Field(default="", description="Scenario description")
    tags: tuple[str, ...] = Field(default_factory=tuple, description="Tags")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = _clean_label(v, "Flow name")
        problem = flow_name_problem(v)
        if problem:
            raise ValueError(problem)
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(tag.strip().lower() for tag in v if tag.strip())

    @property
    def acts(self) -> list[Act]:
        return [s for s in self.steps if isinstance(s, Act)]

    @property
    def checks(self) -> list[Check]:
        return [s for s in self.steps if isinstance(s, Check)]

    def has_tag(self, tag: str) -> bool:
        """Check if the flow has a specific tag."""
        return tag.strip().lower() in self.tags

    def __hash__(self) -> int:
        return hash(self.name)


class ErrorDetail(BaseModel):
    """Serializable description of why a step failed.

    Attributes:
        kind: Error class name, e.g. "OperationFailure" or "AssertionMismatch".
        code: ErrorCode value, e.g. "E401".
        message: Human-readable message, including the original failure reason.
        expected: Snapshot value, for assertion mismatches.
        actual: Value produced by this run, for assertion mismatches.
        diff: Differences between expected and actual.
        traceback: Formatted traceback of the original exception, if any.
    """

    model_config = ConfigDict(extra="forbid")

    kind: str = Field(..., description="Error class name")
    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    expected: Any = Field(default=None, description="Expected value")
    actual: Any = Field(default=None, description="Actual value")
    diff: list[dict[str, Any]] = Field(default_factory=list, description="Differences")
    traceback: str | None = Field(default=None, description="Formatted traceback")

    @classmethod
    def from_error(cls, error: QAFlowError, traceback: str | None = None) -> ErrorDetail:
        """Build a detail record from a qaflow error."""
        return cls(
            kind=type(error).__name__,
            code=error.error_code.value,
            message=error.message,
            expected=getattr(error, "expected", None),
            actual=getattr(error, "actual", None),
            diff=list(getattr(error, "diff", None) or []),
            traceback=traceback,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


class StepResult(BaseModel):
    """Result of executing a single step.

    Attributes:
        label: Label of the executed step.
        kind: Whether the step was an act or a check.
        ordinal: 1-based position of the step in its flow.
        status: Passed or failed.
        error: Failure details; set if and only if the step failed.
        snapshot_key: Key used by a check.
        snapshot_action: What a passing check did with its snapshot.
        started_at: Timestamp when execution began.
        finished_at: Timestamp when execution completed.
        duration_ms: Execution duration in milliseconds.
    """

    model_config = ConfigDict(extra="forbid")

    label: str = Field(..., description="Step label")
    kind: StepKind = Field(..., description="Step kind")
    ordinal: int = Field(..., ge=1, description="1-based step position")
    status: StepStatus = Field(..., description="Step outcome")
    error: ErrorDetail | None = Field(default=None, description="Failure details")
    snapshot_key: str | None = Field(default=None, description="Snapshot key for checks")
    snapshot_action: SnapshotAction | None = Field(default=None, description="Snapshot action")
    started_at: datetime = Field(default_factory=datetime.now, description="Start timestamp")
    finished_at: datetime = Field(default_factory=datetime.now, description="End timestamp")
    duration_ms: float = Field(default=0.0, ge=0, description="Duration in milliseconds")

    @model_validator(mode="after")
    def validate_consistency(self) -> StepResult:
        if self.status == StepStatus.PASSED and self.error is not None:
            raise ValueError("Passed step should not have an error")
        if self.status == StepStatus.FAILED and self.error is None:
            raise ValueError("Failed step must have an error")
        if self.finished_at < self.started_at:
            raise ValueError("finished_at cannot be before started_at")
        return self

    @property
    def passed(self) -> bool:
        return self.status == StepStatus.PASSED

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            "label": self.label,
            "kind": self.kind.value,
            "ordinal": self.ordinal,
            "status": self.status.value,
            "error": self.error.to_dict() if self.error else None,
            "snapshot_key": self.snapshot_key,
            "snapshot_action": self.snapshot_action.value if self.snapshot_action else None,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_ms": self.duration_ms,
        }


class FlowReport(BaseModel):
    """Result of running one flow.

    ``results`` holds one entry per executed step; steps after the first
    failure never run and have no entry.

    Attributes:
        flow_name: Name of the flow.
        results: Ordered step results.
        error: Set when the flow crashed outside of any step.
        started_at: Timestamp when the flow started.
        finished_at: Timestamp when the flow finished.
        duration_ms: Total duration in milliseconds.
    """

    model_config = ConfigDict(extra="forbid")

    flow_name: str = Field(..., description="Flow name")
    results: list[StepResult] = Field(default_factory=list, description="Step results")
    error: ErrorDetail | None = Field(default=None, description="Crash outside any step")
    started_at: datetime = Field(default_factory=datetime.now, description="Start timestamp")
    finished_at: datetime = Field(default_factory=datetime.now, description="End timestamp")
    duration_ms: float = Field(default=0.0, ge=0, description="Duration in milliseconds")

    @property
    def outcome(self) -> StepStatus:
        if self.error is not None:
            return StepStatus.FAILED
        if any(r.status == StepStatus.FAILED for r in self.results):
            return StepStatus.FAILED
        return StepStatus.PASSED

    @property
    def passed(self) -> bool:
        return self.outcome == StepStatus.PASSED

    @property
    def total_steps(self) -> int:
        return len(self.results)

    @property
    def passed_steps(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_steps(self) -> int:
        return sum(1 for r in self.results if not r.passed)

    @property
    def failure(self) -> StepResult | None:
        """The step that aborted the flow, if any."""
        for result in self.results:
            if not result.passed:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "flow_name": self.flow_name,
            "outcome": self.outcome.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_ms": self.duration_ms,
            "total_steps": self.total_steps,
            "passed_steps": self.passed_steps,
            "failed_steps": self.failed_steps,
            "error": self.error.to_dict() if self.error else None,
            "results": [r.to_dict() for r in self.results],
        }


class RunReport(BaseModel):
    """Aggregate of every flow report produced by one run.

    Attributes:
        flows: Flow reports in execution order.
        mode: Snapshot mode the run used.
        started_at: Timestamp when the run started.
        finished_at: Timestamp when the run finished.
    """

    model_config = ConfigDict(extra="forbid")

    flows: list[FlowReport] = Field(default_factory=list, description="Flow reports")
    mode: SnapshotMode = Field(default=SnapshotMode.VERIFY, description="Snapshot mode")
    started_at: datetime = Field(default_factory=datetime.now, description="Start timestamp")
    finished_at: datetime = Field(default_factory=datetime.now, description="End timestamp")

    @property
    def outcome(self) -> StepStatus:
        if all(f.passed for f in self.flows):
            return StepStatus.PASSED
        return StepStatus.FAILED

    @property
    def passed(self) -> bool:
        return self.outcome == StepStatus.PASSED

    @property
    def exit_code(self) -> int:
        """Process exit status: 0 only if every flow passed."""
        return 0 if self.passed else 1

    @property
    def duration_ms(self) -> float:
        return (self.finished_at - self.started_at).total_seconds() * 1000

    @property
    def passed_flows(self) -> list[FlowReport]:
        return [f for f in self.flows if f.passed]

    @property
    def failed_flows(self) -> list[FlowReport]:
        return [f for f in self.flows if not f.passed]

    @property
    def recorded_snapshots(self) -> int:
        """Number of checks that wrote a new or updated snapshot."""
        return sum(
            1
            for f in self.flows
            for r in f.results
            if r.snapshot_action in (SnapshotAction.RECORDED, SnapshotAction.UPDATED)
        )

    def get_flow(self, name: str) -> FlowReport | None:
        for report in self.flows:
            if report.flow_name == name:
                return report
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "mode": self.mode.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_ms": self.duration_ms,
            "total_flows": len(self.flows),
            "passed_flows": len(self.passed_flows),
            "failed_flows": len(self.failed_flows),
            "recorded_snapshots": self.recorded_snapshots,
            "flows": [f.to_dict() for f in self.flows],
        }
