"""Exception hierarchy for qaflow.

Errors fall into two groups:

- Step-level errors (OperationFailure, AssertionMismatch, NormalizationError,
  SnapshotError) are raised inside a flow and recovered by the executor into
  a failed StepResult. They abort the current flow, never the whole run.
- Definition errors (the ConfigurationError family) are raised while flows are
  declared or the engine is configured. They are fatal to the run, since they
  indicate a broken checklist rather than a failing system under test.

Every error carries an ErrorCode for programmatic handling and an
ErrorContext describing where it happened.

Example:
    try:
        registry.register(flow)
    except DuplicateFlowError as e:
        print(f"[{e.error_code.value}] {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for qaflow.

    Error codes are organized by category:
    - E2xx: Configuration and declaration errors
    - E3xx: Snapshot store errors
    - E4xx: Operation (act) errors
    - E5xx: Verification (check) errors
    - E9xx: Unknown/internal errors
    """

    # Configuration errors (E2xx)
    INVALID_CONFIG = "E201"
    INVALID_FLOW = "E202"
    DUPLICATE_FLOW = "E203"
    INVALID_SNAPSHOT_LOCATION = "E204"

    # Snapshot errors (E3xx)
    SNAPSHOT_FAILED = "E301"
    SNAPSHOT_STORE_FAILED = "E302"
    SNAPSHOT_SERIALIZATION_FAILED = "E303"

    # Operation errors (E4xx)
    OPERATION_FAILED = "E401"
    OPERATION_TIMEOUT = "E402"

    # Verification errors (E5xx)
    ASSERTION_MISMATCH = "E501"
    NORMALIZATION_FAILED = "E502"

    UNKNOWN = "E999"

    @property
    def category(self) -> str:
        """Get the error category name."""
        code_num = int(self.value[1:])
        if code_num < 300:
            return "configuration"
        elif code_num < 400:
            return "snapshot"
        elif code_num < 500:
            return "operation"
        elif code_num < 600:
            return "verification"
        else:
            return "unknown"


@dataclass
class ErrorContext:
    """Where an error happened.

    Attributes:
        flow_name: Name of the flow being executed or declared.
        step_label: Label of the current step.
        ordinal: 1-based position of the step within its flow.
        snapshot_key: Snapshot key involved, for check and store errors.
        extra: Additional context-specific information.
        timestamp: When the error occurred.
    """

    flow_name: str | None = None
    step_label: str | None = None
    ordinal: int | None = None
    snapshot_key: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for serialization."""
        result = {
            "flow_name": self.flow_name,
            "step_label": self.step_label,
            "ordinal": self.ordinal,
            "snapshot_key": self.snapshot_key,
            "extra": self.extra or None,
            "timestamp": self.timestamp.isoformat(),
        }
        return {k: v for k, v in result.items() if v is not None}

    def format_location(self) -> str:
        """Format the error location as a readable string."""
        parts = []
        if self.flow_name:
            parts.append(f"flow={self.flow_name}")
        if self.step_label:
            step = self.step_label
            if self.ordinal is not None:
                step = f"#{self.ordinal} {step}"
            parts.append(f"step={step}")
        return " > ".join(parts) if parts else "unknown location"


class QAFlowError(Exception):
    """Base exception for all qaflow errors.

    Attributes:
        error_code: Unique ErrorCode for this error type.
        message: Human-readable error description.
        context: ErrorContext with location details.
        cause: The underlying exception, if any.
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        error_code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
        **extra_context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code
        self.context = context or ErrorContext()
        self.cause = cause

        if extra_context:
            self.context.extra.update(extra_context)

        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.error_code.value}] {self.message}"]

        location = self.context.format_location()
        if location != "unknown location":
            parts.append(f"at {location}")

        return " | ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_code": self.error_code.value,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context.to_dict(),
            "cause": repr(self.cause) if self.cause else None,
        }


class ConfigurationError(QAFlowError):
    """Invalid configuration or broken flow declaration.

    Raised before any flow runs; terminates the run.
    """

    error_code = ErrorCode.INVALID_CONFIG
    default_message = "Invalid configuration"


class FlowValidationError(ConfigurationError):
    """A flow or one of its steps is malformed."""

    error_code = ErrorCode.INVALID_FLOW
    default_message = "Invalid flow declaration"


class DuplicateFlowError(ConfigurationError):
    """Two flows were registered under the same name while duplicates are forbidden."""

    error_code = ErrorCode.DUPLICATE_FLOW
    default_message = "Duplicate flow name"


class SnapshotLocationError(ConfigurationError):
    """The snapshot location is missing or unusable."""

    error_code = ErrorCode.INVALID_SNAPSHOT_LOCATION
    default_message = "Invalid snapshot location"


class SnapshotError(QAFlowError):
    """Base class for snapshot store problems encountered while running."""

    error_code = ErrorCode.SNAPSHOT_FAILED
    default_message = "Snapshot operation failed"


class SnapshotStoreError(SnapshotError):
    """The store could not read or write a snapshot."""

    error_code = ErrorCode.SNAPSHOT_STORE_FAILED
    default_message = "Snapshot store could not be read or written"


class SnapshotSerializationError(SnapshotError):
    """A value cannot be turned into a comparable snapshot value."""

    error_code = ErrorCode.SNAPSHOT_SERIALIZATION_FAILED
    default_message = "Value cannot be stored as a snapshot"


class OperationFailure(QAFlowError):
    """An act's operation raised or its awaitable was rejected.

    The original exception is kept in ``cause``.
    """

    error_code = ErrorCode.OPERATION_FAILED
    default_message = "Operation failed"


class OperationTimeoutError(OperationFailure):
    """An operation wrapped with ``with_timeout`` did not settle in time."""

    error_code = ErrorCode.OPERATION_TIMEOUT
    default_message = "Operation timed out"

    def __init__(
        self,
        timeout_seconds: float,
        elapsed_seconds: float | None = None,
        operation_description: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.elapsed_seconds = elapsed_seconds
        what = operation_description or "operation"
        message = kwargs.pop("message", None) or f"{what} did not finish within {timeout_seconds}s"
        super().__init__(message=message, **kwargs)


class AssertionMismatch(QAFlowError):
    """A check's value does not structurally equal the recorded snapshot.

    Attributes:
        expected: The recorded snapshot value.
        actual: The (normalized) value produced by this run.
        diff: Differences as a list of dictionaries (path, type, old/new).
    """

    error_code = ErrorCode.ASSERTION_MISMATCH
    default_message = "Value does not match snapshot"

    def __init__(
        self,
        expected: Any,
        actual: Any,
        diff: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        self.expected = expected
        self.actual = actual
        self.diff = diff or []
        message = kwargs.pop("message", None)
        if message is None:
            count = len(self.diff)
            message = f"Value does not match snapshot ({count} difference{'s' if count != 1 else ''})"
        super().__init__(message=message, **kwargs)


class NormalizationError(QAFlowError):
    """A check's normalize function raised."""

    error_code = ErrorCode.NORMALIZATION_FAILED
    default_message = "Normalizer failed"
