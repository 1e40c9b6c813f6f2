"""qaflow error handling.

Step-level errors are recovered into reports; the ConfigurationError family
is fatal and raised before any flow runs.
"""

from qaflow.errors.base import (
    AssertionMismatch,
    ConfigurationError,
    DuplicateFlowError,
    ErrorCode,
    ErrorContext,
    FlowValidationError,
    NormalizationError,
    OperationFailure,
    OperationTimeoutError,
    QAFlowError,
    SnapshotError,
    SnapshotLocationError,
    SnapshotSerializationError,
    SnapshotStoreError,
)

__all__ = [
    "AssertionMismatch",
    "ConfigurationError",
    "DuplicateFlowError",
    "ErrorCode",
    "ErrorContext",
    "FlowValidationError",
    "NormalizationError",
    "OperationFailure",
    "OperationTimeoutError",
    "QAFlowError",
    "SnapshotError",
    "SnapshotLocationError",
    "SnapshotSerializationError",
    "SnapshotStoreError",
]
