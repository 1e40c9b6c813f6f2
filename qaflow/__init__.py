"""qaflow - snapshot-verified flow checklists.

qaflow runs ordered sequences of asynchronous operations ("acts") against a
system under test and verifies the values they produce ("checks") against
snapshots recorded on an earlier run. Non-deterministic fields such as
generated ids are normalized away before comparison.

Key Features:
    - Flow DSL: ``define_flow(name).act(...).check(...)``
    - Snapshot verification: the first run records, later runs compare
    - Normalizers: strip or mask ids, timestamps and tokens
    - Isolation: a failing flow never stops the others
    - Reporters: text, JSON and JUnit XML output

Example:
    >>> from qaflow import FlowRunner, JSONFileSnapshotStore, define_flow, strip_fields
    >>>
    >>> flow = (
    ...     define_flow("Basic API functionality")
    ...     .act("fetch todos", fetch_todos)
    ...     .check("list should be empty")
    ...     .act("submit a valid todo", create_todo)
    ...     .check("returns a 201", strip_fields("id"))
    ...     .build()
    ... )
    >>>
    >>> runner = FlowRunner(JSONFileSnapshotStore("__snapshots__"))
    >>> report = runner.run([flow])
    >>> print(f"Passed: {report.passed}")

Core Models:
    Flow: A named, ordered sequence of steps
    Act: A step producing the next context value
    Check: A step verifying the context value against a snapshot

Results:
    StepResult: Result of executing a single step
    FlowReport: Result of executing a flow
    RunReport: Result of a whole run, with its exit code

Execution:
    FlowRunner: Runs flows one after another
    FlowRegistry: Collects uniquely named flows
    FlowExecutor: Runs the steps of one flow

Snapshots:
    SnapshotStore: Store contract
    JSONFileSnapshotStore: One reviewable JSON file per flow
    InMemorySnapshotStore: Store for tests

Error Handling:
    QAFlowError: Base exception for all qaflow errors
    OperationFailure: An act's operation raised
    AssertionMismatch: A check's value differs from its snapshot
    ConfigurationError: Invalid configuration or flow declaration
"""

from qaflow.errors import (
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
from qaflow.core import (
    Act,
    Check,
    ErrorDetail,
    Flow,
    FlowBuilder,
    FlowContext,
    FlowReport,
    RunReport,
    SnapshotAction,
    SnapshotMode,
    StepKind,
    StepResult,
    StepStatus,
    define_flow,
)
from qaflow.comparison import (
    DiffConfig,
    JSONDiff,
    compose,
    mask_fields,
    mask_matching,
    strip_fields,
)
from qaflow.snapshots import (
    InMemorySnapshotStore,
    JSONFileSnapshotStore,
    SnapshotStore,
    snapshot_key,
    to_comparable,
)
from qaflow.runner import FlowExecutor, FlowRegistry, FlowRunner, run_flows
from qaflow.operations import with_retry, with_timeout
from qaflow.reporters import JSONReporter, JUnitReporter, TextReporter, exit_status
from qaflow.config import QAFlowConfig, load_config

__version__ = "0.1.0"

__all__ = [
    # Core models
    "Act",
    "Check",
    "Flow",
    "FlowBuilder",
    "FlowContext",
    "define_flow",
    # Results
    "ErrorDetail",
    "FlowReport",
    "RunReport",
    "SnapshotAction",
    "SnapshotMode",
    "StepKind",
    "StepResult",
    "StepStatus",
    # Execution
    "FlowExecutor",
    "FlowRegistry",
    "FlowRunner",
    "run_flows",
    "with_retry",
    "with_timeout",
    # Comparison
    "DiffConfig",
    "JSONDiff",
    "compose",
    "mask_fields",
    "mask_matching",
    "strip_fields",
    # Snapshots
    "InMemorySnapshotStore",
    "JSONFileSnapshotStore",
    "SnapshotStore",
    "snapshot_key",
    "to_comparable",
    # Reporting
    "JSONReporter",
    "JUnitReporter",
    "TextReporter",
    "exit_status",
    # Configuration
    "QAFlowConfig",
    "load_config",
    # Errors
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
