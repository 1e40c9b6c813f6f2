"""Core module exports."""

from qaflow.core.builder import FlowBuilder, define_flow
from qaflow.core.context import FlowContext
from qaflow.core.models import (
    Act,
    Check,
    ErrorDetail,
    Flow,
    FlowReport,
    RunReport,
    SnapshotAction,
    SnapshotMode,
    StepKind,
    StepResult,
    StepStatus,
)

__all__ = [
    "Act",
    "Check",
    "ErrorDetail",
    "Flow",
    "FlowBuilder",
    "FlowContext",
    "FlowReport",
    "RunReport",
    "SnapshotAction",
    "SnapshotMode",
    "StepKind",
    "StepResult",
    "StepStatus",
    "define_flow",
]
