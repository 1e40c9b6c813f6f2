"""Step chain executor - runs the steps of one flow in order.

The executor awaits each act before starting the next step, threads the
context value from act to act, and resolves checks against the snapshot
store. The first failed step aborts the flow; its failure is recorded in the
FlowReport instead of being raised.
"""

from __future__ import annotations

import inspect
import logging
import traceback
from datetime import datetime
from typing import Any

from qaflow.comparison.diff import DiffConfig, JSONDiff
from qaflow.core.context import FlowContext
from qaflow.core.models import (
    Act,
    Check,
    ErrorDetail,
    Flow,
    FlowReport,
    SnapshotAction,
    SnapshotMode,
    StepKind,
    StepResult,
    StepStatus,
)
from qaflow.errors import (
    AssertionMismatch,
    NormalizationError,
    OperationFailure,
    QAFlowError,
    SnapshotStoreError,
)
from qaflow.snapshots.base import SnapshotStore
from qaflow.snapshots.keys import check_keys
from qaflow.snapshots.values import to_comparable

logger = logging.getLogger(__name__)


def _format_traceback(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


class FlowExecutor:
    """Executes a single flow against a snapshot store.

    Args:
        store: Where check snapshots are read and written.
        mode: VERIFY compares against existing snapshots and records missing
            ones; UPDATE overwrites every snapshot.
        diff_config: Comparison settings. Defaults to strict comparison.
        output: Optional progress listener with ``flow_start``,
            ``step_start``, ``step_pass``, ``step_fail`` and ``flow_result``
            methods (see ``qaflow.cli.output.ConsoleOutput``).
    """

    def __init__(
        self,
        store: SnapshotStore,
        mode: SnapshotMode = SnapshotMode.VERIFY,
        diff_config: DiffConfig | None = None,
        output: Any | None = None,
    ) -> None:
        self.store = store
        self.mode = SnapshotMode(mode)
        self.diff = JSONDiff(diff_config)
        self.output = output

    async def run(self, flow: Flow) -> FlowReport:
        """Run every step of ``flow`` in declaration order."""
        logger.info(f"Starting flow: {flow.name}")
        if self.output:
            self.output.flow_start(flow.name, len(flow.steps))

        started_at = datetime.now()
        context = FlowContext(flow_name=flow.name)
        keys = check_keys(flow)
        results: list[StepResult] = []

        for ordinal, step in enumerate(flow.steps, start=1):
            logger.debug(f"Running step #{ordinal} ({step.kind}): {step.label}")
            if self.output:
                self.output.step_start(step.label, ordinal, step.step_kind)

            if isinstance(step, Act):
                result = await self._run_act(flow, step, ordinal, context)
            else:
                result = self._run_check(flow, step, ordinal, keys[ordinal], context)
            results.append(result)

            if result.passed:
                if self.output:
                    self.output.step_pass(result)
                continue

            if self.output:
                self.output.step_fail(result)
            logger.warning(
                f"Flow '{flow.name}' aborted at step #{ordinal} '{step.label}': "
                f"{result.error.message if result.error else 'unknown error'}"
            )
            break

        finished_at = datetime.now()
        report = FlowReport(
            flow_name=flow.name,
            results=results,
            started_at=started_at,
            finished_at=finished_at,
            duration_ms=(finished_at - started_at).total_seconds() * 1000,
        )
        logger.info(f"Finished flow: {flow.name} ({report.outcome.value})")
        if self.output:
            self.output.flow_result(report)
        return report

    async def _run_act(
        self,
        flow: Flow,
        step: Act,
        ordinal: int,
        context: FlowContext,
    ) -> StepResult:
        started_at = datetime.now()

        try:
            value = step.operation(context.value) if step.takes_context else step.operation()
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:
            if isinstance(e, OperationFailure):
                error = e
            else:
                error = OperationFailure(
                    message=f"{type(e).__name__}: {e}" if str(e) else type(e).__name__,
                    cause=e,
                )
            self._locate(error, flow, step, ordinal)
            logger.debug(f"Act '{step.label}' failed: {error.message}")
            return self._result(
                step, ordinal, started_at,
                error=ErrorDetail.from_error(error, traceback=_format_traceback(e)),
            )

        context.replace(ordinal, step.label, value)
        return self._result(step, ordinal, started_at)

    def _run_check(
        self,
        flow: Flow,
        step: Check,
        ordinal: int,
        key: str,
        context: FlowContext,
    ) -> StepResult:
        started_at = datetime.now()

        try:
            actual = self._comparison_value(step, context)
            action = self._resolve_snapshot(key, actual)
        except QAFlowError as e:
            self._locate(e, flow, step, ordinal, key)
            tb = _format_traceback(e.cause) if e.cause is not None else None
            return self._result(
                step, ordinal, started_at,
                error=ErrorDetail.from_error(e, traceback=tb),
                snapshot_key=key,
            )
        except Exception as e:
            # third-party stores may raise anything; it still only fails this flow
            error = SnapshotStoreError(
                message=f"Snapshot store failed: {type(e).__name__}: {e}",
                cause=e,
            )
            self._locate(error, flow, step, ordinal, key)
            logger.exception(f"Snapshot store failed for key: {key}")
            return self._result(
                step, ordinal, started_at,
                error=ErrorDetail.from_error(error, traceback=_format_traceback(e)),
                snapshot_key=key,
            )

        if action == SnapshotAction.RECORDED:
            logger.info(f"Recorded new snapshot: {key}")
        return self._result(step, ordinal, started_at, snapshot_key=key, snapshot_action=action)

    def _comparison_value(self, step: Check, context: FlowContext) -> Any:
        # the normalizer gets its own copy; the context value is never handed out
        value = to_comparable(context.value)
        if step.normalize is None:
            return value

        try:
            normalized = step.normalize(value)
        except Exception as e:
            raise NormalizationError(
                message=f"Normalizer raised {type(e).__name__}: {e}",
                cause=e,
            ) from e
        return to_comparable(normalized)

    def _resolve_snapshot(self, key: str, actual: Any) -> SnapshotAction:
        if self.mode == SnapshotMode.UPDATE:
            self.store.put(key, actual)
            return SnapshotAction.UPDATED

        if not self.store.exists(key):
            self.store.put(key, actual)
            return SnapshotAction.RECORDED

        expected = self.store.get(key)
        differences = self.diff.compare(expected, actual)
        if differences:
            raise AssertionMismatch(
                expected=expected,
                actual=actual,
                diff=[d.to_dict() for d in differences],
            )
        return SnapshotAction.MATCHED

    @staticmethod
    def _locate(
        error: QAFlowError,
        flow: Flow,
        step: Act | Check,
        ordinal: int,
        key: str | None = None,
    ) -> None:
        error.context.flow_name = flow.name
        error.context.step_label = step.label
        error.context.ordinal = ordinal
        if key is not None:
            error.context.snapshot_key = key

    @staticmethod
    def _result(
        step: Act | Check,
        ordinal: int,
        started_at: datetime,
        error: ErrorDetail | None = None,
        snapshot_key: str | None = None,
        snapshot_action: SnapshotAction | None = None,
    ) -> StepResult:
        finished_at = datetime.now()
        return StepResult(
            label=step.label,
            kind=StepKind.ACT if isinstance(step, Act) else StepKind.CHECK,
            ordinal=ordinal,
            status=StepStatus.FAILED if error is not None else StepStatus.PASSED,
            error=error,
            snapshot_key=snapshot_key,
            snapshot_action=snapshot_action,
            started_at=started_at,
            finished_at=finished_at,
            duration_ms=(finished_at - started_at).total_seconds() * 1000,
        )
