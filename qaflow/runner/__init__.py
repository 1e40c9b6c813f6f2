"""Flow Runner - executes a checklist of flows one after another."""

from __future__ import annotations

import asyncio
import logging
import traceback
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from qaflow.comparison.diff import DiffConfig
from qaflow.core.builder import FlowBuilder
from qaflow.core.models import ErrorDetail, Flow, FlowReport, RunReport, SnapshotMode
from qaflow.errors import ConfigurationError, DuplicateFlowError, ErrorCode, ErrorContext
from qaflow.runner.executor import FlowExecutor
from qaflow.runner.registry import FlowRegistry
from qaflow.snapshots.base import SnapshotStore
from qaflow.snapshots.json_file import JSONFileSnapshotStore

if TYPE_CHECKING:
    from qaflow.config import QAFlowConfig

logger = logging.getLogger(__name__)

FlowSource = FlowRegistry | Flow | FlowBuilder | Iterable[Flow | FlowBuilder]


class FlowRunner:
    """Runs flows strictly one at a time against a shared snapshot store.

    Each flow gets a fresh context and its own FlowReport. A flow that fails
    or even crashes never stops the flows after it; only configuration
    errors, raised before anything runs, end a run early.

    Example:
        >>> runner = FlowRunner(JSONFileSnapshotStore("__snapshots__"))
        >>> report = runner.run(registry)
        >>> sys.exit(report.exit_code)
    """

    def __init__(
        self,
        store: SnapshotStore,
        mode: SnapshotMode | str = SnapshotMode.VERIFY,
        diff_config: DiffConfig | None = None,
        output: Any | None = None,
    ) -> None:
        if not isinstance(store, SnapshotStore):
            raise ConfigurationError(
                message=f"A SnapshotStore is required, got {type(store).__name__}",
            )
        try:
            self.mode = SnapshotMode(mode)
        except ValueError as e:
            raise ConfigurationError(
                message=f"Unknown snapshot mode: {mode!r}",
                mode=str(mode),
                cause=e,
            ) from e

        self.store = store
        self.output = output
        self._executor = FlowExecutor(store, mode=self.mode, diff_config=diff_config, output=output)

    @classmethod
    def from_config(cls, config: QAFlowConfig, output: Any | None = None) -> FlowRunner:
        """Build a runner whose JSON file store lives in ``config.snapshot_dir``."""
        store = JSONFileSnapshotStore(config.snapshot_dir)
        return cls(store, mode=config.mode, output=output)

    async def run_all(
        self,
        flows: FlowSource,
        only: Iterable[str] | None = None,
    ) -> RunReport:
        """Run every flow and aggregate their reports.

        Args:
            flows: A FlowRegistry, a single flow, or an iterable of flows or
                builders.
            only: Optional flow names to restrict the run to.

        Raises:
            DuplicateFlowError: If two flows share a name.
            ConfigurationError: If ``only`` names an unknown flow.
        """
        selected = self._select(self._collect(flows), only)

        logger.info(f"Running {len(selected)} flow(s) in {self.mode.value} mode")
        started_at = datetime.now()
        reports = []
        for flow in selected:
            reports.append(await self._run_isolated(flow))
        finished_at = datetime.now()

        report = RunReport(
            flows=reports,
            mode=self.mode,
            started_at=started_at,
            finished_at=finished_at,
        )
        logger.info(
            f"Run finished: {len(report.passed_flows)} passed, "
            f"{len(report.failed_flows)} failed"
        )
        return report

    def run(self, flows: FlowSource, only: Iterable[str] | None = None) -> RunReport:
        """Synchronous wrapper around ``run_all``."""
        return asyncio.run(self.run_all(flows, only=only))

    async def _run_isolated(self, flow: Flow) -> FlowReport:
        started_at = datetime.now()
        try:
            return await self._executor.run(flow)
        except Exception as e:
            logger.exception(f"Flow crashed: {flow.name}")
            finished_at = datetime.now()
            return FlowReport(
                flow_name=flow.name,
                error=ErrorDetail(
                    kind=type(e).__name__,
                    code=getattr(getattr(e, "error_code", None), "value", ErrorCode.UNKNOWN.value),
                    message=str(e) or type(e).__name__,
                    traceback=traceback.format_exc(),
                ),
                started_at=started_at,
                finished_at=finished_at,
                duration_ms=(finished_at - started_at).total_seconds() * 1000,
            )

    @staticmethod
    def _collect(flows: FlowSource) -> list[Flow]:
        if isinstance(flows, (Flow, FlowBuilder)):
            flows = [flows]

        collected: list[Flow] = []
        seen: set[str] = set()
        for item in flows:
            flow = item.build() if isinstance(item, FlowBuilder) else item
            if not isinstance(flow, Flow):
                raise ConfigurationError(
                    message=f"Expected a Flow or FlowBuilder, got {type(item).__name__}",
                )
            if flow.name in seen:
                raise DuplicateFlowError(
                    message=f"Flow '{flow.name}' appears more than once",
                    context=ErrorContext(flow_name=flow.name),
                )
            seen.add(flow.name)
            collected.append(flow)
        return collected

    @staticmethod
    def _select(flows: list[Flow], only: Iterable[str] | None) -> list[Flow]:
        if only is None:
            return flows

        wanted = list(only)
        known = {flow.name for flow in flows}
        unknown = [name for name in wanted if name not in known]
        if unknown:
            raise ConfigurationError(
                message=f"Unknown flow(s): {', '.join(unknown)}",
                available=sorted(known),
            )
        return [flow for flow in flows if flow.name in wanted]


def run_flows(
    flows: FlowSource,
    config: QAFlowConfig | None = None,
    store: SnapshotStore | None = None,
    output: Any | None = None,
) -> RunReport:
    """Run flows synchronously with a configuration-built runner.

    When ``store`` is given it replaces the configured snapshot directory;
    the mode still comes from ``config``.
    """
    if config is None:
        from qaflow.config import load_config

        config = load_config()

    if store is not None:
        runner = FlowRunner(store, mode=config.mode, output=output)
    else:
        runner = FlowRunner.from_config(config, output=output)
    return runner.run(flows)


__all__ = [
    "FlowExecutor",
    "FlowRegistry",
    "FlowRunner",
    "run_flows",
]
