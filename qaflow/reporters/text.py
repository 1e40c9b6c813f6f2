"""Plain text reporter for terminals and CI logs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from qaflow.comparison.diff import JSONDiffItem
from qaflow.core.models import FlowReport, RunReport, StepResult
from qaflow.reporters.base import BaseReporter


class TextReporter(BaseReporter):
    """Generate a line-oriented text report.

    Every flow gets a ``<flow name>: PASS`` or ``<flow name>: FAIL`` line.
    Failed flows are followed by the failing step, its error and, for
    snapshot mismatches, one line per difference. With ``verbose`` every
    executed step is listed.
    """

    @property
    def file_extension(self) -> str:
        return ".txt"

    def __init__(self, output_path: str | Path | None = None, verbose: bool = False) -> None:
        super().__init__(output_path)
        self.verbose = verbose

    def generate(self, report: RunReport) -> str:
        lines: list[str] = []
        for flow in report.flows:
            lines.extend(self._flow_lines(flow))
        lines.append(self._summary_line(report))
        return "\n".join(lines) + "\n"

    def _flow_lines(self, flow: FlowReport) -> list[str]:
        lines = [f"{flow.flow_name}: {'PASS' if flow.passed else 'FAIL'}"]

        if self.verbose:
            for step in flow.results:
                lines.append(f"  {self._step_line(step)}")
        elif flow.failure is not None:
            lines.append(f"  {self._step_line(flow.failure)}")

        failure = flow.failure
        if failure is not None and failure.error is not None:
            lines.extend(f"    {line}" for line in self._error_lines(failure))

        if flow.error is not None:
            lines.append(f"  crashed: {flow.error.kind}: {flow.error.message}")

        return lines

    @staticmethod
    def _step_line(step: StepResult) -> str:
        marker = "ok" if step.passed else "FAILED"
        line = f"[{marker}] #{step.ordinal} {step.kind.value} {step.label}"
        if step.snapshot_action is not None:
            line += f" ({step.snapshot_action.value})"
        return line

    @staticmethod
    def _error_lines(step: StepResult) -> list[str]:
        error = step.error
        lines = [f"{error.kind} [{error.code}]: {error.message}"]
        if error.diff:
            lines.extend(JSONDiffItem.from_dict(item).describe() for item in error.diff)
        elif error.kind == "AssertionMismatch":
            lines.append(f"expected: {_dump(error.expected)}")
            lines.append(f"actual:   {_dump(error.actual)}")
        return lines

    @staticmethod
    def _summary_line(report: RunReport) -> str:
        total = len(report.flows)
        passed = len(report.passed_flows)
        line = f"{passed}/{total} flows passed in {report.duration_ms / 1000:.2f}s"
        if report.recorded_snapshots:
            line += f", {report.recorded_snapshots} snapshot(s) written"
        return line


def _dump(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)
