"""Rich console output for qaflow runs.

ConsoleOutput is the progress listener the CLI hands to the runner: it prints
one line per step as flows execute and a summary table at the end.

Example:
    >>> output = ConsoleOutput(verbose=True)
    >>> runner = FlowRunner(store, output=output)
    >>> report = runner.run(flows)
    >>> output.run_summary(report)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from qaflow.comparison.diff import JSONDiffItem
from qaflow.core.models import FlowReport, RunReport, SnapshotAction, StepKind, StepResult


@dataclass
class OutputConfig:
    """Configuration for console output."""

    verbose: bool = False
    show_timing: bool = True
    use_unicode: bool = True
    max_diff_lines: int = 20


class ConsoleOutput:
    """Progress listener printing flow and step results with rich.

    Passing steps are only printed in verbose mode; failures, including the
    snapshot differences of a mismatch, are always printed.

    Attributes:
        config: OutputConfig controlling what is shown.
        console: Rich Console the output goes to (stderr by default).
    """

    SYMBOLS = {
        "check": "✓",
        "cross": "✗",
        "arrow": "→",
        "record": "●",
        "info": "ℹ",
        "warning": "⚠",
    }

    ASCII_SYMBOLS = {
        "check": "OK",
        "cross": "x",
        "arrow": "->",
        "record": "+",
        "info": "i",
        "warning": "!",
    }

    ACTION_STYLES = {
        SnapshotAction.MATCHED: "dim",
        SnapshotAction.RECORDED: "yellow",
        SnapshotAction.UPDATED: "magenta",
    }

    def __init__(
        self,
        config: OutputConfig | dict[str, Any] | None = None,
        console: Console | None = None,
        verbose: bool | None = None,
    ) -> None:
        if isinstance(config, dict):
            self.config = OutputConfig(**config)
        else:
            self.config = config or OutputConfig()
        if verbose is not None:
            self.config.verbose = verbose

        self.console = console or Console(stderr=True)
        self._use_unicode = self.config.use_unicode and self._supports_unicode()
        self.current_flow = ""
        self.total_steps = 0

    def _supports_unicode(self) -> bool:
        encoding = getattr(self.console.file, "encoding", None) or getattr(sys.stderr, "encoding", None)
        return encoding is not None and "utf" in encoding.lower()

    def _symbol(self, name: str) -> str:
        symbols = self.SYMBOLS if self._use_unicode else self.ASCII_SYMBOLS
        return symbols.get(name, name)

    def _format_duration(self, duration_ms: float) -> str:
        if duration_ms < 1000:
            return f"{duration_ms:.0f}ms"
        elif duration_ms < 60000:
            return f"{duration_ms / 1000:.2f}s"
        else:
            minutes = int(duration_ms / 60000)
            seconds = (duration_ms % 60000) / 1000
            return f"{minutes}m {seconds:.1f}s"

    def header(self, text: str) -> None:
        self.console.print()
        self.console.rule(f"[bold]{text}[/bold]", style="blue")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]{self._symbol('info')}[/blue] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]{self._symbol('warning')}[/yellow] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]{self._symbol('cross')}[/red] {message}")

    def success(self, message: str) -> None:
        self.console.print(f"[green]{self._symbol('check')}[/green] {message}")

    def flow_start(self, name: str, total_steps: int = 0) -> None:
        """Signal the start of a flow."""
        self.current_flow = name
        self.total_steps = total_steps
        self.console.print()
        self.console.print(
            f"[bold cyan]{self._symbol('arrow')} {escape(name)}[/bold cyan] "
            f"[dim]({total_steps} step{'s' if total_steps != 1 else ''})[/dim]"
        )

    def step_start(self, label: str, ordinal: int = 0, kind: StepKind | None = None) -> None:
        """Signal the start of a step. Only shown in verbose mode."""
        if self.config.verbose:
            kind_text = f"{kind.value} " if kind is not None else ""
            self.console.print(f"  [dim]{ordinal}/{self.total_steps} {kind_text}{escape(label)}...[/dim]")

    def step_pass(self, result: StepResult) -> None:
        """Signal a passed step."""
        if not self.config.verbose and result.snapshot_action != SnapshotAction.RECORDED:
            return

        recorded = result.snapshot_action == SnapshotAction.RECORDED
        line = Text("  ")
        line.append(self._symbol("record" if recorded else "check"), style="yellow" if recorded else "green")
        line.append(f" {result.label}")
        if result.snapshot_action is not None:
            style = self.ACTION_STYLES.get(result.snapshot_action, "dim")
            line.append(f" [{result.snapshot_action.value}]", style=style)
        if self.config.show_timing:
            line.append(f" ({self._format_duration(result.duration_ms)})", style="dim")
        self.console.print(line)

    def step_fail(self, result: StepResult) -> None:
        """Signal a failed step, with the error and any snapshot differences."""
        line = Text("  ")
        line.append(self._symbol("cross"), style="red")
        line.append(f" {result.label}", style="bold")
        if self.config.show_timing:
            line.append(f" ({self._format_duration(result.duration_ms)})", style="dim")
        self.console.print(line)

        error = result.error
        if error is None:
            return

        self.console.print(Text(f"    {error.kind}: {error.message}", style="red"))
        for item in error.diff[: self.config.max_diff_lines]:
            self.console.print(Text(f"      {JSONDiffItem.from_dict(item).describe()}", style="yellow"))
        hidden = len(error.diff) - self.config.max_diff_lines
        if hidden > 0:
            self.console.print(f"      [dim]... {hidden} more difference(s)[/dim]")
        if error.traceback and self.config.verbose:
            self.console.print(Text(error.traceback, style="dim"))

    def flow_result(self, report: FlowReport) -> None:
        """Signal the end of a flow."""
        if report.passed:
            self.console.print(
                f"  [green]{self._symbol('check')} PASS[/green] "
                f"[dim]{report.passed_steps} step(s) in {self._format_duration(report.duration_ms)}[/dim]"
            )
        else:
            self.console.print(
                f"  [red]{self._symbol('cross')} FAIL[/red] "
                f"[dim]after {report.total_steps} step(s)[/dim]"
            )

    def run_summary(self, report: RunReport) -> None:
        """Display a summary table of every flow in the run."""
        self.header("Summary")

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Flow", min_width=30)
        table.add_column("Result", justify="center")
        table.add_column("Steps", justify="right")
        table.add_column("Duration", justify="right")

        for flow in report.flows:
            result = Text("PASS", style="green") if flow.passed else Text("FAIL", style="red bold")
            table.add_row(
                Text(flow.flow_name),
                result,
                f"{flow.passed_steps}/{flow.total_steps}",
                self._format_duration(flow.duration_ms),
            )
        self.console.print(table)
        self.console.print()

        passed = len(report.passed_flows)
        total = len(report.flows)
        if report.passed:
            self.success(f"{passed}/{total} flows passed ({report.mode.value} mode)")
        else:
            self.error(f"{total - passed} of {total} flows failed ({report.mode.value} mode)")
        if report.recorded_snapshots:
            self.info(f"{report.recorded_snapshots} snapshot(s) written")


def create_output(verbose: bool = False, console: Console | None = None) -> ConsoleOutput:
    """Create a ConsoleOutput with default settings."""
    return ConsoleOutput(OutputConfig(verbose=verbose), console=console)
