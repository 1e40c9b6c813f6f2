"""Abstract base reporter class for qaflow.

Reporters turn a RunReport into an output format: plain text for a terminal,
JSON for tooling, JUnit XML for CI servers.

Example:
    >>> class CustomReporter(BaseReporter):
    ...     @property
    ...     def file_extension(self) -> str:
    ...         return ".custom"
    ...
    ...     def generate(self, report: RunReport) -> str:
    ...         return "custom format output"
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qaflow.core.models import RunReport


def exit_status(report: RunReport) -> int:
    """Map a run to a process exit status: 0 iff every flow passed, else 1."""
    return 0 if all(flow.passed for flow in report.flows) else 1


class BaseReporter(ABC):
    """Abstract base class for all qaflow reporters.

    Attributes:
        output_path: Optional default path for saving reports.

    Example:
        >>> reporter = JSONReporter()
        >>> reporter.save(run_report, path="reports/qaflow.json")
        PosixPath('reports/qaflow.json')
    """

    def __init__(self, output_path: str | Path | None = None) -> None:
        self.output_path = Path(output_path) if output_path else None

    @abstractmethod
    def generate(self, report: RunReport) -> str:
        """Render the run report.

        Implementations must produce a valid document for a run without
        flows.
        """
        ...

    def save(self, report: RunReport, path: str | Path | None = None) -> Path:
        """Save the generated report to a file, creating parent directories.

        Raises:
            ValueError: If no path is given and none was set in the constructor.
        """
        output_path = Path(path) if path else self.output_path
        if not output_path:
            raise ValueError(
                "Output path required for saving report. "
                "Provide 'path' argument or set 'output_path' in constructor."
            )

        content = self.generate(report)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(content)

        return output_path

    @property
    @abstractmethod
    def file_extension(self) -> str:
        """File extension including the dot, e.g. '.json'."""
        ...

    @staticmethod
    def calculate_timing_stats(durations: list[float]) -> dict[str, float]:
        """Aggregate timing statistics for a list of durations in milliseconds."""
        if not durations:
            return {
                "total": 0.0,
                "min": 0.0,
                "max": 0.0,
                "mean": 0.0,
                "count": 0,
            }

        total = sum(durations)
        return {
            "total": total,
            "min": min(durations),
            "max": max(durations),
            "mean": total / len(durations),
            "count": len(durations),
        }
