"""JSON reporter for structured run output.

Example:
    >>> reporter = JSONReporter(indent=4)
    >>> data = json.loads(reporter.generate(run_report))
    >>> data["summary"]["failed_flows"]
    0
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from qaflow.core.models import RunReport
from qaflow.reporters.base import BaseReporter

REPORT_VERSION = "1.0"


class JSONReporter(BaseReporter):
    """Generate JSON reports for programmatic consumption.

    The document holds report metadata, summary counts and the full
    ``RunReport.to_dict()`` flow and step details, including expected and
    actual values of mismatched checks.
    """

    @property
    def file_extension(self) -> str:
        return ".json"

    def __init__(
        self,
        output_path: str | Path | None = None,
        indent: int | None = 2,
    ) -> None:
        super().__init__(output_path)
        self.indent = indent

    def generate(self, report: RunReport) -> str:
        return json.dumps(self._build_report(report), indent=self.indent, default=self._json_serializer)

    def _build_report(self, report: RunReport) -> dict[str, Any]:
        data = report.to_dict()
        flows = data.pop("flows")
        return {
            "report": {
                "generated_at": datetime.now().isoformat(),
                "version": REPORT_VERSION,
            },
            "summary": {
                **data,
                "exit_code": report.exit_code,
                "step_timing": self.calculate_timing_stats(
                    [r.duration_ms for f in report.flows for r in f.results]
                ),
            },
            "flows": flows,
        }

    @staticmethod
    def _json_serializer(obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        return str(obj)
