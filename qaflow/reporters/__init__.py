"""Reporters module for qaflow.

Provides report formats for run results:
- TextReporter: ``<flow>: PASS|FAIL`` lines for terminals
- JSONReporter: Structured JSON output
- JUnitReporter: JUnit XML for CI/CD integration
"""

from qaflow.reporters.base import BaseReporter, exit_status
from qaflow.reporters.json_report import JSONReporter
from qaflow.reporters.junit import JUnitReporter
from qaflow.reporters.text import TextReporter

REPORTERS: dict[str, type[BaseReporter]] = {
    "text": TextReporter,
    "json": JSONReporter,
    "junit": JUnitReporter,
}

__all__ = [
    "BaseReporter",
    "JSONReporter",
    "JUnitReporter",
    "REPORTERS",
    "TextReporter",
    "exit_status",
]
