"""JUnit XML reporter for CI/CD integration.

Each flow becomes a testsuite and each executed step a testcase. Steps after
a failure never ran and do not appear; a flow that crashed outside any step
gets one extra testcase carrying an error element.

Example:
    >>> reporter = JUnitReporter()
    >>> reporter.save(run_report, path="reports/junit.xml")
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Any

from qaflow.comparison.diff import JSONDiffItem
from qaflow.core.models import FlowReport, RunReport, StepResult
from qaflow.reporters.base import BaseReporter


class JUnitReporter(BaseReporter):
    """Generate JUnit XML reports for CI integration."""

    @property
    def file_extension(self) -> str:
        return ".xml"

    def generate(self, report: RunReport) -> str:
        root = self._build_xml(report)
        self._indent_xml(root)
        return ET.tostring(root, encoding="unicode", xml_declaration=True)

    def _build_xml(self, report: RunReport) -> ET.Element:
        test_suites = ET.Element("testsuites")

        total_tests = sum(f.total_steps + (1 if f.error else 0) for f in report.flows)
        total_failures = sum(f.failed_steps for f in report.flows)
        total_errors = sum(1 for f in report.flows if f.error is not None)

        test_suites.set("name", "qaflow")
        test_suites.set("tests", str(total_tests))
        test_suites.set("failures", str(total_failures))
        test_suites.set("errors", str(total_errors))
        test_suites.set("time", f"{report.duration_ms / 1000:.3f}")

        for flow in report.flows:
            test_suites.append(self._build_test_suite(flow))

        return test_suites

    def _build_test_suite(self, flow: FlowReport) -> ET.Element:
        test_suite = ET.Element("testsuite")

        test_suite.set("name", flow.flow_name)
        test_suite.set("tests", str(flow.total_steps))
        test_suite.set("failures", str(flow.failed_steps))
        test_suite.set("errors", "1" if flow.error else "0")
        test_suite.set("skipped", "0")
        test_suite.set("time", f"{flow.duration_ms / 1000:.3f}")
        test_suite.set("timestamp", flow.started_at.isoformat())

        properties = ET.SubElement(test_suite, "properties")
        self._add_property(properties, "flow.outcome", flow.outcome.value)

        for step in flow.results:
            test_suite.append(self._build_step_test_case(flow.flow_name, step))

        if flow.error is not None:
            test_case = ET.SubElement(test_suite, "testcase")
            test_case.set("classname", flow.flow_name)
            test_case.set("name", "flow")
            test_case.set("time", f"{flow.duration_ms / 1000:.3f}")
            error = ET.SubElement(test_case, "error")
            error.set("message", flow.error.message)
            error.set("type", flow.error.kind)
            error.text = flow.error.traceback or flow.error.message
            test_suite.set("tests", str(flow.total_steps + 1))

        return test_suite

    def _build_step_test_case(self, flow_name: str, step: StepResult) -> ET.Element:
        test_case = ET.Element("testcase")

        test_case.set("classname", f"{flow_name}.{step.kind.value}")
        test_case.set("name", f"#{step.ordinal} {step.label}")
        test_case.set("time", f"{step.duration_ms / 1000:.3f}")

        if step.error is not None:
            failure = ET.SubElement(test_case, "failure")
            failure.set("message", step.error.message)
            failure.set("type", step.error.kind)
            failure.text = self._format_failure(step)
        elif step.snapshot_action is not None:
            system_out = ET.SubElement(test_case, "system-out")
            system_out.text = f"Snapshot {step.snapshot_action.value}: {step.snapshot_key}"

        return test_case

    def _format_failure(self, step: StepResult) -> str:
        error = step.error
        lines = [f"Step: #{step.ordinal} {step.label}", f"Error: [{error.code}] {error.message}"]

        if step.snapshot_key:
            lines.append(f"Snapshot: {step.snapshot_key}")
        if error.diff:
            lines.append("Differences:")
            lines.extend(f"  {JSONDiffItem.from_dict(item).describe()}" for item in error.diff)
        if error.kind == "AssertionMismatch":
            lines.append(f"Expected: {self._dump(error.expected)}")
            lines.append(f"Actual: {self._dump(error.actual)}")
        if error.traceback:
            lines.append(error.traceback)

        return "\n".join(lines)

    @staticmethod
    def _dump(value: Any) -> str:
        return json.dumps(value, sort_keys=True, default=str)

    def _add_property(self, parent: ET.Element, name: str, value: str) -> None:
        prop = ET.SubElement(parent, "property")
        prop.set("name", name)
        prop.set("value", value)

    def _indent_xml(self, elem: ET.Element, level: int = 0) -> None:
        """Pretty-print the tree in place.

        Uses len(elem) instead of truthiness to avoid the DeprecationWarning
        about element truth value testing.
        """
        indent = "\n" + "  " * level
        if len(elem) > 0:
            if not elem.text or not elem.text.strip():
                elem.text = indent + "  "
            if not elem.tail or not elem.tail.strip():
                elem.tail = indent
            for child in elem:
                self._indent_xml(child, level + 1)
            if not child.tail or not child.tail.strip():
                child.tail = indent
        else:
            if not elem.tail or not elem.tail.strip():
                elem.tail = indent
