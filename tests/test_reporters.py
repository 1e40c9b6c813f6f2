"""Tests for report generation."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from qaflow.core.models import (
    ErrorDetail,
    FlowReport,
    RunReport,
    SnapshotAction,
    SnapshotMode,
    StepKind,
    StepResult,
    StepStatus,
)
from qaflow.reporters import REPORTERS, JSONReporter, JUnitReporter, TextReporter, exit_status

START = datetime(2026, 1, 1, 12, 0, 0)


def _step(label: str, ordinal: int, kind: StepKind, action: SnapshotAction | None = None) -> StepResult:
    return StepResult(
        label=label,
        kind=kind,
        ordinal=ordinal,
        status=StepStatus.PASSED,
        snapshot_key=f"todos > {label}" if kind == StepKind.CHECK else None,
        snapshot_action=action,
        started_at=START,
        finished_at=START + timedelta(milliseconds=5),
        duration_ms=5.0,
    )


def _mismatch(label: str, ordinal: int) -> StepResult:
    return StepResult(
        label=label,
        kind=StepKind.CHECK,
        ordinal=ordinal,
        status=StepStatus.FAILED,
        snapshot_key=f"broken > {label}",
        error=ErrorDetail(
            kind="AssertionMismatch",
            code="E501",
            message="Value does not match snapshot (1 difference)",
            expected={"done": True},
            actual={"done": False},
            diff=[{"path": "done", "type": "changed", "old_value": True, "new_value": False}],
        ),
        started_at=START,
        finished_at=START,
    )


@pytest.fixture
def passing_flow() -> FlowReport:
    return FlowReport(
        flow_name="todos",
        results=[
            _step("fetch", 1, StepKind.ACT),
            _step("empty", 2, StepKind.CHECK, SnapshotAction.MATCHED),
            _step("one todo", 3, StepKind.CHECK, SnapshotAction.RECORDED),
        ],
        started_at=START,
        finished_at=START + timedelta(milliseconds=15),
        duration_ms=15.0,
    )


@pytest.fixture
def failing_flow() -> FlowReport:
    return FlowReport(
        flow_name="broken",
        results=[_step("fetch", 1, StepKind.ACT), _mismatch("first todo should be done", 2)],
        started_at=START,
        finished_at=START,
    )


@pytest.fixture
def crashed_flow() -> FlowReport:
    return FlowReport(
        flow_name="crashed",
        error=ErrorDetail(kind="RuntimeError", code="E999", message="executor bug", traceback="Traceback ..."),
        started_at=START,
        finished_at=START,
    )


@pytest.fixture
def run_report(passing_flow, failing_flow, crashed_flow) -> RunReport:
    return RunReport(
        flows=[passing_flow, failing_flow, crashed_flow],
        started_at=START,
        finished_at=START + timedelta(seconds=1),
    )


class TestExitStatus:
    """Tests for exit_status."""

    def test_all_passed(self, passing_flow: FlowReport) -> None:
        assert exit_status(RunReport(flows=[passing_flow])) == 0

    def test_no_flows(self) -> None:
        assert exit_status(RunReport()) == 0

    def test_any_failure(self, run_report: RunReport) -> None:
        assert exit_status(run_report) == 1
        assert exit_status(run_report) == run_report.exit_code


class TestTextReporter:
    """Tests for TextReporter."""

    def test_flow_lines(self, run_report: RunReport) -> None:
        lines = TextReporter().generate(run_report).splitlines()

        assert lines[0] == "todos: PASS"
        assert "broken: FAIL" in lines
        assert "crashed: FAIL" in lines
        assert "  [FAILED] #2 check first todo should be done" in lines
        assert "    AssertionMismatch [E501]: Value does not match snapshot (1 difference)" in lines
        assert "    ~ done: true -> false" in lines
        assert "  crashed: RuntimeError: executor bug" in lines

    def test_summary_line(self, run_report: RunReport) -> None:
        lines = TextReporter().generate(run_report).splitlines()
        assert lines[-1] == "1/3 flows passed in 1.00s, 1 snapshot(s) written"

    def test_passing_steps_hidden_unless_verbose(self, run_report: RunReport) -> None:
        quiet = TextReporter().generate(run_report)
        verbose = TextReporter(verbose=True).generate(run_report)

        assert "[ok] #3 check one todo (recorded)" not in quiet
        assert "  [ok] #3 check one todo (recorded)" in verbose.splitlines()

    def test_empty_run(self) -> None:
        output = TextReporter().generate(RunReport(started_at=START, finished_at=START))
        assert output == "0/0 flows passed in 0.00s\n"

    def test_file_extension(self) -> None:
        assert TextReporter().file_extension == ".txt"


class TestJSONReporter:
    """Tests for JSONReporter."""

    def test_structure(self, run_report: RunReport) -> None:
        data = json.loads(JSONReporter().generate(run_report))

        assert data["report"]["version"] == "1.0"
        assert data["summary"]["outcome"] == "failed"
        assert data["summary"]["total_flows"] == 3
        assert data["summary"]["passed_flows"] == 1
        assert data["summary"]["exit_code"] == 1
        assert data["summary"]["mode"] == "verify"
        assert data["summary"]["step_timing"]["count"] == 5
        assert [f["flow_name"] for f in data["flows"]] == ["todos", "broken", "crashed"]

    def test_mismatch_details(self, run_report: RunReport) -> None:
        data = json.loads(JSONReporter().generate(run_report))
        error = data["flows"][1]["results"][1]["error"]

        assert error["kind"] == "AssertionMismatch"
        assert error["expected"] == {"done": True}
        assert error["actual"] == {"done": False}
        assert error["diff"][0]["path"] == "done"

    def test_empty_run(self) -> None:
        data = json.loads(JSONReporter().generate(RunReport(mode=SnapshotMode.UPDATE)))

        assert data["flows"] == []
        assert data["summary"]["exit_code"] == 0
        assert data["summary"]["mode"] == "update"

    def test_compact_output(self, run_report: RunReport) -> None:
        assert "\n" not in JSONReporter(indent=None).generate(run_report)


class TestJUnitReporter:
    """Tests for JUnitReporter."""

    def test_structure(self, run_report: RunReport) -> None:
        root = ET.fromstring(JUnitReporter().generate(run_report))

        assert root.tag == "testsuites"
        assert root.get("name") == "qaflow"
        assert root.get("tests") == "6"
        assert root.get("failures") == "1"
        assert root.get("errors") == "1"
        assert [s.get("name") for s in root.findall("testsuite")] == ["todos", "broken", "crashed"]

    def test_step_testcases(self, run_report: RunReport) -> None:
        root = ET.fromstring(JUnitReporter().generate(run_report))
        suite = root.find("testsuite[@name='todos']")
        cases = suite.findall("testcase")

        assert [c.get("name") for c in cases] == ["#1 fetch", "#2 empty", "#3 one todo"]
        assert cases[0].get("classname") == "todos.act"
        assert cases[2].find("system-out").text == "Snapshot recorded: todos > one todo"

    def test_failure_element(self, run_report: RunReport) -> None:
        root = ET.fromstring(JUnitReporter().generate(run_report))
        failure = root.find("testsuite[@name='broken']/testcase/failure")

        assert failure.get("type") == "AssertionMismatch"
        assert "~ done: true -> false" in failure.text
        assert 'Expected: {"done": true}' in failure.text
        assert "Snapshot: broken > first todo should be done" in failure.text

    def test_crash_becomes_error_testcase(self, run_report: RunReport) -> None:
        root = ET.fromstring(JUnitReporter().generate(run_report))
        suite = root.find("testsuite[@name='crashed']")
        error = suite.find("testcase[@name='flow']/error")

        assert suite.get("tests") == "1"
        assert error.get("type") == "RuntimeError"
        assert error.get("message") == "executor bug"

    def test_empty_run(self) -> None:
        root = ET.fromstring(JUnitReporter().generate(RunReport()))

        assert root.get("tests") == "0"
        assert root.findall("testsuite") == []


class TestReporterSave:
    """Tests for saving reports to disk."""

    @pytest.mark.parametrize("name", sorted(REPORTERS))
    def test_save_creates_parent_dirs(self, name: str, run_report: RunReport, tmp_path: Path) -> None:
        reporter = REPORTERS[name]()
        path = tmp_path / "reports" / "nested" / f"qaflow{reporter.file_extension}"

        saved = reporter.save(run_report, path)

        assert saved == path
        assert "broken" in path.read_text(encoding="utf-8")

    def test_save_uses_constructor_path(self, run_report: RunReport, tmp_path: Path) -> None:
        reporter = JUnitReporter(output_path=tmp_path / "junit.xml")
        assert reporter.save(run_report).exists()

    def test_save_without_path(self, run_report: RunReport) -> None:
        with pytest.raises(ValueError):
            TextReporter().save(run_report)
