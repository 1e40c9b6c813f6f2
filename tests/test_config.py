"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from qaflow.config import QAFlowConfig, load_config
from qaflow.core.models import SnapshotMode
from qaflow.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate tests from QAFLOW_* variables and any .env file."""
    for name in list(QAFlowConfig.model_fields):
        monkeypatch.delenv(f"QAFLOW_{name.upper()}", raising=False)
    monkeypatch.chdir(tmp_path)


def _write_yaml(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "qaflow.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestQAFlowConfig:
    """Tests for QAFlowConfig defaults and validation."""

    def test_defaults(self) -> None:
        config = QAFlowConfig()

        assert config.mode == SnapshotMode.VERIFY
        assert config.snapshot_dir == Path("__snapshots__")
        assert config.on_duplicate_flow == "forbid"
        assert config.abort_policy == "stop-flow-on-failure"
        assert config.report_dir is None
        assert config.report_formats == ["text"]
        assert config.verbose is False

    def test_mode_is_case_insensitive(self) -> None:
        assert QAFlowConfig(mode="UPDATE").mode == SnapshotMode.UPDATE

    def test_report_formats_from_string(self) -> None:
        config = QAFlowConfig(report_formats="junit, json,junit")
        assert config.report_formats == ["junit", "json"]

    def test_invalid_report_format(self) -> None:
        with pytest.raises(ValueError):
            QAFlowConfig(report_formats=["html"])

    def test_unknown_abort_policy(self) -> None:
        with pytest.raises(ValueError):
            QAFlowConfig(abort_policy="continue")


class TestLoadConfig:
    """Tests for load_config."""

    def test_without_file(self) -> None:
        assert load_config().mode == SnapshotMode.VERIFY

    def test_from_yaml(self, tmp_path: Path) -> None:
        path = _write_yaml(
            tmp_path,
            "mode: update\nsnapshot_dir: snaps\nreport_formats: [json, junit]\non_duplicate_flow: replace\n",
        )
        config = load_config(path)

        assert config.mode == SnapshotMode.UPDATE
        assert config.snapshot_dir == Path("snaps")
        assert config.report_formats == ["json", "junit"]
        assert config.on_duplicate_flow == "replace"

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write_yaml(tmp_path, "mode: update\nsnapshot_dir: from-file\n")
        monkeypatch.setenv("QAFLOW_SNAPSHOT_DIR", "from-env")
        monkeypatch.setenv("QAFLOW_REPORT_FORMATS", "text,junit")

        config = load_config(path)

        assert config.snapshot_dir == Path("from-env")
        assert config.mode == SnapshotMode.UPDATE
        assert config.report_formats == ["text", "junit"]

    def test_overrides_win(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QAFLOW_MODE", "update")

        config = load_config(mode="verify", snapshot_dir=None)

        assert config.mode == SnapshotMode.VERIFY
        assert config.snapshot_dir == Path("__snapshots__")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(tmp_path / "missing.yaml")
        assert "not found" in exc_info.value.message

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path, "mode: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_yaml_must_be_mapping(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path, "- verify\n- update\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_empty_yaml(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path, "")
        assert load_config(path).mode == SnapshotMode.VERIFY

    def test_invalid_value(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path, "mode: record\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)

        assert exc_info.value.context.extra["issues"]
        assert "mode" in exc_info.value.message
