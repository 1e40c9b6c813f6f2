"""Configuration settings and loading."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from qaflow.core.models import SnapshotMode
from qaflow.errors import ConfigurationError

ENV_PREFIX = "QAFLOW_"
REPORT_FORMATS = ("text", "json", "junit")


class QAFlowConfig(BaseSettings):
    """Configuration for a qaflow run.

    Every field can be set from the environment with the ``QAFLOW_`` prefix,
    e.g. ``QAFLOW_MODE=update`` or ``QAFLOW_REPORT_FORMATS=text,junit``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    mode: SnapshotMode = SnapshotMode.VERIFY
    snapshot_dir: Path = Path("__snapshots__")
    on_duplicate_flow: Literal["forbid", "replace"] = "forbid"
    abort_policy: Literal["stop-flow-on-failure"] = "stop-flow-on-failure"
    report_dir: Path | None = None
    report_formats: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["text"])
    verbose: bool = False

    @field_validator("mode", mode="before")
    @classmethod
    def validate_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("snapshot_dir")
    @classmethod
    def validate_snapshot_dir(cls, v: Path) -> Path:
        if not str(v).strip():
            raise ValueError("snapshot_dir cannot be empty")
        return v

    @field_validator("report_formats", mode="before")
    @classmethod
    def validate_report_formats(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            v = v.split(",")
        formats = [str(f).strip().lower() for f in v if str(f).strip()]
        invalid = set(formats) - set(REPORT_FORMATS)
        if invalid:
            raise ValueError(f"Invalid report formats: {sorted(invalid)}. Valid: {list(REPORT_FORMATS)}")
        return list(dict.fromkeys(formats))


def load_config(config_path: str | Path | None = None, **overrides: Any) -> QAFlowConfig:
    """Load configuration from file and environment.

    Priority: overrides (CLI args) > env vars > config file > defaults.
    Overrides whose value is None are ignored.

    Raises:
        ConfigurationError: If the file cannot be read or a value is invalid.
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_data = _read_config_file(Path(config_path))

    config_data.update(_get_env_overrides())
    config_data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return QAFlowConfig(**config_data)
    except ValidationError as e:
        issues = [
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in e.errors()
        ]
        raise ConfigurationError(
            message="Invalid configuration: " + "; ".join(issues),
            cause=e,
            issues=issues,
        ) from e


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(message=f"Config file not found: {path}", path=str(path))

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            message=f"Cannot read config file '{path}': {e}",
            path=str(path),
            cause=e,
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            message=f"Config file '{path}' must contain a mapping",
            path=str(path),
        )
    return data


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables.

    Needed because values passed to the settings class take priority over
    its own environment lookup, which would let the file win over env.
    """
    overrides: dict[str, Any] = {}

    for field_name in QAFlowConfig.model_fields:
        value = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if value is not None:
            overrides[field_name] = value

    return overrides
