"""Configuration management for qaflow."""

from qaflow.config.settings import REPORT_FORMATS, QAFlowConfig, load_config

__all__ = [
    "QAFlowConfig",
    "REPORT_FORMATS",
    "load_config",
]
