"""Checklist for a basic todo API."""

from examples.todo_checklist.checklist import TodoApi, build_checklist, target_root

__all__ = ["TodoApi", "build_checklist", "target_root"]
