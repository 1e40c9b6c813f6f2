"""Pytest fixtures for qaflow tests."""

from __future__ import annotations

import base64
import json
import uuid
from pathlib import Path
from typing import Any

import httpx
import pytest

from qaflow.core.models import FlowReport, StepKind, StepResult
from qaflow.runner.executor import FlowExecutor
from qaflow.snapshots import InMemorySnapshotStore, JSONFileSnapshotStore


class RecordingOutput:
    """Progress listener that records every notification it receives."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def flow_start(self, name: str, total_steps: int = 0) -> None:
        self.events.append(("flow_start", name))

    def step_start(self, label: str, ordinal: int = 0, kind: StepKind | None = None) -> None:
        self.events.append(("step_start", label))

    def step_pass(self, result: StepResult) -> None:
        self.events.append(("step_pass", result.label))

    def step_fail(self, result: StepResult) -> None:
        self.events.append(("step_fail", result.label))

    def flow_result(self, report: FlowReport) -> None:
        self.events.append(("flow_result", report.outcome.value))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


class FakeTodoApi:
    """In-process todo API served through ``httpx.MockTransport``.

    Ids and API keys are fresh uuids on every call, like a real server.
    Setting ``ignore_done_updates`` simulates a regression where marking a
    todo as done has no effect.
    """

    def __init__(self) -> None:
        self.keys: dict[str, list[dict[str, Any]]] = {}
        self.ignore_done_updates = False
        self.requests: list[str] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(f"{request.method} {path}")

        if path == "/api-keys" and request.method == "POST":
            key = uuid.uuid4().hex
            self.keys[key] = []
            return self._json(201, {"data": {"api_key": key}})

        if path != "/api-keys" and path != "/todos" and not path.startswith("/todos/"):
            return self._json(404, {"error": "not found"})

        key = self._api_key(request)
        if key is None:
            return self._json(401, {"error": "not authorized"})
        todos = self.keys[key]

        if path == "/api-keys" and request.method == "DELETE":
            del self.keys[key]
            return httpx.Response(204)

        if path == "/todos" and request.method == "GET":
            return self._json(200, {"data": {"todos": todos}})

        if path == "/todos" and request.method == "POST":
            payload = json.loads(request.content or b"{}")
            if not isinstance(payload.get("text"), str):
                return self._json(422, {"error": "text is required"})
            todo = {"id": str(uuid.uuid4()), "text": payload["text"], "done": False}
            todos.append(todo)
            return self._json(201, {"data": {"todo": todo}})

        todo_id = path[len("/todos/"):]
        todo = next((t for t in todos if t["id"] == todo_id), None)
        if todo is None:
            return self._json(404, {"error": "todo not found"})

        if request.method == "PUT":
            payload = json.loads(request.content or b"{}")
            if "text" in payload:
                todo["text"] = payload["text"]
            if "done" in payload and not self.ignore_done_updates:
                todo["done"] = bool(payload["done"])
            return self._json(200, {"data": {"todo": todo}})

        if request.method == "DELETE":
            todos.remove(todo)
            return httpx.Response(204)

        return self._json(405, {"error": "method not allowed"})

    def _api_key(self, request: httpx.Request) -> str | None:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Basic "):
            return None
        user = base64.b64decode(header[len("Basic "):]).decode("utf-8").split(":", 1)[0]
        return user if user in self.keys else None

    @staticmethod
    def _json(status_code: int, body: Any) -> httpx.Response:
        return httpx.Response(status_code, json=body)


@pytest.fixture
def memory_store() -> InMemorySnapshotStore:
    """Create an empty in-memory snapshot store."""
    return InMemorySnapshotStore()


@pytest.fixture
def snapshot_dir(tmp_path: Path) -> Path:
    """Directory for JSON snapshot files (not created yet)."""
    return tmp_path / "__snapshots__"


@pytest.fixture
def file_store(snapshot_dir: Path) -> JSONFileSnapshotStore:
    """Create a JSON file snapshot store in a temporary directory."""
    return JSONFileSnapshotStore(snapshot_dir)


@pytest.fixture
def recording_output() -> RecordingOutput:
    """Create a listener recording executor notifications."""
    return RecordingOutput()


@pytest.fixture
def executor(memory_store: InMemorySnapshotStore) -> FlowExecutor:
    """Create a verify-mode executor over the in-memory store."""
    return FlowExecutor(memory_store)


@pytest.fixture
def fake_todo_api() -> FakeTodoApi:
    """Create a fresh fake todo API."""
    return FakeTodoApi()
