"""End-to-end tests running the todo API checklist against an in-process fake."""

from __future__ import annotations

import httpx
import pytest

from examples.todo_checklist import TodoApi, build_checklist, target_root
from qaflow import FlowRunner
from qaflow.core.models import SnapshotAction
from qaflow.snapshots import InMemorySnapshotStore, JSONFileSnapshotStore


def _checklist(fake_todo_api):
    api = TodoApi(base_url="http://todo.test", transport=httpx.MockTransport(fake_todo_api.handle))
    return build_checklist(api)


class TestTodoApi:
    """Tests for the example API client."""

    @pytest.mark.asyncio
    async def test_unknown_route(self, fake_todo_api) -> None:
        api = TodoApi(base_url="http://todo.test", transport=httpx.MockTransport(fake_todo_api.handle))
        response = await api.request("GET", "/intentional-4o4")

        assert response == {"status_code": 404, "body": {"error": "not found"}}

    @pytest.mark.asyncio
    async def test_basic_auth_with_api_key(self, fake_todo_api) -> None:
        api = TodoApi(base_url="http://todo.test", transport=httpx.MockTransport(fake_todo_api.handle))
        created = await api.request("POST", "/api-keys")
        key = created["body"]["data"]["api_key"]

        todos = await api.request("GET", "/todos", key)
        deleted = await api.request("DELETE", "/api-keys", key)

        assert todos == {"status_code": 200, "body": {"data": {"todos": []}}}
        assert deleted == {"status_code": 204, "body": None}

    def test_target_root_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TARGET_ROOT", "api.internal:8080")

        assert target_root() == "api.internal:8080"
        assert TodoApi().base_url == "http://api.internal:8080"

    def test_default_target_root(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TARGET_ROOT", raising=False)
        assert target_root() == "localhost:3001"


class TestTodoChecklist:
    """Tests for the "Basic API functionality" flow."""

    def test_flow_declaration(self, fake_todo_api) -> None:
        flow = _checklist(fake_todo_api)

        assert flow.name == "Basic API functionality"
        assert len(flow.checks) == 14
        assert flow.steps[0].label == "ping API endpoints that don't exist"
        assert flow.steps[-1].label == "first key should be invalid"

    @pytest.mark.asyncio
    async def test_records_then_verifies(self, fake_todo_api) -> None:
        store = InMemorySnapshotStore()
        runner = FlowRunner(store)

        first = await runner.run_all([_checklist(fake_todo_api)])
        second = await runner.run_all([_checklist(fake_todo_api)])

        assert first.passed, first.flows[0].failure
        assert second.passed, second.flows[0].failure
        assert first.recorded_snapshots == 14
        checks = [r for r in second.flows[0].results if r.snapshot_action is not None]
        assert len(checks) == 14
        assert all(r.snapshot_action == SnapshotAction.MATCHED for r in checks)

    @pytest.mark.asyncio
    async def test_snapshots_hide_generated_ids(self, fake_todo_api) -> None:
        store = InMemorySnapshotStore()
        await FlowRunner(store).run_all([_checklist(fake_todo_api)])

        assert store.get("Basic API functionality > returns 404 not found") == {
            "status_code": 404,
            "body": {"error": "not found"},
        }
        assert store.get("Basic API functionality > list should have two items") == {
            "status_code": 200,
            "body": {
                "data": {
                    "todos": [
                        {"text": "brush teeth", "done": False},
                        {"text": "wash face", "done": False},
                    ]
                }
            },
        }
        assert store.get("Basic API functionality > first key should be invalid")["status_code"] == 401

    @pytest.mark.asyncio
    async def test_regression_is_caught(self, fake_todo_api) -> None:
        store = InMemorySnapshotStore()
        runner = FlowRunner(store)
        await runner.run_all([_checklist(fake_todo_api)])

        fake_todo_api.ignore_done_updates = True
        report = await runner.run_all([_checklist(fake_todo_api)])

        flow = report.flows[0]
        assert not report.passed
        assert report.exit_code == 1
        assert flow.failure.label == "first todo should be done"
        assert flow.results[-1] is flow.failure
        assert flow.failure.error.diff == [
            {
                "path": "body.data.todos[0].done",
                "type": "changed",
                "old_value": True,
                "new_value": False,
            }
        ]

    def test_persists_between_runs(self, fake_todo_api, snapshot_dir) -> None:
        first = FlowRunner(JSONFileSnapshotStore(snapshot_dir)).run([_checklist(fake_todo_api)])
        second = FlowRunner(JSONFileSnapshotStore(snapshot_dir)).run([_checklist(fake_todo_api)])

        assert first.recorded_snapshots == 14
        assert second.passed
        assert second.recorded_snapshots == 0
