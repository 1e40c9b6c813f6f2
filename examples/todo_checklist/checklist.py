"""QA checklist for the todo API.

Run it against a local server with::

    TARGET_ROOT=localhost:3001 qaflow run examples/todo_checklist/checklist.py

The first run records a snapshot for every check; later runs compare against
them. Todo ids are generated by the server, so every check that sees a todo
strips them before comparison.
"""

from __future__ import annotations

import os
from typing import Any

import httpx

from qaflow import Flow, define_flow, strip_fields

DEFAULT_TARGET_ROOT = "localhost:3001"

strip_ids = strip_fields("id")


def target_root() -> str:
    """Host and port of the API under test, from the TARGET_ROOT env var."""
    return os.environ.get("TARGET_ROOT", DEFAULT_TARGET_ROOT)


class TodoApi:
    """Minimal async client for the todo API.

    Every call returns ``{"status_code": ..., "body": ...}`` so checks see
    both. The API uses basic authentication with the API key as the user
    name and an empty password.
    """

    def __init__(
        self,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url or f"http://{target_root()}"
        self.transport = transport
        self.timeout = timeout

    async def request(
        self,
        method: str,
        path: str,
        key: str | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        auth = httpx.BasicAuth(key, "") if key else None
        async with httpx.AsyncClient(
            base_url=self.base_url,
            transport=self.transport,
            timeout=self.timeout,
        ) as client:
            response = await client.request(method, path, json=json, auth=auth)
        return {"status_code": response.status_code, "body": _body(response)}


def _body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def build_checklist(api: TodoApi | None = None) -> Flow:
    """Declare the "Basic API functionality" flow against ``api``."""
    api = api or TodoApi()
    session: dict[str, Any] = {"api_key": "", "api_key_2": "", "id1": None, "id2": None}

    def fetch_todos() -> Any:
        return api.request("GET", "/todos", session["api_key"])

    async def create_api_key(slot: str) -> dict[str, Any]:
        res = await api.request("POST", "/api-keys")
        session[slot] = res["body"]["data"]["api_key"]
        return res

    def copy_ids(todos_res: dict[str, Any]) -> dict[str, Any]:
        todos = todos_res["body"]["data"]["todos"]
        session["id1"] = todos[0]["id"]
        session["id2"] = todos[1]["id"]
        return todos_res

    return (
        define_flow("Basic API functionality", description="End-to-end checklist of the todo API")
        # unknown routes are 404s and todos need authentication
        .act("ping API endpoints that don't exist", lambda: api.request("GET", "/intentional-4o4"))
        .check("returns 404 not found")
        .act("ping URL requiring authentication", lambda: api.request("GET", "/todos"))
        .check("returns 401 not authorized")
        .act("get an API key", lambda: create_api_key("api_key"))
        .act("fetch todos", fetch_todos)
        .check("list should be empty")
        .act(
            "submit some invalid todos",
            lambda: api.request("POST", "/todos", session["api_key"], json={"this_payload_format_is": "wrong"}),
        )
        .check("invalid todos should return 4xx")
        .act(
            "submit a valid todo",
            lambda: api.request("POST", "/todos", session["api_key"], json={"text": "brush teeth"}),
        )
        .check("returns a 201", strip_ids)
        .act("fetch todos", fetch_todos)
        .check("list should have one todo", strip_ids)
        .act(
            "submit a second todo",
            lambda: api.request("POST", "/todos", session["api_key"], json={"text": "wash face"}),
        )
        .act("fetch todos", fetch_todos)
        .act("copy down the ids of the todos", copy_ids)
        .check("list should have two items", strip_ids)
        .act(
            "mark first todo as 'done'",
            lambda: api.request("PUT", f"/todos/{session['id1']}", session["api_key"], json={"done": True}),
        )
        .act("fetch todos", fetch_todos)
        .check("first todo should be done", strip_ids)
        .act(
            "change text of second todo",
            lambda: api.request(
                "PUT", f"/todos/{session['id2']}", session["api_key"], json={"text": "wash face gently"}
            ),
        )
        .act("fetch todos", fetch_todos)
        .check("second todo has new text", strip_ids)
        # one user's todos are invisible to another
        .act("get a second API key", lambda: create_api_key("api_key_2"))
        .act("get todos for second API key", lambda: api.request("GET", "/todos", session["api_key_2"]))
        .check("second list should be empty")
        .act("delete a todo", lambda: api.request("DELETE", f"/todos/{session['id1']}", session["api_key"]))
        .act("fetch todos", fetch_todos)
        .check("first todo is deleted", strip_ids)
        .act("delete second todo", lambda: api.request("DELETE", f"/todos/{session['id2']}", session["api_key"]))
        .act("fetch todos", fetch_todos)
        .check("second todo is deleted", strip_ids)
        # cleanup
        .act("delete second API key", lambda: api.request("DELETE", "/api-keys", session["api_key_2"]))
        .act("test second API key", lambda: api.request("GET", "/todos", session["api_key_2"]))
        .check("second key should be invalid")
        .act("delete first API key", lambda: api.request("DELETE", "/api-keys", session["api_key"]))
        .act("test first API key", fetch_todos)
        .check("first key should be invalid")
        .build()
    )


flows = [build_checklist()]
