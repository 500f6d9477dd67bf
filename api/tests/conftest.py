from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

import stela.tools.catalog  # noqa: F401
from stela.llm.completion import CompletionResponse
from stela.tools.executor import ToolExecutor

BACKEND_URL = "http://backend.test"


def text_response(*texts: str) -> CompletionResponse:
    return CompletionResponse(
        id="msg_text",
        stop_reason="end_turn",
        content=[{"type": "text", "text": t} for t in texts],
    )


def tool_response(*calls: tuple[str, str, dict[str, Any]], text: str | None = None) -> CompletionResponse:
    content: list[dict[str, Any]] = []
    if text:
        content.append({"type": "text", "text": text})
    for call_id, name, args in calls:
        content.append({"type": "tool_use", "id": call_id, "name": name, "input": args})
    return CompletionResponse(id="msg_tools", stop_reason="tool_use", content=content)


class ScriptedCompletion:
    """Completion stub that replays responses (or raises exceptions) in order."""

    def __init__(self, script: list[Any]) -> None:
        self.script = list(script)
        self.calls: list[dict[str, Any]] = []

    async def create(self, *, system, tools, messages):
        self.calls.append({"system": system, "tools": tools, "messages": messages})
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class LoopingCompletion(ScriptedCompletion):
    """Always asks for the same tool again."""

    def __init__(self) -> None:
        super().__init__([])

    async def create(self, *, system, tools, messages):
        self.calls.append({"system": system, "tools": tools, "messages": messages})
        n = len(self.calls)
        return tool_response((f"toolu_{n}", "get_orders", {"person_id": "247"}))


class HangingCompletion(ScriptedCompletion):
    """Never answers; records whether the pending call was cancelled."""

    def __init__(self) -> None:
        super().__init__([])
        self.cancelled = False

    async def create(self, *, system, tools, messages):
        self.calls.append({"system": system, "tools": tools, "messages": messages})
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            self.cancelled = True
            raise


class FakeBackend:
    """In-process stand-in for the backend data API."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.delays: dict[tuple[str, str], float] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, body: Any = None, *, status: int = 200) -> None:
        self.routes[(method, path)] = (status, body if body is not None else {})

    def fail(self, method: str, path: str, exc: Exception) -> None:
        self.routes[(method, path)] = exc

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self.delays:
            await asyncio.sleep(self.delays[key])
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        if isinstance(route, Exception):
            raise route
        status, body = route
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def executor(backend: FakeBackend) -> ToolExecutor:
    return ToolExecutor(base_url=BACKEND_URL, http_client=backend.client(), timeout=2.0)
