import json

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from conftest import (
    BACKEND_URL,
    HangingCompletion,
    LoopingCompletion,
    ScriptedCompletion,
    text_response,
    tool_response,
)
from stela.core import config
from stela.llm.completion import CompletionServiceError
from stela.main import app
from stela.orchestrator.fallback import OFFLINE_MARKER, FallbackResponder
from stela.orchestrator.orchestrator import ChatOrchestrator
from stela.routers import chat, health

PID = {"person_id": "247"}
BODY = {"message": "What should I do today?", "person_id": "247"}


@pytest.fixture
def wire(backend, executor):
    """Install an orchestrator built around *completion* for the next request."""

    def install(completion, **kw):
        orch = ChatOrchestrator(completion=completion, executor=executor, **kw)
        fallback = FallbackResponder(base_url=BACKEND_URL, http_client=backend.client())
        app.dependency_overrides[chat.get_orchestrator] = lambda: orch
        app.dependency_overrides[chat.get_fallback] = lambda: fallback
        return orch

    yield install
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_buffered_answer(client, backend, wire):
    backend.add("GET", "/api/accounts/247/qualifications", {"qualified": False})
    backend.add("POST", "/api/accounts/247/nba", {"actions": []})
    completion = ScriptedCompletion([
        tool_response(("toolu_1", "get_qualification_status", PID)),
        tool_response(("toolu_2", "get_next_best_actions", PID)),
        text_response("Focus on X."),
    ])
    wire(completion)

    r = client.post("/api/chat", json=BODY)

    assert r.status_code == 200
    assert r.json() == {
        "response": "Focus on X.",
        "tools_used": [
            {"tool": "get_qualification_status", "success": True},
            {"tool": "get_next_best_actions", "success": True},
        ],
    }
    assert r.headers["x-trace-id"]
    assert len(completion.calls) == 3


def test_numeric_person_id_and_history(client, wire):
    completion = ScriptedCompletion([text_response("hi")])
    wire(completion)

    r = client.post("/api/chat", json={
        "message": "again",
        "person_id": 247,
        "history": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
    })

    assert r.status_code == 200
    messages = completion.calls[0]["messages"]
    assert [m["role"] for m in messages] == ["user", "assistant", "user"]
    assert messages[-1]["content"].startswith("[Context: Account ID is 247.]")


def test_streamed_answer(client, wire, monkeypatch):
    monkeypatch.setattr(config, "STELA_STREAM_INTERVAL_MS", 0)
    answer = "Your rank is Gold and you are two orders away from Platinum this month."
    wire(ScriptedCompletion([text_response(answer)]))

    r = client.post("/api/chat", json=BODY, headers={"Accept": "text/event-stream"})

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    assert r.headers["cache-control"] == "no-cache"
    events = [e for e in r.text.split("\n\n") if e]
    assert events[-1] == "data: [DONE]"
    text = "".join(json.loads(e[len("data: "):])["text"] for e in events[:-1])
    assert text[:-1] == answer


def test_invalid_request_is_422(client, wire):
    wire(ScriptedCompletion([]))
    assert client.post("/api/chat", json={"person_id": "247"}).status_code == 422
    assert client.post("/api/chat", json={"message": "", "person_id": "247"}).status_code == 422
    assert client.post("/api/chat", content=b"not json").status_code == 422


def test_completion_failure_uses_backend_fallback(client, backend, wire):
    upstream = {"response": "Answer from the backend", "tools_used": []}
    backend.add("POST", "/chat-fallback", upstream)
    wire(ScriptedCompletion([CompletionServiceError("connection refused")]))

    raw = json.dumps(BODY).encode()
    r = client.post("/api/chat", content=raw, headers={"Content-Type": "application/json"})

    assert r.status_code == 200
    assert r.json() == upstream
    assert backend.requests[-1].content == raw


def test_total_failure_is_degraded_markdown(client, backend, wire):
    backend.add("POST", "/chat-fallback", {"detail": "down"}, status=503)
    wire(ScriptedCompletion([CompletionServiceError("connection refused")]))

    r = client.post("/api/chat", json=BODY)

    assert r.status_code == 500
    assert OFFLINE_MARKER in r.json()["response"]


def test_expired_credentials_are_401(client, backend, wire):
    backend.fail("POST", "/chat-fallback", httpx.ConnectError("refused"))
    wire(ScriptedCompletion([CompletionServiceError("ExpiredTokenException: token expired")]))

    r = client.post("/api/chat", json=BODY)

    assert r.status_code == 401
    assert OFFLINE_MARKER in r.json()["response"]


def test_unexpected_error_goes_to_fallback(client, backend, wire):
    backend.add("POST", "/chat-fallback", {"response": "ok"})
    wire(ScriptedCompletion([RuntimeError("bug")]))

    r = client.post("/api/chat", json=BODY)

    assert r.status_code == 200
    assert r.json() == {"response": "ok"}


def test_round_cap_is_reported(client, backend, wire):
    backend.add("GET", "/api/accounts/247/orders", {"orders": []})
    completion = LoopingCompletion()
    wire(completion, max_rounds=2)

    r = client.post("/api/chat", json=BODY)

    assert r.status_code == 500
    assert set(r.json()) == {"error", "response", "details", "hint"}
    assert len(completion.calls) == 2
    assert "/chat-fallback" not in backend.paths()


def test_tool_listing(client):
    r = client.get("/api/tools")
    assert r.status_code == 200
    tools = r.json()
    assert len(tools) == 11
    assert set(tools[0]) == {"name", "method", "description"}
    assert (tools[0]["name"], tools[0]["method"]) == ("get_account_overview", "GET")


def test_tool_schema(client):
    r = client.get("/api/tools/get_orders/schema")
    assert r.status_code == 200
    assert r.json()["input_schema"]["required"] == ["person_id"]
    assert client.get("/api/tools/nope/schema").status_code == 404


def test_healthz(client, monkeypatch):
    async def probe():
        return "ok"

    monkeypatch.setattr(health, "_probe_backend", probe)
    monkeypatch.setattr(config, "STELA_LLM_API_KEY", "k")

    assert client.get("/healthz").json() == {
        "ok": True, "backend": "ok", "llm": "configured", "tools": 11,
    }


def test_healthz_without_key(client, monkeypatch):
    async def probe():
        return "unreachable"

    monkeypatch.setattr(health, "_probe_backend", probe)
    monkeypatch.setattr(config, "STELA_LLM_API_KEY", "")

    body = client.get("/healthz").json()
    assert body["ok"] is False
    assert body["llm"] == "missing"


def test_request_timeout_goes_to_fallback(client, backend, wire, monkeypatch):
    monkeypatch.setattr(config, "STELA_REQUEST_TIMEOUT", 0.3)
    backend.add("POST", "/chat-fallback", {"detail": "down"}, status=503)
    completion = HangingCompletion()
    wire(completion)

    r = client.post("/api/chat", json=BODY)

    assert r.status_code == 500
    assert OFFLINE_MARKER in r.json()["response"]
    assert "exceeded" in r.json()["details"]
    assert "/chat-fallback" in backend.paths()
    assert completion.cancelled


def test_caller_disconnect_cancels_orchestration(client, backend, wire, monkeypatch):
    async def gone(self):
        return True

    monkeypatch.setattr(Request, "is_disconnected", gone)
    completion = HangingCompletion()
    wire(completion)

    r = client.post("/api/chat", json=BODY)

    assert r.status_code == 499
    assert r.content == b""
    assert r.headers["x-trace-id"]
    assert len(completion.calls) == 1
    assert completion.cancelled
    # no fallback answer for a caller that has left
    assert backend.requests == []


class _GoneRequest:
    async def is_disconnected(self):
        return True


async def test_disconnect_cancels_in_flight_work():
    completion = HangingCompletion()
    work = completion.create(system="S", tools=[], messages=[])

    with pytest.raises(chat.ClientDisconnected):
        await chat._run_until_disconnect(_GoneRequest(), work, timeout=5, poll=0.01)

    assert completion.cancelled
