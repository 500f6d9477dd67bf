"""Router: Chat — tool-augmented answers, buffered or streamed, with fallback."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable
from typing import TypeVar

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from stela.core import config
from stela.llm.completion import CompletionServiceError
from stela.orchestrator.emitter import (
    STREAM_HEADERS,
    buffered_payload,
    stream_answer,
    wants_stream,
)
from stela.orchestrator.fallback import FallbackResponder, round_limit_payload
from stela.orchestrator.models import ChatRequest
from stela.orchestrator.orchestrator import ChatOrchestrator, MaxRoundsExceeded

logger = logging.getLogger("stela.chat")

router = APIRouter(prefix="/api", tags=["chat"])
_orch = ChatOrchestrator()
_fallback = FallbackResponder()

T = TypeVar("T")

# Status used when the caller hung up before an answer was ready
_CLIENT_CLOSED = 499


class ClientDisconnected(Exception):
    """The caller went away while the orchestration was still running."""


def get_orchestrator() -> ChatOrchestrator:
    return _orch


def get_fallback() -> FallbackResponder:
    return _fallback


async def _run_until_disconnect(
    request: Request,
    work: Awaitable[T],
    *,
    timeout: float,
    poll: float = 0.25,
) -> T:
    """Await *work* but cancel it (and its in-flight HTTP calls) as soon as
    the caller disconnects or *timeout* elapses."""
    task = asyncio.ensure_future(asyncio.wait_for(work, timeout=timeout))
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll)
            if done:
                return task.result()
            if await request.is_disconnected():
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()
            # let in-flight calls unwind before the caller gets a response
            await asyncio.wait({task})


# ── Endpoint ─────────────────────────────────────────────

@router.post("/chat")
async def chat_endpoint(
    request: Request,
    orch: ChatOrchestrator = Depends(get_orchestrator),
    fallback: FallbackResponder = Depends(get_fallback),
) -> Response:
    """Answer one user message.

    ``Accept: text/event-stream`` selects the paced SSE stream; otherwise the
    answer is returned as ``{response, tools_used}``.
    """
    # Kept as raw bytes so the fallback can forward the body unchanged
    raw_body = await request.body()
    try:
        chat_req = ChatRequest.model_validate_json(raw_body)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    trace_id = uuid.uuid4().hex
    headers = {"X-Trace-Id": trace_id}
    state = orch.start(chat_req, trace_id=trace_id)
    logger.info(
        "[CHAT]   trace=%s — person=%s history=%d",
        trace_id[:12], chat_req.person_id, len(chat_req.history),
    )

    try:
        result = await _run_until_disconnect(
            request, orch.drive(state), timeout=config.STELA_REQUEST_TIMEOUT,
        )
    except ClientDisconnected:
        logger.info("[CHAT]   trace=%s — caller disconnected, orchestration cancelled", trace_id[:12])
        return Response(status_code=_CLIENT_CLOSED, headers=headers)
    except MaxRoundsExceeded as exc:
        return JSONResponse(
            round_limit_payload(exc, chat_req.person_id), status_code=500, headers=headers,
        )
    except asyncio.TimeoutError:
        error: Exception = CompletionServiceError(
            f"Request exceeded {config.STELA_REQUEST_TIMEOUT:g}s before the model answered"
        )
        logger.error("[CHAT]   trace=%s — %s", trace_id[:12], error)
    except CompletionServiceError as exc:
        error = exc
        logger.error("[CHAT]   trace=%s — completion service failed: %s", trace_id[:12], exc)
    except Exception as exc:
        error = exc
        logger.exception("[CHAT]   trace=%s — orchestration failed", trace_id[:12])
    else:
        if wants_stream(request.headers.get("accept")):
            return StreamingResponse(
                stream_answer(result.answer, is_disconnected=request.is_disconnected),
                media_type="text/event-stream",
                headers={**STREAM_HEADERS, **headers},
            )
        return JSONResponse(buffered_payload(result), headers=headers)

    outcome = await fallback.respond(raw_body=raw_body, request=chat_req, error=error, state=state)
    logger.info("[CHAT]   trace=%s — answered by %s fallback", trace_id[:12], outcome.tier)
    return JSONResponse(outcome.payload, status_code=outcome.status_code, headers=headers)
