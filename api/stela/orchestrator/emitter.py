"""Response emitter — buffered JSON payload or paced SSE re-chunking.

Streaming here is display pacing only: the full answer is known before the
first event goes out.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from stela.core import config
from stela.orchestrator.models import ChatResponse, OrchestrationResult

logger = logging.getLogger("stela.emitter")

SSE_DONE = "data: [DONE]\n\n"
STREAM_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


def wants_stream(accept: str | None) -> bool:
    return "text/event-stream" in (accept or "")


def buffered_payload(result: OrchestrationResult) -> dict[str, Any]:
    return ChatResponse(response=result.answer, tools_used=result.tools_used).model_dump()


def chunk_words(text: str, size: int) -> list[str]:
    """Split on single spaces into groups of *size* words, each padded with
    one trailing space. Joining the chunks gives back ``text + " "``."""
    words = text.split(" ")
    return [" ".join(words[i:i + size]) + " " for i in range(0, len(words), size)]


def sse_event(data: Any) -> str:
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


async def stream_answer(
    text: str,
    *,
    words_per_chunk: int | None = None,
    interval_ms: int | None = None,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> AsyncIterator[str]:
    """Yield ``data: {"text": ...}`` events then a single ``[DONE]`` sentinel.

    Stops silently once *is_disconnected* reports the caller has gone.
    """
    size = words_per_chunk or config.STELA_STREAM_WORDS
    interval = (interval_ms if interval_ms is not None else config.STELA_STREAM_INTERVAL_MS) / 1000.0
    chunks = chunk_words(text, size)

    for sent, chunk in enumerate(chunks):
        if is_disconnected is not None and await is_disconnected():
            logger.info("[STREAM] caller disconnected after %d/%d chunks", sent, len(chunks))
            return
        yield sse_event({"text": chunk})
        await asyncio.sleep(interval)

    if is_disconnected is not None and await is_disconnected():
        return
    yield SSE_DONE
