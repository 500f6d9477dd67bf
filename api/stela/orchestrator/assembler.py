"""Conversation assembler — prior turns plus the annotated user turn."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any


def context_annotation(caller_id: str, context: Mapping[str, Any] | None = None) -> str:
    """Single-line, machine-readable context header for the user turn."""
    extra = ""
    if context is not None:
        blob = json.dumps(context, separators=(",", ":"), ensure_ascii=False, default=str)
        extra = f" Additional context: {blob}"
    return f"[Context: Account ID is {caller_id}.{extra}]"


def assemble(
    history: Sequence[Mapping[str, Any]] | None,
    user_message: str,
    caller_id: str,
    context: Mapping[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Build the message list for the first completion round.

    Prior turns are copied verbatim; the new user turn always starts with
    the context annotation line.
    """
    messages: list[dict[str, Any]] = [
        {"role": m["role"], "content": m["content"]} for m in history or ()
    ]
    messages.append({
        "role": "user",
        "content": f"{context_annotation(caller_id, context)}\n\n{user_message}",
    })
    return messages
