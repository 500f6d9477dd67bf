"""Pydantic models for tool invocations, results and the per-request tool log."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ToolStatus(str, Enum):
    ok = "ok"
    error = "error"
    timeout = "timeout"


# ── Invocation (model → executor) ────────────────────────
class ToolInvocation(BaseModel):
    invocation_id: str
    tool_name: str
    raw_arguments: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_block(cls, block: dict[str, Any]) -> "ToolInvocation":
        """Build from a ``tool_use`` content block of a model response."""
        raw = block.get("input")
        return cls(
            invocation_id=str(block.get("id", "")),
            tool_name=str(block.get("name", "")),
            raw_arguments=raw if isinstance(raw, dict) else {},
        )


# ── Result (executor → model) ────────────────────────────
class ToolResult(BaseModel):
    invocation_id: str
    tool_name: str
    payload: str
    status: ToolStatus = ToolStatus.ok
    elapsed_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == ToolStatus.ok

    def to_block(self) -> dict[str, Any]:
        """Render as a ``tool_result`` content block tied to its invocation."""
        block: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.invocation_id,
            "content": self.payload,
        }
        if not self.succeeded:
            block["is_error"] = True
        return block


class ToolCallRecord(BaseModel):
    """One entry of the observable tool log (``tools_used``)."""
    tool: str
    success: bool
