"""Request, state and result models for the chat orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from stela.core.tool_contracts import ToolCallRecord, ToolInvocation, ToolResult


class LoopPhase(str, Enum):
    awaiting_model = "awaiting_model"
    executing_tools = "executing_tools"
    done = "done"


# ── Inbound ───────────────────────────────────────────────

class HistoryMessage(BaseModel):
    role: str = Field(..., pattern=r"^(user|assistant)$")
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    person_id: str
    history: list[HistoryMessage] = Field(default_factory=list)
    context: dict[str, Any] | None = None

    @field_validator("person_id", mode="before")
    @classmethod
    def _person_id_as_text(cls, v: Any) -> Any:
        # The UI sends numeric ids for some accounts
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("history", mode="before")
    @classmethod
    def _history_none_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v


# ── Transient loop state ──────────────────────────────────

@dataclass
class OrchestrationState:
    """Owned by exactly one request; never shared."""
    trace_id: str
    messages: list[dict[str, Any]]
    phase: LoopPhase = LoopPhase.awaiting_model
    rounds: int = 0
    pending_tool_calls: list[ToolInvocation] = field(default_factory=list)
    completed_tool_log: list[ToolCallRecord] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)

    def gathered_tools(self) -> list[str]:
        """Names of tools that returned data, first occurrence order."""
        seen: list[str] = []
        for r in self.tool_results:
            if r.succeeded and r.tool_name not in seen:
                seen.append(r.tool_name)
        return seen


# ── Outbound ──────────────────────────────────────────────

class OrchestrationResult(BaseModel):
    trace_id: str
    answer: str = ""
    tools_used: list[ToolCallRecord] = Field(default_factory=list)
    rounds: int = 0


class ChatResponse(BaseModel):
    response: str
    tools_used: list[ToolCallRecord] = Field(default_factory=list)
