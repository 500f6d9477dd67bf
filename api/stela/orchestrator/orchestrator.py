"""Chat orchestrator — the model ⇄ tools round-trip loop.

    AWAITING_MODEL ──tool_use──▶ EXECUTING_TOOLS ──results──▶ AWAITING_MODEL
          │
          └──no tool calls──▶ DONE

Every round sends the full conversation to the completion service. When the
model asks for tools, all of them run concurrently; the assistant turn and a
single user turn holding one tool_result per request (in request order) are
appended before the next round. Tool failures are conversation content, not
loop errors. A completion-service failure aborts the loop.
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from stela.core import config
from stela.core.tool_contracts import ToolCallRecord
from stela.core.tool_registry import ToolRegistry, registry as default_registry
from stela.llm.completion import CompletionClient, CompletionResponse
from stela.llm.prompts import assistant_system
from stela.orchestrator.assembler import assemble
from stela.orchestrator.models import (
    ChatRequest,
    LoopPhase,
    OrchestrationResult,
    OrchestrationState,
)
from stela.tools.executor import ToolExecutor

logger = logging.getLogger("stela.orchestrator")


class MaxRoundsExceeded(Exception):
    """The model kept requesting tools past the configured round cap."""

    def __init__(self, rounds: int, tool_log: list[ToolCallRecord]) -> None:
        super().__init__(f"Model still requested tools after {rounds} completion rounds")
        self.rounds = rounds
        self.tool_log = tool_log


def _new_id() -> str:
    return uuid.uuid4().hex


class ChatOrchestrator:
    """Drives one conversation per call; holds no per-request state itself."""

    def __init__(
        self,
        *,
        completion: CompletionClient | None = None,
        executor: ToolExecutor | None = None,
        registry: ToolRegistry | None = None,
        system_prompt: str | None = None,
        max_rounds: int | None = None,
    ) -> None:
        self.registry = registry if registry is not None else default_registry
        self.completion = completion or CompletionClient()
        self.executor = executor or ToolExecutor(registry=self.registry)
        self.system_prompt = system_prompt or assistant_system()
        self.max_rounds = max_rounds if max_rounds is not None else config.STELA_MAX_ROUNDS
        if self.max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")

    # ── Entry points ──────────────────────────────────────
    def start(self, request: ChatRequest, *, trace_id: str | None = None) -> OrchestrationState:
        """Assemble the initial conversation for *request*."""
        messages = assemble(
            [m.model_dump() for m in request.history],
            request.message,
            request.person_id,
            request.context,
        )
        return OrchestrationState(trace_id=trace_id or _new_id(), messages=messages)

    async def run(self, request: ChatRequest, *, trace_id: str | None = None) -> OrchestrationResult:
        return await self.drive(self.start(request, trace_id=trace_id))

    async def drive(self, state: OrchestrationState) -> OrchestrationResult:
        """Run rounds until the model answers without tool calls.

        Raises CompletionServiceError when a completion call fails and
        MaxRoundsExceeded when the round cap is hit.
        """
        tools = self.registry.schemas()
        logger.info(
            "[ORCH]   trace=%s — starting with %d messages, %d tools",
            state.trace_id[:12], len(state.messages), len(tools),
        )

        response = await self._complete(state, tools)
        while response.wants_tools:
            if state.rounds >= self.max_rounds:
                logger.error(
                    "[ORCH]   trace=%s — round cap %d reached, model still wants tools",
                    state.trace_id[:12], self.max_rounds,
                )
                raise MaxRoundsExceeded(state.rounds, list(state.completed_tool_log))
            await self._execute_round(state, response)
            response = await self._complete(state, tools)

        state.phase = LoopPhase.done
        answer = response.text()
        logger.info(
            "[ORCH]   trace=%s — done after %d rounds, answer=%d chars, tools=%s",
            state.trace_id[:12],
            state.rounds,
            len(answer),
            ", ".join(f"{r.tool}({'ok' if r.success else 'failed'})" for r in state.completed_tool_log)
            or "none",
        )
        return OrchestrationResult(
            trace_id=state.trace_id,
            answer=answer,
            tools_used=list(state.completed_tool_log),
            rounds=state.rounds,
        )

    # ─────────────────────────────────────────────────────
    #  Internal helpers
    # ─────────────────────────────────────────────────────

    async def _complete(self, state: OrchestrationState, tools: list[dict]) -> CompletionResponse:
        state.phase = LoopPhase.awaiting_model
        state.rounds += 1
        response = await self.completion.create(
            system=self.system_prompt,
            tools=tools,
            messages=list(state.messages),
        )
        logger.info(
            "[ORCH]   trace=%s — round %d stop_reason=%s",
            state.trace_id[:12], state.rounds, response.stop_reason,
        )
        return response

    async def _execute_round(self, state: OrchestrationState, response: CompletionResponse) -> None:
        invocations = response.tool_invocations()
        state.phase = LoopPhase.executing_tools
        state.pending_tool_calls = invocations
        logger.info(
            "[ORCH]   trace=%s — round %d requested: %s",
            state.trace_id[:12], state.rounds, ", ".join(i.tool_name for i in invocations),
        )

        # gather keeps request order regardless of completion order
        results = await asyncio.gather(
            *(self.executor.execute(inv) for inv in invocations)
        )

        for r in results:
            state.completed_tool_log.append(ToolCallRecord(tool=r.tool_name, success=r.succeeded))
        state.tool_results.extend(results)

        state.messages.append({"role": "assistant", "content": response.content})
        state.messages.append({"role": "user", "content": [r.to_block() for r in results]})
        state.pending_tool_calls = []
