"""Completion service client — Messages API over httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

from stela.core import config
from stela.core.tool_contracts import ToolInvocation

logger = logging.getLogger("stela.llm.completion")


class CompletionServiceError(Exception):
    """Raised when the completion service is unreachable, rejects the call,
    or answers with something that is not a message."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CompletionResponse(BaseModel):
    id: str = ""
    stop_reason: str | None = None
    content: list[dict[str, Any]] = Field(default_factory=list)

    def tool_invocations(self) -> list[ToolInvocation]:
        return [
            ToolInvocation.from_block(b)
            for b in self.content
            if b.get("type") == "tool_use"
        ]

    def text(self) -> str:
        return "\n\n".join(
            b.get("text", "") for b in self.content if b.get("type") == "text"
        )

    @property
    def wants_tools(self) -> bool:
        return self.stop_reason == "tool_use" and bool(self.tool_invocations())


def _error_text(r: httpx.Response) -> str:
    """Best-effort extraction of the provider's error message."""
    try:
        body = r.json()
    except ValueError:
        return r.text[:500] or r.reason_phrase
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        kind = err.get("type", "")
        msg = err.get("message", "")
        return f"{kind}: {msg}" if kind else msg
    return str(err or r.text[:500] or r.reason_phrase)


class CompletionClient:
    """Thin async client for ``POST /v1/messages``."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
        version: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or config.STELA_LLM_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else config.STELA_LLM_API_KEY
        self.model = model or config.STELA_MODEL_ID
        self.max_tokens = max_tokens or config.STELA_MAX_TOKENS
        self.timeout = timeout if timeout is not None else config.STELA_LLM_TIMEOUT
        self.version = version or config.STELA_LLM_VERSION
        self._http = http_client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def create(
        self,
        *,
        system: str,
        tools: list[dict[str, Any]],
        messages: list[dict[str, Any]],
    ) -> CompletionResponse:
        """Run one completion round.

        Raises CompletionServiceError on any failure; callers never see a
        raw httpx exception.
        """
        if not self.configured:
            raise CompletionServiceError("STELA_LLM_API_KEY not configured")

        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system,
            "messages": messages,
        }
        if tools:
            body["tools"] = tools

        try:
            r = await self._post(body)
        except httpx.HTTPError as exc:
            raise CompletionServiceError(
                f"Completion service HTTP error: {str(exc) or type(exc).__name__}"
            ) from exc

        if not r.is_success:
            raise CompletionServiceError(
                f"Completion service returned {r.status_code}: {_error_text(r)}",
                status_code=r.status_code,
            )

        try:
            return CompletionResponse.model_validate(r.json())
        except ValueError as exc:
            raise CompletionServiceError(f"Unparsable completion response: {exc}") from exc

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}/v1/messages"
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.version,
            "Content-Type": "application/json",
        }
        if self._http is not None:
            return await self._http.post(url, json=body, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, json=body, headers=headers)
