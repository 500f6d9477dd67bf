"""Fallback path for when the completion service cannot be used.

Tier 1 forwards the original request body to the backend's tool-less chat
endpoint and relays its JSON verbatim. Tier 2 builds a degraded markdown
answer from what is already in memory (the request's cached account context
and any tools that returned data before the failure). Tier 2 never makes
further network calls.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from stela.core import config
from stela.orchestrator.models import ChatRequest, OrchestrationState

logger = logging.getLogger("stela.fallback")

OFFLINE_MARKER = "offline mode"

_EXPIRED_RE = re.compile(r"ExpiredToken|expired", re.IGNORECASE)

# (context key, label) pairs shown in the offline snapshot table
_SNAPSHOT_FIELDS = (
    ("account_name", "Account"),
    ("rank", "Current rank"),
    ("gsv", "GSV"),
    ("csv", "CSV"),
    ("dc_sv", "DC-SV"),
)


def is_credential_expiry(error: BaseException) -> bool:
    status = getattr(error, "status_code", None)
    return status in (401, 403) or bool(_EXPIRED_RE.search(str(error)))


@dataclass(frozen=True)
class FallbackOutcome:
    tier: str  # "secondary" | "degraded"
    status_code: int
    payload: Any


def _format_value(v: Any) -> str:
    if isinstance(v, bool):
        return str(v)
    if isinstance(v, (int, float)):
        return f"{v:,}"
    return str(v)


def degraded_answer(
    *,
    person_id: str,
    error_message: str,
    backend_url: str,
    context: Mapping[str, Any] | None = None,
    gathered_tools: list[str] | None = None,
) -> str:
    """Markdown answer for total failure, always tagged with OFFLINE_MARKER."""
    lines = [f"## ⚠️ Connection Issue ({OFFLINE_MARKER})", "", error_message, ""]

    snapshot = [
        (label, context[key])
        for key, label in _SNAPSHOT_FIELDS
        if context and context.get(key) not in (None, "")
    ]
    if snapshot:
        lines += ["### Your last known snapshot", "", "| Metric | Value |", "|--------|-------|"]
        lines += [f"| {label} | {_format_value(value)} |" for label, value in snapshot]
        lines.append("")

    if gathered_tools:
        lines += ["### Data retrieved before the interruption", ""]
        lines += [f"- ✅ {name}" for name in gathered_tools]
        lines.append("")

    lines += [
        "### What to do:",
        "1. Check that the AI service credentials in `.env` are valid",
        f"2. Ensure the backend API at `{backend_url}` is running",
        "3. Try refreshing the page",
        "",
        "### Your current session:",
        f"- Account ID: {person_id or 'Unknown'}",
        f"- Backend: {backend_url}",
    ]
    return "\n".join(lines)


def round_limit_payload(error: BaseException, person_id: str | None) -> dict[str, Any]:
    """User-facing body for a request that hit the round cap."""
    message = "The assistant needed too many data lookups to answer this question."
    response = "\n".join([
        "## ⚠️ Request Too Complex",
        "",
        message,
        "",
        "### What to do:",
        "1. Ask a narrower question (for example, one topic at a time)",
        "2. Try again in a moment",
        "",
        "### Your current session:",
        f"- Account ID: {person_id or 'Unknown'}",
    ])
    return {
        "error": message,
        "response": response,
        "details": str(error),
        "hint": "Rephrase the question or raise STELA_MAX_ROUNDS",
    }


class FallbackResponder:
    """Two-tier degradation when the orchestration loop cannot finish."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        path: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or config.STELA_BACKEND_URL).rstrip("/")
        self.path = path or config.STELA_FALLBACK_PATH
        self.timeout = timeout if timeout is not None else config.STELA_FALLBACK_TIMEOUT
        self._http = http_client

    async def respond(
        self,
        *,
        raw_body: bytes,
        request: ChatRequest | None,
        error: BaseException,
        state: OrchestrationState | None = None,
    ) -> FallbackOutcome:
        data = await self._secondary(raw_body)
        if data is not None:
            return FallbackOutcome(tier="secondary", status_code=200, payload=data)
        return self.degraded(request, error, state)

    def degraded(
        self,
        request: ChatRequest | None,
        error: BaseException,
        state: OrchestrationState | None = None,
    ) -> FallbackOutcome:
        expired = is_credential_expiry(error)
        if expired:
            logger.error("[FALLBACK] completion service credentials expired — need refresh")
            error_message = (
                "AI service credentials have expired. "
                "Please refresh the session credentials in the .env file."
            )
            hint = "Refresh STELA_LLM_API_KEY (or the session token behind it) and restart the service"
        else:
            error_message = "Failed to connect to AI service. Please check your configuration."
            hint = "Check the AI service credentials and that the backend server is running"

        person_id = request.person_id if request else ""
        answer = degraded_answer(
            person_id=person_id,
            error_message=error_message,
            backend_url=self.base_url,
            context=request.context if request else None,
            gathered_tools=state.gathered_tools() if state else None,
        )
        logger.warning("[FALLBACK] serving degraded answer (expired=%s)", expired)
        return FallbackOutcome(
            tier="degraded",
            status_code=401 if expired else 500,
            payload={
                "error": error_message,
                "response": answer,
                "details": str(error),
                "hint": hint,
            },
        )

    async def _secondary(self, raw_body: bytes) -> Any | None:
        url = f"{self.base_url}{self.path}"
        logger.info("[FALLBACK] forwarding request to %s", url)
        try:
            r = await self._post(url, raw_body)
        except httpx.HTTPError as exc:
            logger.error("[FALLBACK] secondary endpoint failed: %s", str(exc) or type(exc).__name__)
            return None

        if not r.is_success:
            logger.warning("[FALLBACK] secondary endpoint returned status %d", r.status_code)
            return None
        try:
            data = r.json()
        except ValueError:
            logger.warning("[FALLBACK] secondary endpoint returned a non-JSON body")
            return None
        logger.info("[FALLBACK] secondary endpoint succeeded")
        return data

    async def _post(self, url: str, body: bytes) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._http is not None:
            return await self._http.post(url, content=body, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, content=body, headers=headers)
