"""Tool executor — turn one model tool call into a backend HTTP request.

``ToolExecutor.execute`` never raises. Unknown tools, missing arguments,
non-2xx responses, timeouts and transport failures all come back as a
ToolResult whose payload is a JSON error object, so the model always gets
a parsable reply it can reason about on the next round.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

import httpx

from stela.core import config
from stela.core.tool_contracts import ToolInvocation, ToolResult, ToolStatus
from stela.core.tool_registry import (
    ResolvedRequest,
    ToolArgumentError,
    ToolRegistry,
    registry as default_registry,
)

logger = logging.getLogger("stela.tools.executor")

_JSON_HEADERS = {"Content-Type": "application/json"}


def _dump(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class ToolExecutor:
    """Executes registry tools against the backend data API."""

    def __init__(
        self,
        *,
        registry: ToolRegistry | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.registry = registry if registry is not None else default_registry
        self.base_url = (base_url or config.STELA_BACKEND_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.STELA_TOOL_TIMEOUT
        self._http = http_client

    async def execute(self, invocation: ToolInvocation) -> ToolResult:
        started = time.monotonic()
        name = invocation.tool_name

        descriptor = self.registry.resolve(name)
        if descriptor is None:
            logger.warning("[TOOL]   unknown tool requested: %s", name)
            return self._result(
                invocation,
                {"error": f"Tool '{name}' not found", "available_tools": self.registry.names()},
                ToolStatus.error,
                started,
            )

        try:
            request = descriptor.build_request(invocation.raw_arguments)
        except ToolArgumentError as exc:
            logger.warning("[TOOL]   %s rejected: %s", name, exc)
            return self._result(
                invocation,
                {"error": str(exc), "tool": name, "required": descriptor.required_names()},
                ToolStatus.error,
                started,
            )
        except Exception as exc:
            logger.error("[TOOL]   %s could not resolve endpoint: %s", name, exc)
            return self._result(
                invocation,
                {"error": f"Failed to execute {name}: {_describe(exc)}", "tool": name},
                ToolStatus.error,
                started,
            )

        url = f"{self.base_url}{request.path}"
        logger.info(
            "[TOOL]   executing %s %s %s args=%s",
            name, request.method, url, sorted(invocation.raw_arguments),
        )

        try:
            response = await asyncio.wait_for(self._send(request, url), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("[TOOL]   %s timed out after %.1fs", name, self.timeout)
            return self._result(
                invocation,
                {"error": f"Failed to execute {name}: timed out after {self.timeout:g}s", "tool": name},
                ToolStatus.timeout,
                started,
            )
        except Exception as exc:
            logger.error("[TOOL]   error executing %s: %s", name, _describe(exc))
            return self._result(
                invocation,
                {"error": f"Failed to execute {name}: {_describe(exc)}", "tool": name},
                ToolStatus.error,
                started,
            )

        if not response.is_success:
            logger.warning("[TOOL]   %s backend returned %d", name, response.status_code)
            return self._result(
                invocation,
                {
                    "error": f"API returned {response.status_code}: {response.reason_phrase}",
                    "tool": name,
                    "endpoint": request.path,
                },
                ToolStatus.error,
                started,
            )

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("[TOOL]   %s returned a non-JSON body", name)
            return self._result(
                invocation,
                {"error": f"Failed to execute {name}: {_describe(exc)}", "tool": name},
                ToolStatus.error,
                started,
            )

        # a 2xx body can still be an error object; relay it but mark the call failed
        status = ToolStatus.error if isinstance(data, dict) and "error" in data else ToolStatus.ok
        result = self._result(invocation, data, status, started)
        logger.info(
            "[TOOL]   %s %s %s in %dms",
            name,
            "returned" if result.succeeded else "reported error in",
            sorted(data) if isinstance(data, dict) else type(data).__name__,
            result.elapsed_ms,
        )
        return result

    # ── internals ─────────────────────────────────────────
    async def _send(self, request: ResolvedRequest, url: str) -> httpx.Response:
        if self._http is not None:
            return await self._http.request(
                request.method, url, json=request.body, headers=_JSON_HEADERS,
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(
                request.method, url, json=request.body, headers=_JSON_HEADERS,
            )

    @staticmethod
    def _result(
        invocation: ToolInvocation,
        payload: Any,
        status: ToolStatus,
        started: float,
    ) -> ToolResult:
        return ToolResult(
            invocation_id=invocation.invocation_id,
            tool_name=invocation.tool_name,
            payload=_dump(payload),
            status=status,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
