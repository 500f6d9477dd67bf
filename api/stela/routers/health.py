import httpx
from fastapi import APIRouter

from stela.core import config
from stela.core.tool_registry import registry

router = APIRouter()


async def _probe_backend() -> str:
    try:
        async with httpx.AsyncClient(timeout=2.0) as client:
            resp = await client.get(f"{config.STELA_BACKEND_URL}/health")
            if resp.status_code != 200:
                return "error"
    except httpx.HTTPError:
        return "unreachable"
    return "ok"


@router.get("/healthz")
async def healthz():
    # ── Backend data API ──
    backend_status = await _probe_backend()

    # ── Completion service ──
    llm_status = "configured" if config.STELA_LLM_API_KEY else "missing"

    ok = backend_status == "ok" and llm_status == "configured"
    return {"ok": ok, "backend": backend_status, "llm": llm_status, "tools": len(registry)}
