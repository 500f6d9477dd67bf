from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stela.core import config
from stela.core.tool_registry import registry
from stela.routers import chat, health, tools

import logging

# Import the catalog so every tool self-registers with the registry on startup.
import stela.tools.catalog  # noqa: F401

logging.basicConfig(
    level=config.STELA_LOG_LEVEL,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("stela.startup")
    logger.info(
        "Stela chat ready: model=%s backend=%s tools=%s",
        config.STELA_MODEL_ID, config.STELA_BACKEND_URL, ", ".join(registry.names()),
    )
    if not config.STELA_LLM_API_KEY:
        logger.warning("STELA_LLM_API_KEY not set — every chat will use the fallback path")
    yield


app = FastAPI(title="Stela Chat", docs_url="/docs", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.STELA_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-Id"],
)

app.include_router(health.router)
app.include_router(tools.router)
app.include_router(chat.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("stela.main:app", host="0.0.0.0", port=3001)
