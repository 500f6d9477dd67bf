import os

# Backend data API (tool endpoints + tool-less chat fallback)
STELA_BACKEND_URL: str = os.environ.get("STELA_BACKEND_URL", "http://localhost:8000").rstrip("/")
STELA_FALLBACK_PATH: str = os.environ.get("STELA_FALLBACK_PATH", "/chat-fallback")

# Completion service (Messages API compatible)
STELA_LLM_URL: str = os.environ.get("STELA_LLM_URL", "https://api.anthropic.com").rstrip("/")
STELA_LLM_API_KEY: str = os.environ.get("STELA_LLM_API_KEY", "")
STELA_LLM_VERSION: str = os.environ.get("STELA_LLM_VERSION", "2023-06-01")
STELA_MODEL_ID: str = os.environ.get("STELA_MODEL_ID", "claude-3-5-sonnet-20241022")
STELA_MAX_TOKENS: int = int(os.environ.get("STELA_MAX_TOKENS", "4096"))

# Timeouts (seconds); a tool call must finish well inside the request timeout
STELA_LLM_TIMEOUT: float = float(os.environ.get("STELA_LLM_TIMEOUT", "60"))
STELA_TOOL_TIMEOUT: float = float(os.environ.get("STELA_TOOL_TIMEOUT", "15"))
STELA_FALLBACK_TIMEOUT: float = float(os.environ.get("STELA_FALLBACK_TIMEOUT", "20"))
STELA_REQUEST_TIMEOUT: float = float(os.environ.get("STELA_REQUEST_TIMEOUT", "120"))

# Orchestration loop
STELA_MAX_ROUNDS: int = int(os.environ.get("STELA_MAX_ROUNDS", "8"))

# Display pacing for streamed answers
STELA_STREAM_WORDS: int = int(os.environ.get("STELA_STREAM_WORDS", "5"))
STELA_STREAM_INTERVAL_MS: int = int(os.environ.get("STELA_STREAM_INTERVAL_MS", "15"))

# HTTP surface
STELA_CORS_ORIGINS: list[str] = [
    o.strip()
    for o in os.environ.get("STELA_CORS_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]
STELA_LOG_LEVEL: str = os.environ.get("STELA_LOG_LEVEL", "INFO").upper()
