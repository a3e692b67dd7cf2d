"""Environment-driven settings shared by the API, the controller and the agents.

Every value is read from the environment with a safe default. `.env` files are
loaded by `main.py` (python-dotenv) before anything here is called.
"""

from __future__ import annotations

import os
from typing import List


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    return os.getenv(key, "true" if default else "false").strip().lower() == "true"


# ── Background generation ────────────────────────────────────────────────

def get_background_await_timeout_ms() -> int:
    """Default time the "generate now" action waits on an in-flight draft."""
    return _env_int("BACKGROUND_AWAIT_TIMEOUT_MS", 300_000)


def get_session_ttl_seconds() -> float:
    """Idle wizard sessions older than this are purged."""
    return _env_float("WIZARD_SESSION_TTL_SECONDS", 3600.0)


# ── OpenAI ───────────────────────────────────────────────────────────────

def get_openai_key() -> str:
    """Read OPENAI_API_KEY from the environment. Raises EnvironmentError if missing."""
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        print("⚠️  [OPENAI] API key missing (OPENAI_API_KEY)")
        raise EnvironmentError("OPENAI_API_KEY environment variable not set")
    return key


def get_openai_model() -> str:
    return os.getenv("OPENAI_MODEL", "gpt-4o").strip()


def get_openai_temperature() -> float:
    return _env_float("OPENAI_TEMPERATURE", 0.3)


def get_openai_timeout() -> float:
    return _env_float("OPENAI_REQUEST_TIMEOUT", 120.0)


def get_openai_max_tokens() -> int:
    return _env_int("OPENAI_MAX_COMPLETION_TOKENS", 16_000)


# ── Service ──────────────────────────────────────────────────────────────

def get_database_url() -> str:
    return os.getenv("DATABASE_URL", "sqlite:///./agreements.db")


def get_cors_origins() -> List[str]:
    raw = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:3001",
    )
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def is_debug() -> bool:
    return _env_bool("DEBUG", False)
