"""
Async HTTP Client Configuration

Provides a shared httpx.AsyncClient with connection pooling for calls to
OpenAI. Cancelling the awaiting task aborts the request in flight.
"""

import httpx
from typing import Optional


# Timeout configurations (in seconds)
class Timeouts:
    """Timeout presets for external services."""
    CONNECT = 5.0
    OPENAI_GENERATION = 120.0   # full agreement drafts are long completions


# Shared client instance (lazily initialized)
_client: Optional[httpx.AsyncClient] = None


async def get_client() -> httpx.AsyncClient:
    """Get the shared async HTTP client."""
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(Timeouts.OPENAI_GENERATION, connect=Timeouts.CONNECT),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )
    return _client


async def close_client():
    """Close the shared client (call on app shutdown)."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def get_timeout(seconds: float) -> httpx.Timeout:
    """Per-request timeout with the shared connect limit."""
    return httpx.Timeout(seconds, connect=Timeouts.CONNECT)
