"""Centralized OpenAI client for agreement drafting.

All agents MUST use `call_openai_chat_async()` from this module.
This ensures:
  - Model, temperature, timeout, and token limits are read from env.
  - JSON response format is enforced via response_format.
  - 1 retry on failure (timeout, non-200 or invalid JSON), then return None.
  - Token usage is returned alongside the parsed content.
  - Consistent logging across all agents.

Cancellation is not a failure: if the awaiting task is cancelled the
CancelledError propagates and the shared connection aborts the request.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..config import (
    get_openai_key,
    get_openai_max_tokens,
    get_openai_model,
    get_openai_temperature,
    get_openai_timeout,
)
from .http_client import get_client, get_timeout

_OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"


@dataclass
class ChatCompletionResult:
    """Parsed JSON content of a completion plus the metadata agents report."""

    content: Dict[str, Any]
    model: str
    usage: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# JSON sanitizer — extracts valid JSON from LLM output
# ---------------------------------------------------------------------------
def sanitize_json(raw: str) -> str:
    """Extract a JSON object from raw LLM output.

    Handles:
      - Markdown fences (```json ... ```)
      - Leading/trailing whitespace and BOM
      - Prose before/after JSON
      - Trailing commas before } or ]

    Raises ValueError if no JSON object is found.
    """
    text = raw.strip().lstrip("\ufeff")

    if text.startswith("```"):
        parts = text.split("```")
        text = parts[1] if len(parts) >= 3 else text[3:]

    text = text.strip()
    if text.lower().startswith("json"):
        text = text[4:].strip()

    brace_idx = text.find("{")
    if brace_idx == -1:
        raise ValueError("LLM did not return a JSON object — no '{' found")
    text = text[brace_idx:]

    rbrace_idx = text.rfind("}")
    if rbrace_idx == -1:
        raise ValueError("LLM did not return a JSON object — no '}' found")
    text = text[: rbrace_idx + 1]

    return re.sub(r",\s*([}\]])", r"\1", text)


def validate_required_keys(
    parsed: dict,
    required_keys: list[str],
    context: str = "OpenAI",
) -> bool:
    """Check that all required keys exist in parsed dict.

    Logs missing keys and returns False if any are missing.
    """
    missing = [k for k in required_keys if k not in parsed]
    if missing:
        print(f"⚠️  [{context}] Missing required keys: {missing}")
        return False
    return True


def build_payload(
    *,
    model: str,
    messages: List[Dict[str, str]],
    max_completion_tokens: int,
    temperature: float,
) -> Dict[str, Any]:
    """Build an OpenAI chat completions payload in JSON mode."""
    payload: Dict[str, Any] = {
        "model": model,
        "messages": messages,
        "max_tokens": max_completion_tokens,
        "temperature": temperature,
        "response_format": {"type": "json_object"},
    }

    print(f"🧠 [OPENAI] Model: {model}")
    print(f"🧠 [OPENAI] Tokens requested: {max_completion_tokens}")

    return payload


def _parse_completion(data: Dict[str, Any], attempt: int) -> Optional[Dict[str, Any]]:
    """Pull the JSON object out of a completion body, or None if unusable."""
    raw_content = (data["choices"][0]["message"]["content"] or "").strip()
    print(f"🧠 [OPENAI] Raw output length: {len(raw_content)} chars")

    if not raw_content:
        print(f"⚠️  [OPENAI] Empty response (attempt {attempt})")
        return None

    try:
        return json.loads(sanitize_json(raw_content))
    except ValueError as exc:  # includes json.JSONDecodeError
        print(f"❌ [OPENAI] JSON parse failed: {exc}")
        print(f"⚠️  [OPENAI] Raw (first 300 chars): {raw_content[:300]}")
        return None


async def call_openai_chat_async(
    *,
    messages: List[Dict[str, str]],
    max_completion_tokens: int = 0,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
) -> Optional[ChatCompletionResult]:
    """Call OpenAI chat completions and return the parsed JSON, or None on failure.

    Parameters
    ----------
    messages : list[dict]
        The messages array (system + user).
    max_completion_tokens : int
        Token limit for the response. 0 = use env default.
    api_key : str, optional
        Override API key (default: from env).
    model : str, optional
        Override model name (default: from env).
    temperature : float, optional
        Override sampling temperature (default: from env).

    Returns
    -------
    ChatCompletionResult or None
        Parsed JSON response content with usage, or None if all retries exhausted.
    """
    if api_key is None:
        api_key = get_openai_key()
    if model is None:
        model = get_openai_model()
    if max_completion_tokens <= 0:
        max_completion_tokens = get_openai_max_tokens()
    if temperature is None:
        temperature = get_openai_temperature()

    timeout = get_timeout(get_openai_timeout())
    max_retries = 1  # 1 retry only (2 attempts total)

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    payload = build_payload(
        model=model,
        messages=messages,
        max_completion_tokens=max_completion_tokens,
        temperature=temperature,
    )

    client = await get_client()

    for attempt in range(1, max_retries + 2):
        t0 = time.time()
        try:
            print(f"🧠 [OPENAI] Calling {model} (attempt {attempt}/{max_retries + 1})")
            response = await client.post(
                _OPENAI_API_URL,
                headers=headers,
                json=payload,
                timeout=timeout,
            )
            duration = time.time() - t0
            print(f"📦 [OPENAI] HTTP {response.status_code} ({duration:.1f}s)")

            if response.status_code != 200:
                print(f"⚠️  [OPENAI] Error response: {response.text[:400]}")
                if attempt <= max_retries:
                    print("🔄 [OPENAI] Retrying...")
                    continue
                return None

            data = response.json()

            usage = data.get("usage")
            if usage:
                print(f"🧠 [OPENAI] Tokens used: prompt={usage.get('prompt_tokens', '?')}, completion={usage.get('completion_tokens', '?')}, total={usage.get('total_tokens', '?')}")

            parsed = _parse_completion(data, attempt)
            if parsed is None:
                if attempt <= max_retries:
                    continue
                return None

            print("🧠 [OPENAI] Success")
            return ChatCompletionResult(
                content=parsed,
                model=data.get("model", model),
                usage=usage,
            )

        except httpx.TimeoutException:
            duration = time.time() - t0
            print(f"❌ [OPENAI] Timeout — aborting ({duration:.1f}s)")
            if attempt <= max_retries:
                continue
            return None

        except Exception as exc:
            print(f"❌ [OPENAI] Unexpected error: {exc}")
            return None

    return None
