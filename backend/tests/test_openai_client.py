"""OpenAI client tests — JSON sanitizing, retry policy, usage reporting, config.

The shared httpx client is replaced by one backed by httpx.MockTransport.
"""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from agreement_wizard import config
from agreement_wizard.services.openai_client import (
    build_payload,
    call_openai_chat_async,
    sanitize_json,
    validate_required_keys,
)

MESSAGES = [
    {"role": "system", "content": "You are a legal drafter."},
    {"role": "user", "content": "Draft an agreement."},
]


def _completion_body(content, model="gpt-4o-2024-08-06"):
    return {
        "model": model,
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
    }


def _run_with_responses(responses):
    """Call OpenAI against a transport that replays `responses` in order."""
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return responses[len(seen) - 1]

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with patch(
                "agreement_wizard.services.openai_client.get_client",
                new=AsyncMock(return_value=client),
            ):
                return await call_openai_chat_async(messages=MESSAGES, api_key="sk-test")

    return asyncio.run(scenario()), seen


# ===================================================================== #
#  Unit tests: sanitize / validate                                        #
# ===================================================================== #

class TestSanitizeJson:
    def test_plain_object(self):
        assert json.loads(sanitize_json('{"a": 1}')) == {"a": 1}

    def test_markdown_fence(self):
        raw = '```json\n{"title": "Agreement"}\n```'
        assert json.loads(sanitize_json(raw)) == {"title": "Agreement"}

    def test_prose_and_trailing_commas(self):
        raw = 'Here you go:\n{"sections": [{"title": "A",},],}\nThanks!'
        assert json.loads(sanitize_json(raw)) == {"sections": [{"title": "A"}]}

    def test_bom_stripped(self):
        assert json.loads(sanitize_json('\ufeff{"a": 1}')) == {"a": 1}

    def test_no_object(self):
        with pytest.raises(ValueError, match="no '\\{' found"):
            sanitize_json("I cannot help with that.")

    def test_validate_required_keys(self):
        assert validate_required_keys({"title": 1, "sections": []}, ["title", "sections"]) is True
        assert validate_required_keys({"title": 1}, ["title", "sections"]) is False


def test_build_payload_enforces_json_mode():
    payload = build_payload(
        model="gpt-4o", messages=MESSAGES, max_completion_tokens=1000, temperature=0.3
    )
    assert payload["response_format"] == {"type": "json_object"}
    assert payload["max_tokens"] == 1000
    assert payload["messages"] == MESSAGES


# ===================================================================== #
#  call_openai_chat_async                                                 #
# ===================================================================== #

class TestCallOpenAI:
    def test_success(self):
        result, seen = _run_with_responses(
            [httpx.Response(200, json=_completion_body('{"title": "Agreement", "sections": []}'))]
        )
        assert result.content == {"title": "Agreement", "sections": []}
        assert result.model == "gpt-4o-2024-08-06"
        assert result.usage["total_tokens"] == 30
        assert len(seen) == 1
        assert seen[0]["response_format"] == {"type": "json_object"}

    def test_retries_once_after_http_error(self):
        result, seen = _run_with_responses(
            [
                httpx.Response(500, text="upstream error"),
                httpx.Response(200, json=_completion_body('{"title": "Agreement"}')),
            ]
        )
        assert result.content == {"title": "Agreement"}
        assert len(seen) == 2

    def test_retries_once_after_invalid_json(self):
        result, seen = _run_with_responses(
            [
                httpx.Response(200, json=_completion_body("not json at all")),
                httpx.Response(200, json=_completion_body('{"ok": true}')),
            ]
        )
        assert result.content == {"ok": True}
        assert len(seen) == 2

    def test_gives_up_after_second_failure(self):
        result, seen = _run_with_responses(
            [httpx.Response(429, text="rate limited"), httpx.Response(503, text="busy")]
        )
        assert result is None
        assert len(seen) == 2

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
            asyncio.run(call_openai_chat_async(messages=MESSAGES))


# ===================================================================== #
#  Config                                                                 #
# ===================================================================== #

class TestConfig:
    def test_defaults(self, monkeypatch):
        for key in ("BACKGROUND_AWAIT_TIMEOUT_MS", "OPENAI_MODEL", "OPENAI_TEMPERATURE"):
            monkeypatch.delenv(key, raising=False)
        assert config.get_background_await_timeout_ms() == 300_000
        assert config.get_openai_model() == "gpt-4o"
        assert config.get_openai_temperature() == 0.3

    def test_overrides_and_bad_values(self, monkeypatch):
        monkeypatch.setenv("BACKGROUND_AWAIT_TIMEOUT_MS", "1500")
        monkeypatch.setenv("OPENAI_TEMPERATURE", "warm")
        assert config.get_background_await_timeout_ms() == 1500
        assert config.get_openai_temperature() == 0.3

    def test_cors_origins(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
        assert config.get_cors_origins() == ["http://a.test", "http://b.test"]
