"""Tests for services/completion.py: chat completion adapter."""

from __future__ import annotations

import json

import httpx
import pytest

from errors import ExternalServiceError
from schemas.history import ConversationTurn
from services.completion import CompletionClient


def _client(handler, **kwargs) -> CompletionClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("api_key", "sk-test")
    return CompletionClient(http, **kwargs)


def _ok(content="hi there"):
    return httpx.Response(200, json={
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "model": "gpt-3.5-turbo",
        "usage": {"prompt_tokens": 5, "completion_tokens": 2, "total_tokens": 7},
        "choices": [{"index": 0, "finish_reason": "stop", "message": {"role": "assistant", "content": content}}],
    })


TURNS = [
    ConversationTurn(role="user", content="hello"),
    ConversationTurn(role="assistant", content="hi"),
    ConversationTurn(role="user", content="how are you?"),
]


class TestComplete:
    @pytest.mark.asyncio
    async def test_returns_first_choice_content(self):
        client = _client(lambda request: _ok("I'm fine"))
        assert await client.complete(TURNS) == "I'm fine"

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return _ok()

        client = _client(handler, model="gpt-4o-mini", url="https://llm.example.com/v1/chat/completions")
        await client.complete(TURNS)

        assert seen["url"] == "https://llm.example.com/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"] == {
            "model": "gpt-4o-mini",
            "messages": [
                {"role": "user", "content": "hello"},
                {"role": "assistant", "content": "hi"},
                {"role": "user", "content": "how are you?"},
            ],
        }

    @pytest.mark.asyncio
    async def test_system_prompt_is_prepended(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["body"] = json.loads(request.content)
            return _ok()

        client = _client(handler, system_prompt="Answer in Japanese.")
        await client.complete(TURNS[:1])

        assert seen["body"]["messages"] == [
            {"role": "system", "content": "Answer in Japanese."},
            {"role": "user", "content": "hello"},
        ]

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self):
        client = _client(lambda request: httpx.Response(429, json={"error": {"message": "rate limited"}}))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.complete(TURNS)

        assert exc_info.value.service == "completion"
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_network_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExternalServiceError, match="request failed"):
            await _client(handler).complete(TURNS)

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(ExternalServiceError, match="not JSON"):
            await client.complete(TURNS)

    @pytest.mark.parametrize("body", [
        {},
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": None}}]},
        [],
    ])
    @pytest.mark.asyncio
    async def test_malformed_body_raises(self, body):
        client = _client(lambda request: httpx.Response(200, json=body))

        with pytest.raises(ExternalServiceError):
            await client.complete(TURNS)
