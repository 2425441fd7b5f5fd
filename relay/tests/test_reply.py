"""Tests for services/reply.py: LINE reply adapter."""

from __future__ import annotations

import json

import httpx
import pytest

from errors import ExternalServiceError
from services.reply import MAX_LINE_MESSAGE_LENGTH, MAX_MESSAGES_PER_REPLY, ReplyDispatcher


def _dispatcher(handler, **kwargs) -> ReplyDispatcher:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("access_token", "line-token")
    return ReplyDispatcher(http, **kwargs)


class TestSend:
    @pytest.mark.asyncio
    async def test_posts_reply_payload(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={})

        await _dispatcher(handler).send("rt-1", "hi there")

        assert seen["url"] == "https://api.line.me/v2/bot/message/reply"
        assert seen["auth"] == "Bearer line-token"
        assert seen["body"] == {"replyToken": "rt-1", "messages": [{"type": "text", "text": "hi there"}]}

    @pytest.mark.asyncio
    async def test_expired_token_raises(self):
        def handler(request):
            return httpx.Response(400, json={"message": "Invalid reply token"})

        with pytest.raises(ExternalServiceError) as exc_info:
            await _dispatcher(handler).send("rt-expired", "hi")

        assert exc_info.value.service == "reply"
        assert exc_info.value.status_code == 400
        assert "Invalid reply token" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_error_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ExternalServiceError, match="request failed"):
            await _dispatcher(handler).send("rt-1", "hi")


class TestSplitText:
    def setup_method(self):
        self.dispatcher = ReplyDispatcher(httpx.AsyncClient(), access_token="t")

    def test_short_text_not_split(self):
        assert self.dispatcher._split_text("short") == ["short"]

    def test_splits_on_newline(self):
        first = "a" * (MAX_LINE_MESSAGE_LENGTH - 10)
        second = "b" * 100
        chunks = self.dispatcher._split_text(f"{first}\n{second}")
        assert chunks == [first, second]

    def test_hard_split_without_newline(self):
        chunks = self.dispatcher._split_text("A" * (MAX_LINE_MESSAGE_LENGTH + 1))
        assert [len(c) for c in chunks] == [MAX_LINE_MESSAGE_LENGTH, 1]

    def test_caps_message_count(self):
        text = "A" * (MAX_LINE_MESSAGE_LENGTH * (MAX_MESSAGES_PER_REPLY + 2))
        chunks = self.dispatcher._split_text(text)
        assert len(chunks) == MAX_MESSAGES_PER_REPLY
