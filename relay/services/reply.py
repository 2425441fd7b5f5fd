"""ReplyDispatcher: send completion results back to the LINE conversation."""

from __future__ import annotations

import logging

import httpx

from errors import ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_REPLY_URL = "https://api.line.me/v2/bot/message/reply"
MAX_LINE_MESSAGE_LENGTH = 5000
MAX_MESSAGES_PER_REPLY = 5


class ReplyDispatcher:

    def __init__(self, http: httpx.AsyncClient, *, access_token: str, url: str = DEFAULT_REPLY_URL) -> None:
        self._http = http
        self._access_token = access_token
        self._url = url

    async def send(self, reply_token: str, text: str) -> None:
        """Reply to the message that issued *reply_token*. The token is single-use."""
        data = {
            "replyToken": reply_token,
            "messages": [{"type": "text", "text": chunk} for chunk in self._split_text(text)],
        }
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            resp = await self._http.post(self._url, json=data, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalServiceError(
                "reply",
                f"HTTP {exc.response.status_code}: {exc.response.text[:200]}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError("reply", f"request failed: {exc}") from exc

    def _split_text(self, text: str) -> list[str]:
        if len(text) <= MAX_LINE_MESSAGE_LENGTH:
            return [text]
        chunks = []
        while text and len(chunks) < MAX_MESSAGES_PER_REPLY:
            if len(text) <= MAX_LINE_MESSAGE_LENGTH:
                chunks.append(text)
                text = ""
                break
            split_at = text.rfind("\n", 0, MAX_LINE_MESSAGE_LENGTH)
            if split_at <= 0:
                split_at = MAX_LINE_MESSAGE_LENGTH
            chunks.append(text[:split_at])
            text = text[split_at:].lstrip("\n")
        if text:
            logger.warning("Reply truncated, %d characters dropped", len(text))
        return chunks
