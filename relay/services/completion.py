"""CompletionClient: send conversation turns to the chat completion API."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from errors import ExternalServiceError
from schemas.history import ConversationTurn

logger = logging.getLogger(__name__)

DEFAULT_COMPLETION_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-3.5-turbo"


class CompletionClient:

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_key: str,
        model: str = DEFAULT_MODEL,
        url: str = DEFAULT_COMPLETION_URL,
        system_prompt: str = "",
    ) -> None:
        self._http = http
        self._api_key = api_key
        self._model = model
        self._url = url
        self._system_prompt = system_prompt

    async def complete(self, turns: Sequence[ConversationTurn]) -> str:
        """Return the first choice's message content for *turns* (oldest first)."""
        payload = {"model": self._model, "messages": self._build_messages(turns)}
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            resp = await self._http.post(self._url, json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalServiceError(
                "completion",
                f"HTTP {exc.response.status_code}: {exc.response.text[:200]}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError("completion", f"request failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise ExternalServiceError("completion", "response is not JSON") from exc
        return self._extract_content(body)

    def _build_messages(self, turns: Sequence[ConversationTurn]) -> list[dict]:
        messages = [turn.model_dump() for turn in turns]
        if self._system_prompt:
            messages.insert(0, {"role": "system", "content": self._system_prompt})
        return messages

    def _extract_content(self, body) -> str:
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ExternalServiceError("completion", "response has no choices[0].message.content") from exc
        if not isinstance(content, str):
            raise ExternalServiceError("completion", f"unexpected content type {type(content).__name__}")
        usage = body.get("usage") or {}
        logger.debug(
            "Completion from %s used %s tokens", body.get("model", self._model), usage.get("total_tokens")
        )
        return content
