"""RelayContext: the handles one batch of work needs, built from settings.

Components never read process-wide state; they are constructed from a
context that owns the async Redis client and the HTTP client.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
import redis.asyncio as aioredis

from config import Settings
from services.completion import CompletionClient
from services.consumer import QueueConsumer
from services.history import HistoryStore
from services.reply import ReplyDispatcher


@dataclass
class RelayContext:
    settings: Settings
    redis: aioredis.Redis
    http: httpx.AsyncClient

    def history_store(self) -> HistoryStore:
        return HistoryStore(self.redis, ttl_seconds=self.settings.HISTORY_TTL_SECONDS)

    def completion_client(self) -> CompletionClient:
        return CompletionClient(
            self.http,
            api_key=self.settings.OPENAI_API_KEY,
            model=self.settings.COMPLETION_MODEL,
            url=self.settings.COMPLETION_API_URL,
            system_prompt=self.settings.COMPLETION_SYSTEM_PROMPT,
        )

    def reply_dispatcher(self) -> ReplyDispatcher:
        return ReplyDispatcher(
            self.http,
            access_token=self.settings.CHANNEL_ACCESS_TOKEN,
            url=self.settings.REPLY_API_URL,
        )

    def queue_consumer(self) -> QueueConsumer:
        return QueueConsumer(
            self.history_store(),
            self.completion_client(),
            self.reply_dispatcher(),
            history_limit=self.settings.HISTORY_LIMIT,
        )


@asynccontextmanager
async def open_context(settings: Settings) -> AsyncIterator[RelayContext]:
    """Open Redis and HTTP clients for the lifetime of one batch."""
    redis_client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as http:
            yield RelayContext(settings=settings, redis=redis_client, http=http)
    finally:
        await redis_client.aclose()
