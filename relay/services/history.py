"""HistoryStore: per-user rolling conversation ledger in Redis.

Each turn is its own key, ``"<userId>:<epoch-millis>"``, holding the
JSON-encoded ``{role, content}`` and expiring after the retention window.
Reads enumerate the user's keys and order them by the encoded timestamp,
since Redis ``SCAN`` gives no ordering guarantee.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable

import redis.asyncio as aioredis
from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError

from errors import StoreError
from schemas.history import ConversationTurn

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 6 * 60 * 60
DEFAULT_LIMIT = 20
SCAN_COUNT = 100

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def history_key(user_id: str, millis: int) -> str:
    return f"{user_id}:{millis}"


def parse_history_key(key: str) -> tuple[str, int] | None:
    """Split a history key into ``(user_id, millis)``; None if it is not one."""
    user_id, sep, millis = key.rpartition(":")
    if not sep or not millis.isdigit():
        return None
    return user_id, int(millis)


class HistoryStore:

    def __init__(
        self,
        redis: aioredis.Redis,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis
        self._ttl = ttl_seconds
        self._clock = clock

    async def append(self, user_id: str, turn: ConversationTurn) -> str:
        """Write *turn* under a fresh timestamp key and return the key."""
        key = history_key(user_id, int(self._clock() * 1000))
        try:
            await self._redis.set(key, turn.model_dump_json(), ex=self._ttl)
        except RedisError as exc:
            raise StoreError(f"Failed to write history key {key}") from exc
        return key

    async def recent(self, user_id: str, limit: int = DEFAULT_LIMIT) -> list[ConversationTurn]:
        """Return up to *limit* most recent turns for *user_id*, oldest first.

        Values that have expired between listing and fetching, or that do not
        decode to a turn, are skipped.
        """
        if limit <= 0:
            return []

        keys = await self._list_keys(user_id)
        ordered = sorted(keys, key=lambda name: (keys[name], name))
        selected = ordered[-limit:]
        if not selected:
            return []

        try:
            values = await self._redis.mget(selected)
        except RedisError as exc:
            raise StoreError(f"Failed to read history for {user_id}") from exc

        turns: list[ConversationTurn] = []
        for key, raw in zip(selected, values):
            if raw is None:
                continue
            try:
                turns.append(ConversationTurn.model_validate_json(raw))
            except PydanticValidationError:
                logger.warning("Skipping unparseable history entry %s", key)
        return turns

    async def _list_keys(self, user_id: str) -> dict[str, int]:
        pattern = _GLOB_SPECIAL.sub(r"\\\1", user_id) + ":*"
        found: dict[str, int] = {}
        try:
            async for raw_key in self._redis.scan_iter(match=pattern, count=SCAN_COUNT):
                key = raw_key.decode() if isinstance(raw_key, bytes) else raw_key
                parsed = parse_history_key(key)
                # "U1:*" also matches keys of a user id like "U1:x"
                if parsed is None or parsed[0] != user_id:
                    continue
                found[key] = parsed[1]
        except RedisError as exc:
            raise StoreError(f"Failed to list history for {user_id}") from exc
        return found
