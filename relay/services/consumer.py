"""QueueConsumer: drain a batch of work items through history, completion and reply.

Items of one batch are processed strictly in order. Each item runs inside
its own error boundary: a failure after the user turn is recorded is logged
and reported in the item's outcome, and the next item still runs. A failure
to record the user turn (or to read history back) propagates, so RQ fails
the job and redelivers the whole batch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from logging_config import user_id_var, work_item_id_var
from schemas.history import ConversationTurn
from schemas.queue import ItemOutcome, QueueEnvelope
from services.completion import CompletionClient
from services.history import DEFAULT_LIMIT, HistoryStore
from services.reply import ReplyDispatcher

logger = logging.getLogger(__name__)


class QueueConsumer:

    def __init__(
        self,
        history: HistoryStore,
        completion: CompletionClient,
        reply: ReplyDispatcher,
        *,
        history_limit: int = DEFAULT_LIMIT,
    ) -> None:
        self.history = history
        self.completion = completion
        self.reply = reply
        self.history_limit = history_limit

    async def process_batch(self, envelopes: Iterable[QueueEnvelope]) -> list[ItemOutcome]:
        outcomes = []
        for envelope in envelopes:
            outcomes.append(await self.process_item(envelope))
        failed = sum(1 for o in outcomes if not o.ok)
        logger.info("Processed batch of %d item(s), %d failed", len(outcomes), failed)
        return outcomes

    async def process_item(self, envelope: QueueEnvelope) -> ItemOutcome:
        item = envelope.body
        item_token = work_item_id_var.set(envelope.id)
        user_token = user_id_var.set(item.user_id)
        try:
            await self.history.append(item.user_id, ConversationTurn(role="user", content=item.content))
            turns = await self.history.recent(item.user_id, self.history_limit)

            try:
                reply_text = await self.completion.complete(turns)
                await self.history.append(
                    item.user_id, ConversationTurn(role="assistant", content=reply_text)
                )
                await self.reply.send(item.reply_token, reply_text)
            except Exception as exc:
                logger.exception("Work item %s failed", envelope.id)
                return ItemOutcome(id=envelope.id, user_id=item.user_id, ok=False, error=str(exc))

            logger.info("Replied with %d characters from %d history turn(s)", len(reply_text), len(turns))
            return ItemOutcome(id=envelope.id, user_id=item.user_id, ok=True)
        finally:
            user_id_var.reset(user_token)
            work_item_id_var.reset(item_token)


def consume_batch(raw_envelopes: list[dict]) -> list[dict]:
    """Validate raw envelopes and run them through a fresh consumer.

    Runs in the RQ worker process (sync); the batch gets its own event loop.
    """
    from config import settings

    envelopes = [QueueEnvelope.model_validate(raw) for raw in raw_envelopes]
    outcomes = asyncio.run(_consume(settings, envelopes))
    return [outcome.model_dump() for outcome in outcomes]


async def _consume(settings, envelopes: list[QueueEnvelope]) -> list[ItemOutcome]:
    from context import open_context

    async with open_context(settings) as ctx:
        return await ctx.queue_consumer().process_batch(envelopes)
