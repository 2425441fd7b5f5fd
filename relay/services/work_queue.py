"""WorkQueue: producer side of the RQ work queue.

Each enqueued job carries one batch: a list of envelope dicts
``{id, timestamp, body: {userId, content, replyToken}}``. Redelivery of a
failed batch is left to RQ's ``Retry`` policy.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import redis
from rq import Queue, Retry

from config import Settings
from schemas.queue import QueueEnvelope, WorkItem

logger = logging.getLogger(__name__)


class WorkQueue:

    def __init__(
        self,
        queue: Queue,
        *,
        max_retries: int = 3,
        retry_intervals: list[int] | None = None,
        job_timeout: int = 300,
    ) -> None:
        self._queue = queue
        self._max_retries = max_retries
        self._retry_intervals = retry_intervals or [10, 30, 60]
        self._job_timeout = job_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> WorkQueue:
        conn = redis.from_url(settings.REDIS_URL)
        return cls(
            Queue(settings.QUEUE_NAME, connection=conn),
            max_retries=settings.QUEUE_MAX_RETRIES,
            retry_intervals=settings.QUEUE_RETRY_INTERVALS,
            job_timeout=settings.QUEUE_JOB_TIMEOUT,
        )

    @property
    def name(self) -> str:
        return self._queue.name

    def send(self, item: WorkItem) -> QueueEnvelope:
        """Enqueue a single work item as a one-item batch."""
        envelope = QueueEnvelope(body=item)
        self._enqueue([envelope], job_id=envelope.id)
        return envelope

    def send_batch(self, items: Iterable[WorkItem]) -> list[QueueEnvelope]:
        """Enqueue several work items as one batch (one RQ job)."""
        envelopes = [QueueEnvelope(body=item) for item in items]
        if envelopes:
            self._enqueue(envelopes)
        return envelopes

    def _enqueue(self, envelopes: list[QueueEnvelope], job_id: str | None = None) -> None:
        from tasks import consume_batch_job

        payload = [envelope.model_dump(by_alias=True) for envelope in envelopes]
        retry = Retry(max=self._max_retries, interval=self._retry_intervals) if self._max_retries > 0 else None
        job = self._queue.enqueue(
            consume_batch_job,
            payload,
            job_id=job_id,
            retry=retry,
            job_timeout=self._job_timeout,
        )
        logger.info(
            "Enqueued batch of %d work item(s) on '%s' (job %s)",
            len(envelopes), self._queue.name, getattr(job, "id", job_id),
        )
