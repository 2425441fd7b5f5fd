"""Webhook handlers: validate LINE events and dispatch them to the work queue."""

from __future__ import annotations

import json
import logging

from auth import verify_signature
from errors import ValidationError
from schemas.queue import QueueEnvelope, WorkItem
from services.work_queue import WorkQueue

logger = logging.getLogger(__name__)


def parse_events(body: bytes) -> list:
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("Request body is not valid JSON.") from exc
    if not isinstance(data, dict) or not isinstance(data.get("events"), list):
        raise ValidationError("Request body must be an object with an 'events' list.")
    return data["events"]


def build_work_item(event) -> WorkItem:
    """Turn a LINE text message event from a 1:1 chat into a WorkItem."""
    if not isinstance(event, dict) or event.get("type") != "message":
        raise ValidationError("Only message events are supported.")

    message = event.get("message")
    if not isinstance(message, dict) or message.get("type") != "text" or not isinstance(message.get("text"), str):
        raise ValidationError("Only text messages are supported.")

    source = event.get("source")
    if not isinstance(source, dict) or source.get("type") != "user":
        raise ValidationError("Only messages from a user (not a group or room) are supported.")

    user_id = source.get("userId")
    reply_token = event.get("replyToken")
    if not isinstance(user_id, str) or not user_id:
        raise ValidationError("Event source has no userId.")
    if not isinstance(reply_token, str) or not reply_token:
        raise ValidationError("Event has no replyToken.")

    return WorkItem(user_id=user_id, content=message["text"], reply_token=reply_token)


class WebhookHandler:

    def __init__(self, queue: WorkQueue, *, channel_secret: str = "", verify: bool = True) -> None:
        self.queue = queue
        self.channel_secret = channel_secret
        self.verify = verify and bool(channel_secret)

    def handle(self, body: bytes, signature: str | None = None) -> QueueEnvelope | None:
        """Verify and validate one webhook request and enqueue its first event.

        Returns the enqueued envelope, or None when the request carries no
        events (LINE sends an empty list when the webhook URL is verified).
        Raises ValidationError for anything that must not be enqueued; an
        enqueue failure propagates unchanged.
        """
        if self.verify:
            verify_signature(self.channel_secret, body, signature)

        events = parse_events(body)
        if not events:
            logger.info("Webhook carried no events, nothing to enqueue")
            return None
        if len(events) > 1:
            logger.debug("Webhook carried %d events, processing only the first", len(events))

        item = build_work_item(events[0])
        envelope = self.queue.send(item)
        logger.info("Dispatched message from %s → queue '%s' (item %s)", item.user_id, self.queue.name, envelope.id)
        return envelope
