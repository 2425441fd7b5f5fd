"""Root conftest: shared fixtures for all relay tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure relay/ is on sys.path
_relay_dir = str(Path(__file__).resolve().parent)
if _relay_dir not in sys.path:
    sys.path.insert(0, _relay_dir)

from unittest.mock import MagicMock

import fakeredis
import pytest

from schemas.queue import QueueEnvelope, WorkItem


@pytest.fixture
def fake_redis():
    """Async fakeredis client with its own server, so tests never share keys."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def mock_queue():
    queue = MagicMock()
    queue.name = "line-gpt"
    queue.send.side_effect = lambda item: QueueEnvelope(body=item)
    return queue


@pytest.fixture
def make_envelope():
    def _make(user_id: str = "U1", content: str = "hello", reply_token: str = "rt-1") -> QueueEnvelope:
        return QueueEnvelope(body=WorkItem(user_id=user_id, content=content, reply_token=reply_token))
    return _make


@pytest.fixture
def make_event():
    return _text_message_event


def _text_message_event(
    text: str = "hello",
    *,
    user_id: str = "U1",
    reply_token: str = "rt-1",
    source_type: str = "user",
    message_type: str = "text",
    event_type: str = "message",
) -> dict:
    """A LINE webhook event shaped like the Messaging API sends it."""
    source = {"type": source_type, "userId": user_id}
    if source_type == "group":
        source["groupId"] = "G1"
    elif source_type == "room":
        source["roomId"] = "R1"
    message = {"id": "468789577898262530", "type": message_type}
    if message_type == "text":
        message["text"] = text
    return {
        "type": event_type,
        "mode": "active",
        "timestamp": 1700000000000,
        "replyToken": reply_token,
        "source": source,
        "webhookEventId": "01H0000000000000000000000",
        "deliveryContext": {"isRedelivery": False},
        "message": message,
    }
