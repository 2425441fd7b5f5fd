"""Pydantic schemas for work queue payloads.

Wire names follow the queue payload format (``userId``, ``replyToken``);
Python code uses the snake_case attribute names.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class WorkItem(BaseModel):
    user_id: str = Field(alias="userId")
    content: str
    reply_token: str = Field(alias="replyToken")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class QueueEnvelope(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    body: WorkItem


class ItemOutcome(BaseModel):
    id: str
    user_id: str
    ok: bool
    error: str | None = None
