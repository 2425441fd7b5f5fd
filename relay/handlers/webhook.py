"""Webhook handler: FastAPI endpoint for incoming LINE webhooks."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Request

from config import settings
from errors import ValidationError
from handlers import WebhookHandler
from services.work_queue import WorkQueue

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache
def get_work_queue() -> WorkQueue:
    return WorkQueue.from_settings(settings)


def get_webhook_handler() -> WebhookHandler:
    """FastAPI dependency: handler bound to the configured queue and channel secret."""
    return WebhookHandler(
        get_work_queue(),
        channel_secret=settings.CHANNEL_SECRET,
        verify=settings.VERIFY_SIGNATURE,
    )


@router.post("/api/webhook")
async def webhook_view(
    request: Request,
    handler: WebhookHandler = Depends(get_webhook_handler),
):
    body = await request.body()
    signature = request.headers.get("x-line-signature")
    try:
        await asyncio.to_thread(handler.handle, body, signature)
    except ValidationError as exc:
        logger.info("Rejected webhook: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"message": "ok"}
