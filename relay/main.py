"""FastAPI application entry point.

Run from relay/ with:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Ensure relay/ is on sys.path for absolute imports
_relay_dir = str(Path(__file__).resolve().parent)
if _relay_dir not in sys.path:  # pragma: no cover
    sys.path.insert(0, _relay_dir)

try:
    __version__ = (Path(__file__).resolve().parent.parent / "VERSION").read_text().strip()
except Exception:  # pragma: no cover
    __version__ = "0.0.0-dev"

import redis as redis_lib
from fastapi import FastAPI

from config import settings
from handlers.webhook import router as webhook_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    from logging_config import setup_logging
    setup_logging("Server")

    import logging
    logger = logging.getLogger(__name__)

    missing = settings.missing_secrets
    if missing and not settings.DEBUG:
        raise RuntimeError(f"Refusing to start without {', '.join(missing)} (set DEBUG=true to override)")
    if missing:
        logger.warning("Running without %s; replies will fail", ", ".join(missing))
    if not settings.CHANNEL_SECRET or not settings.VERIFY_SIGNATURE:
        logger.warning("Webhook signature verification is disabled")

    logger.info("Webhook relay %s enqueuing on '%s'", __version__, settings.QUEUE_NAME)
    yield


app = FastAPI(title="LINE GPT Relay", version=__version__, lifespan=lifespan)

app.include_router(webhook_router)


@app.get("/health")
def health() -> dict:
    redis_ok = True
    client = redis_lib.from_url(settings.REDIS_URL)
    try:
        client.ping()
    except Exception:
        redis_ok = False
    finally:
        client.close()
    return {
        "status": "ok" if redis_ok else "degraded",
        "redis": redis_ok,
        "version": __version__,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True, log_config=None)
