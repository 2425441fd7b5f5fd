"""Pydantic settings loaded from .env, with conf.json overlay."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent

# ---------------------------------------------------------------------------
# conf.json: relay runtime config (separate from .env secrets)
# ---------------------------------------------------------------------------


def get_relay_dir() -> Path:
    """Resolve the relay data directory. RELAY_DIR env var or ~/.config/line-gpt-relay."""
    d = os.environ.get("RELAY_DIR", "")
    return Path(d).expanduser() if d else Path.home() / ".config" / "line-gpt-relay"


class RelayConfig(BaseModel):
    redis_url: str = ""
    queue_name: str = ""
    completion_model: str = ""
    log_level: str = ""
    log_file: str = ""
    history_ttl_seconds: int | None = None
    history_limit: int | None = None


_logger = logging.getLogger(__name__)


def load_conf() -> RelayConfig:
    """Load conf.json from the relay data directory."""
    conf_path = get_relay_dir() / "conf.json"
    if conf_path.exists():
        try:
            return RelayConfig.model_validate_json(conf_path.read_text())
        except Exception:
            _logger.warning("Failed to parse %s, using defaults", conf_path, exc_info=True)
    return RelayConfig()


# ---------------------------------------------------------------------------
# Bootstrap: load .env, load conf.json
# ---------------------------------------------------------------------------

_env_file = BASE_DIR.parent / ".env"
load_dotenv(_env_file)
_conf = load_conf()

# ---------------------------------------------------------------------------
# Settings (pydantic-settings): .env / env vars override conf.json defaults
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    DEBUG: bool = False

    # LINE Messaging API channel
    CHANNEL_ACCESS_TOKEN: str = ""
    CHANNEL_SECRET: str = ""
    VERIFY_SIGNATURE: bool = True
    REPLY_API_URL: str = "https://api.line.me/v2/bot/message/reply"

    # Completion provider
    OPENAI_API_KEY: str = ""
    COMPLETION_API_URL: str = "https://api.openai.com/v1/chat/completions"
    COMPLETION_MODEL: str = _conf.completion_model or "gpt-3.5-turbo"
    COMPLETION_SYSTEM_PROMPT: str = ""
    HTTP_TIMEOUT_SECONDS: float = 60.0

    REDIS_URL: str = _conf.redis_url or "redis://localhost:6379/0"

    # Conversation history
    HISTORY_TTL_SECONDS: int = (
        _conf.history_ttl_seconds if _conf.history_ttl_seconds is not None else 6 * 60 * 60
    )
    HISTORY_LIMIT: int = _conf.history_limit if _conf.history_limit is not None else 20

    # Work queue
    QUEUE_NAME: str = _conf.queue_name or "line-gpt"
    QUEUE_MAX_RETRIES: int = 3
    QUEUE_RETRY_INTERVALS: list[int] = [10, 30, 60]
    QUEUE_JOB_TIMEOUT: int = 300

    LOG_LEVEL: str = _conf.log_level or "INFO"
    LOG_FILE: str = _conf.log_file or ""
    LOG_MAX_BYTES: int = 10_485_760
    LOG_BACKUP_COUNT: int = 5

    model_config = ConfigDict(
        env_file=str(BASE_DIR.parent / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def missing_secrets(self) -> list[str]:
        return [
            name
            for name in ("CHANNEL_ACCESS_TOKEN", "OPENAI_API_KEY")
            if not getattr(self, name)
        ]


settings = Settings()
