"""Logging for the webhook server and RQ workers.

Every line carries the process role and, inside the queue consumer, the
work item and user being handled::

    2026-10-19 14:30:01 [Worker-9821][Item 9f1c2a7e][User U4af4980][ERROR] services.consumer:62 - Work item failed
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from contextvars import ContextVar
from pathlib import Path

work_item_id_var: ContextVar[str] = ContextVar("work_item_id_var", default="")
user_id_var: ContextVar[str] = ContextVar("user_id_var", default="")

_STREAM_HANDLER = "_relay_stream"
_FILE_HANDLER = "_relay_file"


class ContextFilter(logging.Filter):
    """Stamps ``role``, ``work_item_id`` and ``user_id`` onto each record."""

    def __init__(self, role: str) -> None:
        super().__init__()
        self.role = role

    def filter(self, record: logging.LogRecord) -> bool:
        record.role = self.role  # type: ignore[attr-defined]
        record.work_item_id = work_item_id_var.get()  # type: ignore[attr-defined]
        record.user_id = user_id_var.get()  # type: ignore[attr-defined]
        return True


class ContextFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        prefix = ""
        role = getattr(record, "role", "")
        if role:
            prefix += f"[{role}]"
        work_item_id = getattr(record, "work_item_id", "")
        if work_item_id:
            prefix += f"[Item {work_item_id[:8]}]"
        user_id = getattr(record, "user_id", "")
        if user_id:
            prefix += f"[User {user_id[:8]}]"
        prefix += f"[{record.levelname}]"

        line = (
            f"{self.formatTime(record, self.datefmt)} {prefix} "
            f"{record.name}:{record.lineno} - {record.getMessage()}"
        )
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            line += "\n" + record.exc_text
        if record.stack_info:
            line += "\n" + record.stack_info
        return line


def _install(root: logging.Logger, handler: logging.Handler, name: str, role: str) -> None:
    handler.name = name
    handler.addFilter(ContextFilter(role))
    handler.setFormatter(ContextFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)


def setup_logging(role: str) -> None:
    """Configure the root logger for *role* (``"Server"`` or ``"Worker-<pid>"``).

    Safe to call more than once.
    """
    from config import settings

    root = logging.getLogger()
    if any(getattr(h, "name", None) == _STREAM_HANDLER for h in root.handlers):
        return

    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    _install(root, logging.StreamHandler(sys.stderr), _STREAM_HANDLER, role)

    if settings.LOG_FILE:
        log_path = Path(settings.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        _install(root, file_handler, _FILE_HANDLER, role)

    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    # `uvicorn main:app` installs its own handlers on these two
    if "server" in role.lower():
        for name in ("uvicorn.error", "uvicorn.access"):
            uv_logger = logging.getLogger(name)
            uv_logger.handlers.clear()
            uv_logger.propagate = True
