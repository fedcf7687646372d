"""One-line JSON logs for the gateway, with platform credentials masked."""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Optional

QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")

SECRET_FIELDS = frozenset(
    {"access_token", "ai_api_key", "api_key", "bot_token", "embedding_api_key", "telegram_bot_token", "verify_token"}
)
MASK = "***"

# Bot API URLs carry the token in the path: /bot<id>:<secret>/sendMessage
BOT_TOKEN_PATTERN = re.compile(r"(bot)?(\d{5,}):[A-Za-z0-9_-]{20,}")


def mask_bot_tokens(text: str) -> str:
    return BOT_TOKEN_PATTERN.sub(lambda m: f"{m.group(1) or ''}{m.group(2)}:{MASK}", text)


def redact(context: dict) -> dict:
    clean = {}
    for key, value in context.items():
        if key in SECRET_FIELDS and value:
            clean[key] = MASK
        elif isinstance(value, dict):
            clean[key] = redact(value)
        elif isinstance(value, str):
            clean[key] = mask_bot_tokens(value)
        else:
            clean[key] = value
    return clean


class JSONFormatter(logging.Formatter):
    def __init__(self, service: str = "chatrelay"):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "message": mask_bot_tokens(record.getMessage()),
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict) and context:
            entry["context"] = redact(context)

        if record.exc_info:
            entry["exception"] = mask_bot_tokens(self.formatException(record.exc_info))

        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: Optional[str] = None, service: Optional[str] = None) -> None:
    """Route every logger through a single stdout JSON handler."""
    from app.config import settings

    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))

    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(service or settings.app_name))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"chatrelay.{name}")


class ContextLogger(logging.LoggerAdapter):
    """Merges the bound fields into each record's `context`; per-call fields win."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.pop("extra", None) or {}
        context = {**self.extra, **(extra.get("context") or {})}
        if context:
            kwargs["extra"] = {**extra, "context": context}
        return msg, kwargs


def bind_logger(name: str, **context: Any) -> ContextLogger:
    """Logger for one delivery, e.g. bind_logger("dispatcher", platform="telegram", sender_id="42")."""
    return ContextLogger(get_logger(name), context)
