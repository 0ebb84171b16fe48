"""
JSON logging for the control plane.

Every logger handed out by `get_logger` lives under the `crypto_control_bot`
namespace, so a single handler on that namespace serves the whole package.
Records carry the id of the command being handled (`command_id`), and the
Telegram bot token is scrubbed from messages, tracebacks and extra fields.
"""
from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

NAMESPACE = "crypto_control_bot"

_COMMAND_ID: ContextVar[Optional[str]] = ContextVar("command_id", default=None)

# Bot API urls look like https://api.telegram.org/bot<id>:<secret>/sendMessage
_BOT_TOKEN_RE = re.compile(r"bot\d+:[A-Za-z0-9_-]+")
_SECRET_FIELDS = ("token", "secret", "password", "authorization")
_MASK = "***"

_RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def set_correlation_id(value: Optional[str]) -> None:
    """Tag the records of the current task (None clears it)."""
    _COMMAND_ID.set(value)


def get_correlation_id() -> Optional[str]:
    return _COMMAND_ID.get()


def scrub(text: str) -> str:
    return _BOT_TOKEN_RE.sub(f"bot{_MASK}", text)


def _jsonable(key: str, value: Any) -> Any:
    if any(s in key.lower() for s in _SECRET_FIELDS):
        return _MASK
    if isinstance(value, str):
        return scrub(value)
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {str(k): _jsonable(str(k), v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(key, v) for v in value]
    return scrub(str(value))


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, event, command_id, extras."""

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": scrub(record.getMessage()),
        }
        command_id = get_correlation_id()
        if command_id:
            out["command_id"] = command_id

        for key, value in vars(record).items():
            if key in _RESERVED or key.startswith("_"):
                continue
            out[key] = _jsonable(key, value)

        if record.exc_info:
            out["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
            out["exc"] = scrub(self.formatException(record.exc_info))

        return json.dumps(out, ensure_ascii=False, default=str)


def configure(level: int = logging.INFO, *, stream: Any = None) -> logging.Logger:
    """
    Attach the JSON handler to the package namespace and set its level.
    Calling it again only changes the level.
    """
    pkg = logging.getLogger(NAMESPACE)
    pkg.setLevel(level)
    pkg.propagate = False

    handler = next((h for h in pkg.handlers if isinstance(h.formatter, JsonFormatter)), None)
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(JsonFormatter())
        pkg.addHandler(handler)
    handler.setLevel(level)

    # httpx logs request urls at INFO, and those embed the bot token
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return pkg


def get_logger(name: str) -> logging.Logger:
    """`get_logger("app.commands")` -> logger `crypto_control_bot.app.commands`."""
    if name == NAMESPACE or name.startswith(NAMESPACE + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{NAMESPACE}.{name}")


__all__ = [
    "NAMESPACE",
    "JsonFormatter",
    "configure",
    "get_correlation_id",
    "get_logger",
    "scrub",
    "set_correlation_id",
]
