from __future__ import annotations

import base64
import binascii
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from crypto_control_bot.utils.symbols import normalize_pair


def _get(name: str, default: str) -> str:
    return os.getenv(name, default)


def _read_text_file(path: str) -> str:
    p = Path(path)
    if p.exists():
        return p.read_text(encoding="utf-8").strip()
    return ""


def _secret(name: str, default: str = "") -> str:
    """
    Sources, highest priority first:
    1) <NAME>_FILE (path to a file holding the secret)
    2) <NAME>_B64  (base64 string)
    3) plain ENV <NAME>
    """
    val_file = os.getenv(f"{name}_FILE")
    if val_file:
        txt = _read_text_file(val_file)
        if txt:
            return txt

    val_b64 = os.getenv(f"{name}_B64")
    if val_b64:
        try:
            return base64.b64decode(val_b64).decode("utf-8").strip()
        except (binascii.Error, UnicodeDecodeError):
            pass

    return os.getenv(name, default)


def _csv(raw: str) -> list[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


def _int_list(raw: str) -> list[int]:
    """Malformed ids are kept out and reported by validate_settings via TELEGRAM_USERS_RAW."""
    out: list[int] = []
    for x in _csv(raw):
        try:
            out.append(int(x))
        except ValueError:
            continue
    return out


@dataclass
class Settings:
    TELEGRAM_TOKEN: str
    TELEGRAM_USERS: list[int]
    PAIRS: list[str]

    TELEGRAM_LONG_POLL_SEC: int = 10
    TELEGRAM_TIMEOUT_SEC: float = 30.0
    TELEGRAM_PARSE_MODE: str = "Markdown"

    LOG_LEVEL: str = "INFO"

    TELEGRAM_USERS_RAW: str = field(default="", repr=False)

    @classmethod
    def load(cls) -> "Settings":
        users_raw = _get("TELEGRAM_USERS", "")
        return cls(
            TELEGRAM_TOKEN=_secret("TELEGRAM_TOKEN", ""),
            TELEGRAM_USERS=_int_list(users_raw),
            PAIRS=[normalize_pair(p) for p in _csv(_get("PAIRS", "BTCUSDT"))],
            TELEGRAM_LONG_POLL_SEC=int(_get("TELEGRAM_LONG_POLL_SEC", "10")),
            TELEGRAM_TIMEOUT_SEC=float(_get("TELEGRAM_TIMEOUT_SEC", "30")),
            TELEGRAM_PARSE_MODE=_get("TELEGRAM_PARSE_MODE", "Markdown"),
            LOG_LEVEL=_get("LOG_LEVEL", "INFO").upper(),
            TELEGRAM_USERS_RAW=users_raw,
        )

    def as_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d.pop("TELEGRAM_USERS_RAW", None)
        if d.get("TELEGRAM_TOKEN"):
            d["TELEGRAM_TOKEN"] = "***"
        return d
