from __future__ import annotations

from typing import List

from crypto_control_bot.utils.symbols import split

ALLOWED_PARSE_MODES = {"Markdown", "MarkdownV2", "HTML"}
ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_settings(settings) -> List[str]:
    """Return list of human-readable errors. Empty list means valid.
    Do NOT read os.environ here; validate a ready Settings object.
    """
    errors: List[str] = []

    if not getattr(settings, "TELEGRAM_TOKEN", ""):
        errors.append("TELEGRAM_TOKEN must be set")

    users = getattr(settings, "TELEGRAM_USERS", []) or []
    if not users:
        errors.append("TELEGRAM_USERS must list at least one numeric user id")
    raw = getattr(settings, "TELEGRAM_USERS_RAW", "") or ""
    bad = [x.strip() for x in raw.split(",") if x.strip() and not x.strip().lstrip("-").isdigit()]
    if bad:
        errors.append(f"TELEGRAM_USERS contains non-numeric ids: {bad}")

    pairs = getattr(settings, "PAIRS", []) or []
    if not pairs:
        errors.append("PAIRS must list at least one trading pair like 'BTCUSDT'")
    for pair in pairs:
        base, quote = split(pair)
        if not base or not quote:
            errors.append(f"PAIRS entry {pair!r} has no recognizable quote currency")

    poll = getattr(settings, "TELEGRAM_LONG_POLL_SEC", 0)
    if not isinstance(poll, int) or poll < 1:
        errors.append("TELEGRAM_LONG_POLL_SEC must be a positive integer")

    timeout = getattr(settings, "TELEGRAM_TIMEOUT_SEC", 0)
    try:
        if float(timeout) <= 0:
            errors.append("TELEGRAM_TIMEOUT_SEC must be > 0")
    except (TypeError, ValueError):
        errors.append("TELEGRAM_TIMEOUT_SEC must be a number > 0")

    mode = getattr(settings, "TELEGRAM_PARSE_MODE", "")
    if mode not in ALLOWED_PARSE_MODES:
        errors.append(f"TELEGRAM_PARSE_MODE must be one of {sorted(ALLOWED_PARSE_MODES)}, got: {mode!r}")

    level = getattr(settings, "LOG_LEVEL", "INFO")
    if level not in ALLOWED_LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of {sorted(ALLOWED_LOG_LEVELS)}, got: {level!r}")

    return errors
