from __future__ import annotations

import logging

from crypto_control_bot.utils.logging import configure


def setup_logging(level: str = "INFO") -> None:
    """JSON to stdout at `level`; safe to call more than once."""
    resolved = logging.getLevelName(level.upper())
    configure(resolved if isinstance(resolved, int) else logging.INFO)
