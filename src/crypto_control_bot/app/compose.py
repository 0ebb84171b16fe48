from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from crypto_control_bot.app.access import AccessFilter
from crypto_control_bot.app.adapters.telegram import TelegramTransport
from crypto_control_bot.app.bus_wiring import attach_notifier
from crypto_control_bot.app.commands import CommandDispatcher
from crypto_control_bot.app.error_classifier import ErrorClassifier
from crypto_control_bot.app.logging_bootstrap import setup_logging
from crypto_control_bot.app.notifier import Notifier
from crypto_control_bot.app.telegram_bot import TelegramControl
from crypto_control_bot.core.engine.base import IEngine
from crypto_control_bot.core.events.bus import AsyncEventBus
from crypto_control_bot.core.settings import Settings
from crypto_control_bot.core.validators.settings import validate_settings
from crypto_control_bot.utils.exceptions import ConfigError
from crypto_control_bot.utils.logging import get_logger

_log = get_logger("app.compose")


@dataclass
class Container:
    settings: Settings
    engine: IEngine
    bus: AsyncEventBus
    transport: TelegramTransport
    access: AccessFilter
    notifier: Notifier
    dispatcher: CommandDispatcher
    control: TelegramControl


def build_control(
    settings: Settings,
    engine: IEngine,
    *,
    transport: Optional[TelegramTransport] = None,
    bus: Optional[AsyncEventBus] = None,
) -> Container:
    """Wire the control plane around an engine. Raises ConfigError on bad settings."""
    errors = validate_settings(settings)
    if errors:
        raise ConfigError("; ".join(errors))

    setup_logging(settings.LOG_LEVEL)

    transport = transport or TelegramTransport(
        bot_token=settings.TELEGRAM_TOKEN,
        parse_mode=settings.TELEGRAM_PARSE_MODE,
        request_timeout_sec=settings.TELEGRAM_TIMEOUT_SEC,
    )
    bus = bus or AsyncEventBus()
    classifier = ErrorClassifier()
    access = AccessFilter(settings.TELEGRAM_USERS)
    notifier = Notifier(transport, settings.TELEGRAM_USERS, classifier=classifier)
    dispatcher = CommandDispatcher(
        engine=engine,
        transport=transport,
        notifier=notifier,
        access=access,
        pairs=settings.PAIRS,
        classifier=classifier,
    )
    control = TelegramControl(
        transport=transport,
        dispatcher=dispatcher,
        notifier=notifier,
        access=access,
        bus=bus,
        long_poll_sec=settings.TELEGRAM_LONG_POLL_SEC,
    )
    attach_notifier(bus, notifier)

    _log.info("control_composed", extra={"pairs": list(settings.PAIRS), "operators": len(settings.TELEGRAM_USERS)})
    return Container(
        settings=settings,
        engine=engine,
        bus=bus,
        transport=transport,
        access=access,
        notifier=notifier,
        dispatcher=dispatcher,
        control=control,
    )
