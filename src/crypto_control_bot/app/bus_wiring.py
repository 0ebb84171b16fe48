from __future__ import annotations

from crypto_control_bot.app.notifier import Notifier
from crypto_control_bot.core.events.bus import AsyncEventBus
from crypto_control_bot.core.events.topics import Topics


def attach_notifier(bus: AsyncEventBus, notifier: Notifier) -> None:
    """Forward engine events published on the bus to the operators."""
    bus.subscribe(Topics.ORDER_EVENT, notifier.on_order_event)
    bus.subscribe(Topics.ENGINE_ERROR, notifier.on_engine_error)
