from __future__ import annotations

import asyncio
from typing import Any, Iterable, Protocol

from crypto_control_bot.app.error_classifier import Audience, ErrorClassifier
from crypto_control_bot.core.types.trading import Order, OrderStatus
from crypto_control_bot.utils.logging import get_logger
from crypto_control_bot.utils.metrics import inc

_log = get_logger("app.notifier")


class MessageSender(Protocol):
    async def send_message(
        self, chat_id: int, text: str, *, reply_markup: dict[str, Any] | None = None
    ) -> None: ...


def order_title(order: Order) -> str:
    if order.status is OrderStatus.FILLED:
        return f"✅ ORDER FILLED - {order.pair}"
    if order.status is OrderStatus.NEW:
        return f"🆕 NEW ORDER - {order.pair}"
    if order.status in (OrderStatus.CANCELED, OrderStatus.REJECTED):
        return f"❌ ORDER CANCELED / REJECTED - {order.pair}"
    return f"ℹ️ ORDER {order.status.value} - {order.pair}"


def format_order_event(order: Order) -> str:
    return f"{order_title(order)}\n-----\n{order}"


class Notifier:
    """
    Best-effort broadcast to every operator.

    A failed send is logged and the remaining recipients are still tried;
    nothing is raised to the caller. Broadcasts are serialized so each
    recipient sees messages in trigger order.
    """

    def __init__(
        self,
        sender: MessageSender,
        recipients: Iterable[int],
        *,
        classifier: ErrorClassifier | None = None,
    ) -> None:
        self._sender = sender
        self._recipients: tuple[int, ...] = tuple(recipients)
        self._classifier = classifier or ErrorClassifier()
        self._lock = asyncio.Lock()

    @property
    def recipients(self) -> tuple[int, ...]:
        return self._recipients

    async def notify(self, text: str, *, reply_markup: dict[str, Any] | None = None) -> int:
        """Returns how many recipients accepted the message."""
        delivered = 0
        async with self._lock:
            for chat_id in self._recipients:
                try:
                    await self._sender.send_message(chat_id, text, reply_markup=reply_markup)
                except Exception:  # noqa: BLE001
                    inc("notifications_total", status="err")
                    _log.error("notify_failed", extra={"recipient": chat_id}, exc_info=True)
                    continue
                inc("notifications_total", status="ok")
                delivered += 1
        return delivered

    async def on_order_event(self, order: Order) -> None:
        await self.notify(format_order_event(order))

    async def on_engine_error(self, error: BaseException) -> None:
        c = self._classifier.classify(error)
        if c.audience is not Audience.OPERATORS:
            _log.warning("engine_error_not_broadcast", extra={"kind": c.kind, "error": str(error)})
            return
        _log.error("engine_error", extra={"kind": c.kind, "error": str(error)})
        await self.notify(c.text)
