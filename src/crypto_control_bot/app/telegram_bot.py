"""Telegram long-polling control loop.

Receives updates, drops anything not sent by an operator, and hands each
accepted message to the dispatcher through the event bus keyed by sender:
one sender's commands run strictly in order, different senders concurrently.
"""
from __future__ import annotations

import asyncio
from typing import Any

from crypto_control_bot.app.access import AccessFilter
from crypto_control_bot.app.adapters.telegram import TelegramAPIError, TelegramTransport, to_raw_command
from crypto_control_bot.app.commands import COMMANDS, DEFAULT_MENU, CommandDispatcher
from crypto_control_bot.app.notifier import Notifier
from crypto_control_bot.core.events.bus import AsyncEventBus
from crypto_control_bot.core.events.topics import Topics
from crypto_control_bot.core.types.trading import Order, RawCommand
from crypto_control_bot.utils.exceptions import TradingError
from crypto_control_bot.utils.logging import get_logger

_log = get_logger("app.telegram_bot")


class TelegramControl:
    """Command surface for operators plus the engine's notification sink."""

    def __init__(
        self,
        *,
        transport: TelegramTransport,
        dispatcher: CommandDispatcher,
        notifier: Notifier,
        access: AccessFilter,
        bus: AsyncEventBus,
        long_poll_sec: int = 10,
        retry_pause_sec: float = 1.0,
    ) -> None:
        self._transport = transport
        self._dispatcher = dispatcher
        self._notifier = notifier
        self._access = access
        self._bus = bus
        self._offset = 0
        self._lp_sec = max(1, int(long_poll_sec))
        self._retry_pause = float(retry_pause_sec)
        self._bus.subscribe(Topics.COMMAND_RECEIVED, self._on_command)

    @property
    def offset(self) -> int:
        return self._offset

    async def start(self) -> None:
        """Register the command list, then greet every operator."""
        await self._transport.set_commands(COMMANDS)
        await self._notifier.notify("Bot initialized.", reply_markup=DEFAULT_MENU)
        _log.info("telegram_bot_started", extra={"operators": len(self._notifier.recipients)})

    async def run(self) -> None:
        """Main long-polling loop; runs for the lifetime of the process."""
        await self.start()
        while True:
            try:
                await self.poll_once()
            except TelegramAPIError:
                _log.error("telegram_getupdates_failed", exc_info=True)
                await asyncio.sleep(self._retry_pause)

    async def poll_once(self) -> int:
        """Fetch one batch of updates and enqueue the accepted ones."""
        updates = await self._transport.get_updates(self._offset, self._lp_sec)
        accepted = 0
        for upd in updates:
            if await self.handle_update(upd):
                accepted += 1
        return accepted

    async def handle_update(self, update: dict[str, Any]) -> bool:
        self._offset = max(self._offset, int(update.get("update_id", 0) or 0) + 1)
        message = to_raw_command(update)
        if not self._access.accept(message):
            return False
        if not message.text.strip():
            return False
        await self._bus.publish(Topics.COMMAND_RECEIVED, message, key=str(message.sender))
        return True

    async def _on_command(self, message: RawCommand) -> None:
        try:
            await self._dispatcher.dispatch(message)
        except TradingError:
            _log.error(
                "command_failed",
                extra={"sender": message.sender, "command": message.command},
                exc_info=True,
            )

    # -------------------- engine callbacks --------------------

    async def on_order_event(self, order: Order) -> None:
        await self._notifier.on_order_event(order)

    async def on_engine_error(self, error: BaseException) -> None:
        await self._notifier.on_engine_error(error)
