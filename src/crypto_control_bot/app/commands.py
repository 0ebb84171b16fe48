"""Operator commands: routing, handlers and the command registry.

Every engine read goes to the engine; nothing about run state or positions is
cached here. Usage mistakes are answered to the requester only, engine faults
are broadcast to all operators through the notifier.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Awaitable, Callable, Iterable, Protocol, TypeVar

from crypto_control_bot.app.access import AccessFilter
from crypto_control_bot.app.adapters.telegram import BotCommand
from crypto_control_bot.app.error_classifier import ErrorClassifier
from crypto_control_bot.app.notifier import Notifier
from crypto_control_bot.core.commands.grammar import OrderCommandParser
from crypto_control_bot.core.commands.sizing import OrderSizer, submit_order
from crypto_control_bot.core.engine.base import IEngine
from crypto_control_bot.core.types.trading import BotRunState, RawCommand, Side
from crypto_control_bot.utils.decimal import ZERO, dec
from crypto_control_bot.utils.exceptions import (
    AuthorizationError,
    DeliveryError,
    EngineUnavailableError,
    OrderOutcomeError,
    ParseError,
    ValidationError,
)
from crypto_control_bot.utils.logging import get_logger, set_correlation_id
from crypto_control_bot.utils.metrics import atimer, inc
from crypto_control_bot.utils.symbols import split

_log = get_logger("app.commands")

T = TypeVar("T")

_PASSTHROUGH = (EngineUnavailableError, OrderOutcomeError, ParseError, ValidationError)

COMMANDS: tuple[BotCommand, ...] = (
    BotCommand("help", "Display help instructions"),
    BotCommand("stop", "Stop buy and sell coins"),
    BotCommand("start", "Start buy and sell coins"),
    BotCommand("status", "Check bot status"),
    BotCommand("balance", "Wallet balance"),
    BotCommand("profit", "Summary of last trade results"),
    BotCommand("buy", "open a buy order"),
    BotCommand("sell", "open a sell order"),
)

DEFAULT_MENU: dict[str, Any] = {
    "keyboard": [
        [{"text": "/status"}, {"text": "/balance"}, {"text": "/profit"}],
        [{"text": "/start"}, {"text": "/stop"}, {"text": "/buy"}, {"text": "/sell"}],
    ],
    "resize_keyboard": True,
}


class CommandTransport(Protocol):
    async def send_message(
        self, chat_id: int, text: str, *, reply_markup: dict[str, Any] | None = None
    ) -> None: ...

    async def get_commands(self) -> list[BotCommand]: ...


class CommandDispatcher:
    """Routes authorized commands to their handlers."""

    def __init__(
        self,
        *,
        engine: IEngine,
        transport: CommandTransport,
        notifier: Notifier,
        access: AccessFilter,
        pairs: Iterable[str],
        parser: OrderCommandParser | None = None,
        classifier: ErrorClassifier | None = None,
    ) -> None:
        self._engine = engine
        self._transport = transport
        self._notifier = notifier
        self._access = access
        self._pairs: tuple[str, ...] = tuple(p.upper() for p in pairs)
        self._parser = parser or OrderCommandParser()
        self._classifier = classifier or ErrorClassifier()
        self._sizer = OrderSizer(engine)
        self._handlers: dict[str, Callable[[int, RawCommand], Awaitable[None]]] = {
            "help": self.handle_help,
            "status": self.handle_status,
            "start": self.handle_start,
            "stop": self.handle_stop,
            "balance": self.handle_balance,
            "profit": self.handle_profit,
            "buy": self.handle_buy,
            "sell": self.handle_sell,
        }

    # -------------------- routing --------------------

    async def dispatch(self, message: RawCommand) -> None:
        """
        Handle one inbound message.

        OrderOutcomeError from a submission is re-raised to the caller; the
        engine reports it to operators through its own error callback.
        """
        try:
            sender = self._access.require(message)
        except AuthorizationError:
            return

        command = message.command
        handler = self._handlers.get(command)
        if handler is None:
            inc("commands_total", command="unknown", outcome="ignored")
            _log.info("command_unknown", extra={"sender": sender, "text": message.text[:64]})
            return

        set_correlation_id(f"tg-{message.update_id}")
        outcome = "ok"
        try:
            async with atimer("command.latency.ms", command=command):
                await handler(sender, message)
        except (ParseError, ValidationError) as exc:
            outcome = "rejected"
            await self.reply(sender, self._classifier.classify(exc).text)
        except OrderOutcomeError:
            outcome = "order_failed"
            raise
        except EngineUnavailableError as exc:
            outcome = "engine_error"
            _log.error("command_engine_error", extra={"command": command}, exc_info=True)
            await self._notifier.on_engine_error(exc)
        finally:
            inc("commands_total", command=command, outcome=outcome)
            set_correlation_id(None)

    async def reply(self, chat_id: int, text: str, *, menu: bool = False) -> None:
        """Direct answer to the requester; delivery failures are only logged."""
        try:
            await self._transport.send_message(chat_id, text, reply_markup=DEFAULT_MENU if menu else None)
        except DeliveryError:
            _log.error("telegram_reply_failed", extra={"recipient": chat_id}, exc_info=True)

    async def _call(self, fn: Callable[..., Awaitable[T]], *args: Any) -> T:
        """
        Await an engine or Bot API lookup. Anything but an order outcome or
        a usage error becomes EngineUnavailableError (TelegramAPIError included).
        """
        try:
            return await fn(*args)
        except _PASSTHROUGH:
            raise
        except Exception as exc:
            name = getattr(fn, "__name__", "engine_call")
            raise EngineUnavailableError(f"{name} failed: {exc}") from exc

    # -------------------- handlers --------------------

    async def handle_help(self, sender: int, message: RawCommand) -> None:
        commands = await self._call(self._transport.get_commands)
        lines = [f"/{c.command.lstrip('/')} - {c.description}" for c in commands]
        await self.reply(sender, "\n".join(lines))

    async def handle_status(self, sender: int, message: RawCommand) -> None:
        state = await self._call(self._engine.run_state)
        label = state.value if isinstance(state, BotRunState) else str(state)
        await self.reply(sender, f"Status: `{label}`")

    async def handle_start(self, sender: int, message: RawCommand) -> None:
        if await self._call(self._engine.run_state) == BotRunState.RUNNING:
            await self.reply(sender, "Bot is already running.", menu=True)
            return
        await self._call(self._engine.start)
        _log.info("bot_started", extra={"sender": sender})
        await self.reply(sender, "Bot started.", menu=True)

    async def handle_stop(self, sender: int, message: RawCommand) -> None:
        if await self._call(self._engine.run_state) == BotRunState.STOPPED:
            await self.reply(sender, "Bot is already stopped.", menu=True)
            return
        await self._call(self._engine.stop)
        _log.info("bot_stopped", extra={"sender": sender})
        await self.reply(sender, "Bot stopped.", menu=True)

    async def handle_balance(self, sender: int, message: RawCommand) -> None:
        # any failed lookup aborts before anything is sent
        account = await self._call(self._engine.fetch_account)

        lines = ["*BALANCE*"]
        quotes_value: dict[str, Decimal] = {}
        total = ZERO
        for pair in self._pairs:
            asset, quote = split(pair)
            asset_balance, quote_balance = account.balance(asset, quote)
            asset_size = asset_balance.total
            quote_size = quote_balance.total

            price = dec(await self._call(self._engine.fetch_last_quote, pair))
            asset_value = asset_size * price
            quotes_value[quote] = quote_size
            total += asset_value
            lines.append(f"{asset}: `{asset_size:.4f}` ≅ `{asset_value:.2f}` {quote} ")

        for quote, value in quotes_value.items():
            total += value
            lines.append(f"{quote}: `{value:.4f}`")

        lines.append("-----")
        lines.append(f"Total: `{total:.4f}`")
        await self.reply(sender, "\n".join(lines))

    async def handle_profit(self, sender: int, message: RawCommand) -> None:
        results = await self._call(self._engine.trade_results)
        if not results:
            await self.reply(sender, "No trades registered.")
            return
        for pair, summary in results.items():
            await self.reply(sender, f"*PAIR*: `{pair}`\n`{summary}`")

    async def handle_buy(self, sender: int, message: RawCommand) -> None:
        await self._order(Side.BUY, sender, message)

    async def handle_sell(self, sender: int, message: RawCommand) -> None:
        await self._order(Side.SELL, sender, message)

    async def _order(self, side: Side, sender: int, message: RawCommand) -> None:
        intent = self._parser.parse(side, message.text)
        request = await self._sizer.size(intent)
        order = await self._call(submit_order, self._engine, request)
        _log.info(
            "order_created",
            extra={"side": side.value, "pair": request.pair, "sender": sender, "order": str(order)},
        )
