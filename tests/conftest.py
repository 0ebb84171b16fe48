from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import pytest

from crypto_control_bot.app.access import AccessFilter
from crypto_control_bot.app.adapters.telegram import BotCommand
from crypto_control_bot.app.commands import COMMANDS, CommandDispatcher
from crypto_control_bot.app.notifier import Notifier
from crypto_control_bot.core.types.trading import (
    Account,
    Balance,
    BotRunState,
    Order,
    OrderStatus,
    OrderType,
    RawCommand,
    Side,
)
from crypto_control_bot.utils.exceptions import DeliveryError

OPERATORS = (111, 222, 333)


class FakeEngine:
    """
    In-memory engine. `fail` maps a method name to the exception it raises;
    `calls` records every call as (name, args).
    """

    def __init__(self) -> None:
        self.state = BotRunState.STOPPED
        self.account = Account(
            balances=(
                Balance("BTC", Decimal("1.0"), Decimal("0.5")),
                Balance("ETH", Decimal("2")),
                Balance("USDT", Decimal("1000")),
            )
        )
        self.positions: dict[str, tuple[Decimal, Decimal]] = {
            "BTCUSDT": (Decimal("1.5"), Decimal("1000")),
        }
        self.quotes: dict[str, Decimal] = {"BTCUSDT": Decimal("20000"), "ETHUSDT": Decimal("1500")}
        self.results: dict[str, Any] = {}
        self.fail: dict[str, BaseException] = {}
        self.calls: list[tuple[str, tuple]] = []
        self._next_id = 1

    def _enter(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.fail:
            raise self.fail[name]

    def called(self, name: str) -> list[tuple]:
        return [args for n, args in self.calls if n == name]

    async def fetch_account(self) -> Account:
        self._enter("fetch_account")
        return self.account

    async def fetch_position(self, pair: str) -> tuple[Decimal, Decimal]:
        self._enter("fetch_position", pair)
        return self.positions.get(pair, (Decimal("0"), Decimal("0")))

    async def fetch_last_quote(self, pair: str) -> Decimal:
        self._enter("fetch_last_quote", pair)
        return self.quotes[pair]

    def _order(self, side: Side, pair: str, qty: Decimal) -> Order:
        order = Order(
            id=self._next_id,
            pair=pair,
            side=side,
            type=OrderType.MARKET,
            status=OrderStatus.FILLED,
            quantity=qty,
            price=self.quotes.get(pair, Decimal("1")),
        )
        self._next_id += 1
        return order

    async def submit_market_order_by_quote(self, side: Side, pair: str, quote_amount: Decimal) -> Order:
        self._enter("submit_market_order_by_quote", side, pair, quote_amount)
        return self._order(side, pair, quote_amount / self.quotes.get(pair, Decimal("1")))

    async def submit_market_order_by_asset(self, side: Side, pair: str, asset_amount: Decimal) -> Order:
        self._enter("submit_market_order_by_asset", side, pair, asset_amount)
        return self._order(side, pair, asset_amount)

    async def run_state(self) -> BotRunState:
        self._enter("run_state")
        return self.state

    async def start(self) -> None:
        self._enter("start")
        self.state = BotRunState.RUNNING

    async def stop(self) -> None:
        self._enter("stop")
        self.state = BotRunState.STOPPED

    async def trade_results(self) -> dict[str, Any]:
        self._enter("trade_results")
        return self.results


@dataclass
class Sent:
    chat_id: int
    text: str
    reply_markup: dict[str, Any] | None = None


@dataclass
class RecordingTransport:
    """Messenger double: records sends; chat ids in `failing` raise DeliveryError."""

    failing: set[int] = field(default_factory=set)
    sent: list[Sent] = field(default_factory=list)
    commands: list[BotCommand] = field(default_factory=lambda: list(COMMANDS))
    commands_error: BaseException | None = None
    registered: list[BotCommand] = field(default_factory=list)
    updates: list[list[dict[str, Any]]] = field(default_factory=list)
    offsets: list[int] = field(default_factory=list)

    async def send_message(self, chat_id: int, text: str, *, reply_markup: dict[str, Any] | None = None) -> None:
        if chat_id in self.failing:
            raise DeliveryError("chat not found", recipient=chat_id)
        self.sent.append(Sent(chat_id, text, reply_markup))

    async def get_commands(self) -> list[BotCommand]:
        if self.commands_error is not None:
            raise self.commands_error
        return list(self.commands)

    async def set_commands(self, commands) -> None:
        self.registered = list(commands)

    async def get_updates(self, offset: int, timeout: int) -> list[dict[str, Any]]:
        self.offsets.append(offset)
        return self.updates.pop(0) if self.updates else []

    def texts_to(self, chat_id: int) -> list[str]:
        return [s.text for s in self.sent if s.chat_id == chat_id]


def make_message(text: str, sender: int | None = OPERATORS[0], update_id: int = 1) -> RawCommand:
    return RawCommand(text=text, sender=sender, update_id=update_id)


def make_update(text: str, sender: int | None = OPERATORS[0], update_id: int = 1) -> dict[str, Any]:
    msg: dict[str, Any] = {"message_id": update_id, "text": text, "chat": {"id": sender or 0}}
    if sender is not None:
        msg["from"] = {"id": sender, "is_bot": False}
    return {"update_id": update_id, "message": msg}


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def access() -> AccessFilter:
    return AccessFilter(OPERATORS)


@pytest.fixture
def notifier(transport: RecordingTransport) -> Notifier:
    return Notifier(transport, OPERATORS)


@pytest.fixture
def dispatcher(engine, transport, notifier, access) -> CommandDispatcher:
    return CommandDispatcher(
        engine=engine,
        transport=transport,
        notifier=notifier,
        access=access,
        pairs=["BTCUSDT", "ETHUSDT"],
    )
