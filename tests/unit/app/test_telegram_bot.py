import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio

from conftest import OPERATORS, make_update
from crypto_control_bot.app.adapters.telegram import TelegramAPIError
from crypto_control_bot.app.bus_wiring import attach_notifier
from crypto_control_bot.app.commands import COMMANDS, DEFAULT_MENU
from crypto_control_bot.app.telegram_bot import TelegramControl
from crypto_control_bot.core.events.bus import AsyncEventBus
from crypto_control_bot.core.events.topics import Topics
from crypto_control_bot.core.types.trading import Order, OrderStatus, OrderType, Side
from crypto_control_bot.utils.exceptions import OrderOutcomeError


@pytest_asyncio.fixture
async def bot(transport, dispatcher, notifier, access):
    bus = AsyncEventBus()
    control = TelegramControl(
        transport=transport,
        dispatcher=dispatcher,
        notifier=notifier,
        access=access,
        bus=bus,
        long_poll_sec=1,
        retry_pause_sec=0,
    )
    yield control, bus
    await bus.shutdown()


@pytest.mark.asyncio
async def test_start_registers_commands_and_greets_everyone(bot, transport):
    control, _ = bot
    transport.failing = {OPERATORS[0]}
    await control.start()
    assert transport.registered == list(COMMANDS)
    greeted = [s for s in transport.sent if s.text == "Bot initialized."]
    assert [s.chat_id for s in greeted] == list(OPERATORS[1:])
    assert greeted[0].reply_markup == DEFAULT_MENU


@pytest.mark.asyncio
async def test_poll_filters_strangers_and_advances_offset(bot, transport, engine):
    control, bus = bot
    transport.updates = [[
        make_update("/status", sender=OPERATORS[0], update_id=10),
        make_update("/status", sender=999, update_id=11),
        make_update("/status", sender=None, update_id=12),
        {"update_id": 13, "edited_message": {"text": "/status"}},
    ]]

    accepted = await control.poll_once()
    await bus.drain()

    assert accepted == 1
    assert control.offset == 14
    assert [s.chat_id for s in transport.sent] == [OPERATORS[0]]
    assert len(engine.called("run_state")) == 1

    await control.poll_once()
    assert transport.offsets == [0, 14]


@pytest.mark.asyncio
async def test_commands_from_one_sender_run_in_order(bot, transport, engine):
    control, bus = bot
    transport.updates = [[
        make_update("/start", update_id=1),
        make_update("/status", update_id=2),
        make_update("/stop", update_id=3),
        make_update("/status", update_id=4),
    ]]
    await control.poll_once()
    await bus.drain()
    assert transport.texts_to(OPERATORS[0]) == [
        "Bot started.",
        "Status: `running`",
        "Bot stopped.",
        "Status: `stopped`",
    ]


@pytest.mark.asyncio
async def test_order_failure_is_logged_and_loop_keeps_going(bot, transport, engine):
    control, bus = bot
    engine.fail["submit_market_order_by_quote"] = OrderOutcomeError("BTCUSDT", Decimal("100"), "rejected")
    transport.updates = [[make_update("/buy BTCUSDT 100", update_id=1), make_update("/profit", update_id=2)]]
    await control.poll_once()
    await bus.drain()
    assert transport.texts_to(OPERATORS[0]) == ["No trades registered."]
    assert bus.dlq_size() == 0


@pytest.mark.asyncio
async def test_run_survives_poll_errors(bot, transport):
    control, _ = bot
    calls = 0

    async def flaky_get_updates(offset, timeout):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise TelegramAPIError("getUpdates: status=502")
        if calls > 2:
            raise asyncio.CancelledError
        return []

    transport.get_updates = flaky_get_updates
    with pytest.raises(asyncio.CancelledError):
        await control.run()
    assert calls == 3


@pytest.mark.asyncio
async def test_engine_events_reach_every_operator(bot, transport, notifier):
    control, bus = bot
    attach_notifier(bus, notifier)
    order = Order(1, "BTCUSDT", Side.SELL, OrderType.MARKET, OrderStatus.NEW, Decimal("1"), Decimal("100"))

    await control.on_order_event(order)
    await bus.publish(Topics.ENGINE_ERROR, OrderOutcomeError("BTCUSDT", Decimal("1"), "rejected"))
    await bus.drain()

    for op in OPERATORS:
        texts = transport.texts_to(op)
        assert texts[0].startswith("🆕 NEW ORDER - BTCUSDT\n-----\n")
        assert texts[1].startswith("🛑 ERROR\n-----\nPair: BTCUSDT")
