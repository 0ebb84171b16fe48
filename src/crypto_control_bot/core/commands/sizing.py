from __future__ import annotations

from typing import Optional

from crypto_control_bot.core.engine.base import IEngine
from crypto_control_bot.core.types.trading import (
    Denomination,
    Order,
    OrderRequest,
    ParsedOrderIntent,
    PositionSnapshot,
    Side,
    SizingMode,
)
from crypto_control_bot.utils.decimal import dec, pct_of
from crypto_control_bot.utils.exceptions import EngineUnavailableError, TradingError
from crypto_control_bot.utils.logging import get_logger

_log = get_logger("commands.sizing")


def resolve_order(intent: ParsedOrderIntent, position: Optional[PositionSnapshot] = None) -> OrderRequest:
    """
    Turn an intent into a concrete order.

        buy  N   -> spend N quote
        buy  N%  -> spend N% of the quote balance
        sell N   -> sell enough asset to receive N quote
        sell N%  -> sell N% of the asset balance (asset-denominated)

    Absolute amounts are always quote-denominated; percent amounts are taken
    from the side of the position being spent. `position` is required for
    percent sizing.
    """
    if intent.sizing_mode is SizingMode.ABSOLUTE:
        return OrderRequest(intent.side, intent.pair, Denomination.QUOTE, intent.amount)

    if position is None:
        raise ValueError("percent sizing needs a position snapshot")

    if intent.side is Side.BUY:
        return OrderRequest(Side.BUY, intent.pair, Denomination.QUOTE, pct_of(position.quote_quantity, intent.amount))
    return OrderRequest(Side.SELL, intent.pair, Denomination.ASSET, pct_of(position.asset_quantity, intent.amount))


class OrderSizer:
    """Resolves intents against a position fetched right before sizing."""

    def __init__(self, engine: IEngine) -> None:
        self._engine = engine

    async def snapshot(self, pair: str) -> PositionSnapshot:
        try:
            asset_qty, quote_qty = await self._engine.fetch_position(pair)
        except TradingError:
            raise
        except Exception as exc:
            raise EngineUnavailableError(f"position lookup failed for {pair}: {exc}") from exc
        return PositionSnapshot(pair=pair, asset_quantity=dec(asset_qty), quote_quantity=dec(quote_qty))

    async def size(self, intent: ParsedOrderIntent) -> OrderRequest:
        position = None
        if intent.sizing_mode is SizingMode.PERCENT_OF_POSITION:
            position = await self.snapshot(intent.pair)
        request = resolve_order(intent, position)
        _log.info(
            "order_sized",
            extra={
                "pair": request.pair,
                "side": request.side.value,
                "denomination": request.denomination.value,
                "amount": str(request.amount),
            },
        )
        return request


async def submit_order(engine: IEngine, request: OrderRequest) -> Order:
    """Route by denomination. OrderOutcomeError from the engine propagates."""
    if request.denomination is Denomination.QUOTE:
        return await engine.submit_market_order_by_quote(request.side, request.pair, request.amount)
    return await engine.submit_market_order_by_asset(request.side, request.pair, request.amount)
