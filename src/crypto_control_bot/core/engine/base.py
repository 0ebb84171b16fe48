from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Protocol

from crypto_control_bot.core.types.trading import Account, BotRunState, Order, Side


class IEngine(Protocol):
    """
    The trading engine as seen from the control plane.

    Lookups raise on failure (any exception; the dispatcher reports it as
    EngineUnavailableError). Order submissions raise OrderOutcomeError.
    Run state is never cached on this side: every call goes to the engine.
    """

    async def fetch_account(self) -> Account: ...

    async def fetch_position(self, pair: str) -> tuple[Decimal, Decimal]:
        """(asset quantity, quote quantity), free + locked."""
        ...

    async def fetch_last_quote(self, pair: str) -> Decimal: ...

    async def submit_market_order_by_quote(self, side: Side, pair: str, quote_amount: Decimal) -> Order: ...

    async def submit_market_order_by_asset(self, side: Side, pair: str, asset_amount: Decimal) -> Order: ...

    async def run_state(self) -> BotRunState: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def trade_results(self) -> Mapping[str, Any]:
        """pair -> summary object; rendered with str()."""
        ...
