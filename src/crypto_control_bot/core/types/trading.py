from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

# Telegram user id of a message sender
OperatorIdentity = int


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class SizingMode(str, Enum):
    ABSOLUTE = "absolute"
    PERCENT_OF_POSITION = "percent_of_position"


class Denomination(str, Enum):
    """Which currency an order amount is expressed in."""

    ASSET = "asset"
    QUOTE = "quote"


class BotRunState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class OrderStatus(str, Enum):
    NEW = "NEW"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    FILLED = "FILLED"
    CANCELED = "CANCELED"
    PENDING_CANCEL = "PENDING_CANCEL"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class RawCommand:
    """One inbound message. `sender` is None when the update carried no user."""

    text: str
    sender: Optional[OperatorIdentity]
    update_id: int = 0

    @property
    def command(self) -> str:
        """'/buy@my_bot BTCUSDT 1' -> 'buy'"""
        head = self.text.strip().split(maxsplit=1)[0] if self.text.strip() else ""
        if not head.startswith("/"):
            return ""
        return head[1:].split("@", 1)[0].lower()


@dataclass(frozen=True)
class ParsedOrderIntent:
    side: Side
    pair: str
    amount: Decimal
    sizing_mode: SizingMode

    def __post_init__(self) -> None:
        if not self.pair:
            raise ValueError("pair must be non-empty")
        if self.amount <= 0:
            raise ValueError("amount must be > 0")


@dataclass(frozen=True)
class PositionSnapshot:
    """Free + locked quantities of both sides of a pair at one point in time."""

    pair: str
    asset_quantity: Decimal
    quote_quantity: Decimal


@dataclass(frozen=True)
class OrderRequest:
    side: Side
    pair: str
    denomination: Denomination
    amount: Decimal


@dataclass(frozen=True)
class Balance:
    asset: str
    free: Decimal = Decimal("0")
    lock: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.free + self.lock


@dataclass(frozen=True)
class Account:
    balances: tuple[Balance, ...] = ()

    def get(self, asset: str) -> Balance:
        asset = asset.upper()
        for b in self.balances:
            if b.asset.upper() == asset:
                return b
        return Balance(asset=asset)

    def balance(self, asset: str, quote: str) -> tuple[Balance, Balance]:
        return self.get(asset), self.get(quote)


@dataclass(frozen=True)
class Order:
    id: int
    pair: str
    side: Side
    type: OrderType
    status: OrderStatus
    quantity: Decimal
    price: Decimal
    exchange_id: str = ""
    extra: dict[str, str] = field(default_factory=dict, compare=False)

    def __str__(self) -> str:
        value = self.quantity * self.price
        return (
            f"[{self.status.value}] {self.side.value} {self.pair} | ID: {self.id}, "
            f"Type: {self.type.value}, {self.quantity:f} x ${self.price:f} (~${value:.0f})"
        )
