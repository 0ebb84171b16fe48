from __future__ import annotations

from decimal import Decimal

__all__ = [
    "AuthorizationError",
    "ConfigError",
    "DeliveryError",
    "EngineUnavailableError",
    "OrderOutcomeError",
    "ParseError",
    "TradingError",
    "ValidationError",
]


class TradingError(Exception):
    """Base domain error for the control plane."""


class ConfigError(TradingError):
    """Raised when settings are incomplete or invalid at startup."""


class AuthorizationError(TradingError):
    """Sender is missing or not on the operator allow-list. Never replied to."""

    def __init__(self, message: str, *, sender: int | None = None) -> None:
        super().__init__(message)
        self.sender = sender


class ParseError(TradingError):
    """Command text does not match the grammar. `usage` is replied to the sender."""

    def __init__(self, message: str, *, usage: str = "") -> None:
        super().__init__(message)
        self.usage = usage


class ValidationError(TradingError):
    """Command parsed but a value is out of range (e.g. non-positive amount)."""


class EngineUnavailableError(TradingError):
    """A lookup or action against the trading engine failed."""


class OrderOutcomeError(TradingError):
    """Order execution failed; carries the pair and quantity the operator needs to act."""

    def __init__(self, pair: str, quantity: Decimal, cause: BaseException | str) -> None:
        super().__init__(f"order failed for {pair} ({quantity}): {cause}")
        self.pair = pair
        self.quantity = quantity
        self.cause = cause


class DeliveryError(TradingError):
    """Outbound message could not be delivered. Logged only."""

    def __init__(self, message: str, *, recipient: int | None = None) -> None:
        super().__init__(message)
        self.recipient = recipient
