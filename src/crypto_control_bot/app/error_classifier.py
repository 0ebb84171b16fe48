from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from crypto_control_bot.utils.exceptions import (
    AuthorizationError,
    DeliveryError,
    EngineUnavailableError,
    OrderOutcomeError,
    ParseError,
    ValidationError,
)

ERROR_TITLE = "🛑 ERROR"


class Audience(str, Enum):
    SENDER = "sender"          # usage mistakes: reply to the requester only
    OPERATORS = "operators"    # system faults: every operator must know
    NONE = "none"              # log only


@dataclass(frozen=True)
class Classification:
    kind: str
    audience: Audience
    text: str


class ErrorClassifier:
    """Maps an exception to the message operators see and who sees it."""

    def classify(self, exc: BaseException) -> Classification:
        if isinstance(exc, ParseError):
            return Classification("parse", Audience.SENDER, exc.usage or str(exc))
        if isinstance(exc, ValidationError):
            return Classification("validation", Audience.SENDER, str(exc))
        if isinstance(exc, AuthorizationError):
            return Classification("authorization", Audience.NONE, str(exc))
        if isinstance(exc, DeliveryError):
            return Classification("delivery", Audience.NONE, str(exc))
        if isinstance(exc, OrderOutcomeError):
            return Classification("order", Audience.OPERATORS, self.format_order_error(exc))

        kind = "engine" if isinstance(exc, EngineUnavailableError) else "internal"
        return Classification(kind, Audience.OPERATORS, f"{ERROR_TITLE}\n-----\n{exc}")

    @staticmethod
    def format_order_error(exc: OrderOutcomeError) -> str:
        return (
            f"{ERROR_TITLE}\n"
            "-----\n"
            f"Pair: {exc.pair}\n"
            f"Quantity: {exc.quantity:.4f}\n"
            "-----\n"
            f"{exc.cause}"
        )
