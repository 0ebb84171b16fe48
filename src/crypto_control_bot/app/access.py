from __future__ import annotations

from typing import Iterable, Optional

from crypto_control_bot.core.types.trading import OperatorIdentity, RawCommand
from crypto_control_bot.utils.exceptions import AuthorizationError
from crypto_control_bot.utils.logging import get_logger
from crypto_control_bot.utils.metrics import inc

_log = get_logger("app.access")


class AccessFilter:
    """
    Operator allow-list. Membership is the only authorization rule: an empty
    list admits nobody. Rejected senders never get a reply.
    """

    def __init__(self, allowed: Iterable[OperatorIdentity]) -> None:
        self._allowed: frozenset[int] = frozenset(int(x) for x in allowed)

    @property
    def allowed(self) -> frozenset[int]:
        return self._allowed

    def is_authorized(self, identity: Optional[OperatorIdentity]) -> bool:
        return identity is not None and identity in self._allowed

    def require(self, message: Optional[RawCommand]) -> OperatorIdentity:
        """Return the sender id or raise AuthorizationError (already logged)."""
        if message is None or message.sender is None:
            inc("access_rejected_total", reason="no_sender")
            _log.error("access_no_sender", extra={"update_id": getattr(message, "update_id", None)})
            raise AuthorizationError("message has no sender")

        if not self.is_authorized(message.sender):
            inc("access_rejected_total", reason="not_allowed")
            _log.error(
                "access_rejected",
                extra={"sender": message.sender, "update_id": message.update_id, "text": message.text[:64]},
            )
            raise AuthorizationError("sender not allowed", sender=message.sender)

        return message.sender

    def accept(self, message: Optional[RawCommand]) -> bool:
        try:
            self.require(message)
        except AuthorizationError:
            return False
        return True
