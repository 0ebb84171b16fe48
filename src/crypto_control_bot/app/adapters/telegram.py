from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx

from crypto_control_bot.core.types.trading import RawCommand
from crypto_control_bot.utils.exceptions import DeliveryError, TradingError
from crypto_control_bot.utils.http_client import apost
from crypto_control_bot.utils.logging import get_logger
from crypto_control_bot.utils.metrics import inc

_log = get_logger("adapters.telegram")


class TelegramAPIError(TradingError):
    """Bot API call failed (transport error, non-200 or ok=false)."""


@dataclass(frozen=True)
class BotCommand:
    command: str  # without the leading slash
    description: str


def to_raw_command(update: dict[str, Any]) -> Optional[RawCommand]:
    """Extract the text message of an update; None when the update has no message."""
    msg = update.get("message")
    if not isinstance(msg, dict):
        return None
    sender = (msg.get("from") or {}).get("id")
    try:
        sender_id = int(sender) if sender is not None else None
    except (TypeError, ValueError):
        sender_id = None
    return RawCommand(
        text=str(msg.get("text") or ""),
        sender=sender_id,
        update_id=int(update.get("update_id", 0) or 0),
    )


class TelegramTransport:
    """Adapter for the Telegram Bot API."""

    def __init__(
        self,
        *,
        bot_token: str,
        parse_mode: str = "Markdown",
        request_timeout_sec: float = 30.0,
        base_url: str = "https://api.telegram.org",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = (bot_token or "").strip()
        self._parse_mode = parse_mode
        self._timeout = float(request_timeout_sec)
        self._base_url = base_url.rstrip("/")
        self._client = client

    def _endpoint(self, method: str) -> str:
        return f"{self._base_url}/bot{self._token}/{method}"

    async def _call(
        self, method: str, payload: dict[str, Any], *, timeout: float | None = None, retries: int = 2
    ) -> Any:
        try:
            resp = await apost(
                self._endpoint(method),
                json=payload,
                client=self._client,
                timeout=timeout or self._timeout,
                retries=retries,
            )
        except httpx.HTTPError as exc:
            raise TelegramAPIError(f"{method}: {type(exc).__name__}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if resp.status_code != 200 or not data.get("ok"):
            raise TelegramAPIError(
                f"{method}: status={resp.status_code} description={data.get('description', '')}"
            )
        return data.get("result")

    async def send_message(
        self, chat_id: int, text: str, *, reply_markup: dict[str, Any] | None = None
    ) -> None:
        """Raises DeliveryError when the message was not accepted."""
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": str(text or ""),
            "parse_mode": self._parse_mode,
            "disable_web_page_preview": True,
        }
        if reply_markup:
            payload["reply_markup"] = json.dumps(reply_markup)
        try:
            # a timed-out send may already be delivered: never resend
            await self._call("sendMessage", payload, retries=0)
        except TelegramAPIError as exc:
            inc("telegram_send_total", status="err")
            raise DeliveryError(str(exc), recipient=chat_id) from exc
        inc("telegram_send_total", status="ok")

    async def get_updates(self, offset: int, timeout: int) -> list[dict[str, Any]]:
        """Long poll; the HTTP timeout leaves headroom over the server-side wait."""
        result = await self._call(
            "getUpdates",
            {"offset": offset, "timeout": timeout, "allowed_updates": ["message"]},
            timeout=float(timeout) + 10.0,
        )
        return list(result or [])

    async def set_commands(self, commands: Sequence[BotCommand]) -> None:
        await self._call(
            "setMyCommands",
            {"commands": [{"command": c.command, "description": c.description} for c in commands]},
        )

    async def get_commands(self) -> list[BotCommand]:
        result = await self._call("getMyCommands", {})
        return [BotCommand(str(c.get("command", "")), str(c.get("description", ""))) for c in result or []]

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
