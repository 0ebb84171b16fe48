from __future__ import annotations

import asyncio
import random
from typing import Any

import httpx

from crypto_control_bot.utils.logging import get_logger

_log = get_logger("utils.http_client")

_RETRY_STATUS = (408, 425, 429, 500, 502, 503, 504)


def _mk_timeout(t: float | httpx.Timeout | None) -> httpx.Timeout:
    """Split a single total into connect/read/write/pool phases."""
    if isinstance(t, httpx.Timeout):
        return t
    total = float(t or 30.0)
    return httpx.Timeout(
        connect=min(10.0, total / 3),
        read=total,
        write=min(10.0, total / 2),
        pool=min(5.0, total / 2),
    )


def _should_retry_response(resp: httpx.Response) -> bool:
    if resp.status_code in _RETRY_STATUS:
        return True
    return 520 <= resp.status_code <= 527


def _retry_after_delay(resp: httpx.Response) -> float | None:
    """Retry-After in seconds (HTTP dates are ignored)."""
    ra = resp.headers.get("Retry-After")
    if not ra:
        return None
    try:
        return max(0.0, float(ra))
    except ValueError:
        return None


def _backoff(attempt: int, *, base: float, cap: float) -> float:
    return min(cap, base * (2 ** attempt)) * (0.5 + random.random())


async def arequest(
    method: str,
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float | httpx.Timeout | None = None,
    retries: int = 2,
    backoff_base: float = 0.25,
    backoff_cap: float = 3.0,
    **kwargs: Any,
) -> httpx.Response:
    """
    One HTTP call with retries on transport errors and 408/429/5xx.

    `client` lets callers share a connection pool (and lets tests plug in
    httpx.MockTransport); without it a short-lived client is used.
    The last response is returned as-is; the last transport error is raised.
    """
    own = client is None
    cli = client or httpx.AsyncClient(timeout=_mk_timeout(timeout))
    try:
        attempt = 0
        while True:
            try:
                resp = await cli.request(method, url, timeout=_mk_timeout(timeout), **kwargs)
            except httpx.TransportError:
                if attempt >= retries:
                    raise
                _log.warning("http_transport_retry", extra={"method": method, "attempt": attempt + 1})
                await asyncio.sleep(_backoff(attempt, base=backoff_base, cap=backoff_cap))
                attempt += 1
                continue

            if _should_retry_response(resp) and attempt < retries:
                delay = _retry_after_delay(resp)
                if delay is None:
                    delay = _backoff(attempt, base=backoff_base, cap=backoff_cap)
                _log.warning(
                    "http_status_retry",
                    extra={"method": method, "status": resp.status_code, "attempt": attempt + 1},
                )
                await asyncio.sleep(delay)
                attempt += 1
                continue
            return resp
    finally:
        if own:
            await cli.aclose()


async def apost(url: str, **kwargs: Any) -> httpx.Response:
    return await arequest("POST", url, **kwargs)
