"""
In-process event bus.

Events published under the same (topic, key) form a lane: one queue drained
by one worker task, so they are handled one at a time in publish order.
Different lanes run concurrently. Inbound commands use the sender id as key.
A handler that keeps failing after `max_attempts` leaves a DeadLetter behind
and the lane moves on.
"""
from __future__ import annotations

import asyncio
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from crypto_control_bot.utils.logging import get_logger
from crypto_control_bot.utils.metrics import inc

Handler = Callable[[Any], Awaitable[None]]

_log = get_logger("events.bus")


@dataclass(frozen=True)
class DeadLetter:
    topic: str
    key: Optional[str]
    payload: Any
    error: str
    attempts: int
    ts: float = field(default_factory=time.time)


@dataclass
class _Lane:
    topic: str
    key: Optional[str]
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    worker: Optional[asyncio.Task] = None


class AsyncEventBus:
    def __init__(
        self,
        *,
        max_attempts: int = 1,
        backoff_base_ms: int = 250,
        backoff_factor: float = 2.0,
        dead_letter_limit: int = 1000,
    ) -> None:
        # 1 = no retries; commands and order notifications are never replayed
        self.max_attempts = max(1, int(max_attempts))
        self.backoff_base_ms = backoff_base_ms
        self.backoff_factor = backoff_factor
        self._handlers: defaultdict[str, list[Handler]] = defaultdict(list)
        self._lanes: dict[tuple[str, Optional[str]], _Lane] = {}
        # oldest dead letters are dropped once the limit is reached
        self._dead: deque[DeadLetter] = deque(maxlen=max(1, int(dead_letter_limit)))

    def subscribe(self, topic: str, handler: Handler) -> None:
        self._handlers[topic].append(handler)

    async def publish(self, topic: str, payload: Any, *, key: Optional[str] = None) -> None:
        inc("events_published_total", topic=topic)
        lane = self._lanes.get((topic, key))
        if lane is None:
            lane = _Lane(topic, key)
            lane.worker = asyncio.create_task(self._drain_lane(lane), name=f"bus:{topic}:{key or '-'}")
            self._lanes[(topic, key)] = lane
        await lane.queue.put(payload)

    async def drain(self) -> None:
        """Block until every event published so far has been handled."""
        for lane in list(self._lanes.values()):
            await lane.queue.join()

    async def shutdown(self) -> None:
        workers = [lane.worker for lane in self._lanes.values() if lane.worker is not None]
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._lanes.clear()

    def dlq_size(self) -> int:
        return len(self._dead)

    def get_dlq(self) -> list[DeadLetter]:
        return list(self._dead)

    async def _drain_lane(self, lane: _Lane) -> None:
        while True:
            payload = await lane.queue.get()
            try:
                for handler in tuple(self._handlers.get(lane.topic, ())):
                    await self._deliver(lane, handler, payload)
            finally:
                lane.queue.task_done()

    async def _deliver(self, lane: _Lane, handler: Handler, payload: Any) -> None:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await handler(payload)
            except Exception as exc:  # noqa: BLE001
                if attempt < self.max_attempts:
                    delay_ms = self.backoff_base_ms * self.backoff_factor ** (attempt - 1)
                    await asyncio.sleep(delay_ms / 1000.0)
                    continue
                self._dead.append(DeadLetter(lane.topic, lane.key, payload, str(exc), attempt))
                inc("events_handled_total", topic=lane.topic, status="dead")
                _log.error(
                    "event_handler_failed",
                    extra={"topic": lane.topic, "key": lane.key, "attempts": attempt},
                    exc_info=True,
                )
            else:
                inc("events_handled_total", topic=lane.topic, status="ok")
                return
