"""Sliding-window async rate limiter for completion requests."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable
from typing import Deque


class RateLimiter:
    def __init__(
        self,
        requests_per_minute: int = 60,
        on_waiting: Callable[[int, int], None] | None = None,
        window: float = 60.0,
    ):
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        self._limit = requests_per_minute
        self._window = window
        self._min_interval = window / requests_per_minute
        self._calls: Deque[float] = deque()
        self._last_request_time = 0.0
        self._on_waiting = on_waiting
        self._last_wait_log = 0.0
        self._wait_log_interval = 30.0
        self._lock = asyncio.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    async def acquire(self) -> None:
        # Serialised so concurrent callers are spaced out rather than bursting
        async with self._lock:
            while True:
                now = time.monotonic()
                while self._calls and (now - self._calls[0]) > self._window:
                    self._calls.popleft()
                if len(self._calls) < self._limit:
                    if self._last_request_time > 0 and (now - self._last_request_time) < self._min_interval:
                        await asyncio.sleep(self._min_interval - (now - self._last_request_time))
                        now = time.monotonic()
                    self._calls.append(now)
                    self._last_request_time = now
                    return
                if self._on_waiting and (now - self._last_wait_log) >= self._wait_log_interval:
                    self._on_waiting(len(self._calls), self._limit)
                    self._last_wait_log = now
                await asyncio.sleep(0.05)
