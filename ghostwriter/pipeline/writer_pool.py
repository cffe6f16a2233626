"""Pool of writer roles with a per-run concurrency limit."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Sequence, Tuple

from ghostwriter.pipeline.role import RoleClient


class WriterPool:
    """
    Hands out writers round-robin by section index.

    A slot is both the writer for a section and a permit from the run's
    limiter, so no more than ``limit`` sections are ever being written at once
    whatever the number of writers.
    """

    def __init__(self, writers: Sequence[RoleClient]):
        if not writers:
            raise ValueError("writer pool needs at least one writer")
        self.writers: List[RoleClient] = list(writers)
        self._limiter: asyncio.Semaphore | None = None
        self._limit = 0
        self._in_flight = 0
        self.peak_in_flight = 0

    def __len__(self) -> int:
        return len(self.writers)

    def configure(self, limit: int) -> None:
        """Set the concurrency limit for the next run."""
        if limit < 1:
            raise ValueError("concurrency limit must be at least 1")
        self._limiter = asyncio.Semaphore(limit)
        self._limit = limit
        self._in_flight = 0
        self.peak_in_flight = 0

    @property
    def limit(self) -> int:
        return self._limit

    def writer_for(self, index: int) -> Tuple[RoleClient, str]:
        return self.writers[index % len(self.writers)], f"writer_{index}"

    @asynccontextmanager
    async def slot(self, index: int) -> AsyncIterator[Tuple[RoleClient, str]]:
        if self._limiter is None:
            raise RuntimeError("writer pool used before configure()")
        async with self._limiter:
            self._in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self._in_flight)
            try:
                yield self.writer_for(index)
            finally:
                self._in_flight -= 1
