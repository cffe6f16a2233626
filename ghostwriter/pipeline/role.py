"""
Role runtime and request/response client.

A Role runs a handler over an inbox of events in worker tasks. Handlers put
responses on the role's single output queue; handler failures land on the
role's error queue tagged with the id of the event being handled.

A RoleClient sits on top of a Role and turns that stream into
request/future pairs: submit() returns a future that resolves with the
response whose origin is the submitted event, or fails with the role's error.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from ghostwriter.errors import ProtocolError, RoleError, RoleNotRunningError
from ghostwriter.pipeline.events import PipelineEvent
from ghostwriter.utils.logging_config import get_logger

logger = get_logger(__name__)

Handler = Callable[[PipelineEvent, "asyncio.Queue[PipelineEvent]"], Awaitable[None]]


class Role:
    """Runs one handler over submitted events."""

    def __init__(self, name: str, handler: Handler, concurrency: int = 1):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.name = name
        self._handler = handler
        self._concurrency = concurrency
        self._inbox: asyncio.Queue[PipelineEvent] = asyncio.Queue()
        self._output: asyncio.Queue[PipelineEvent] = asyncio.Queue()
        self._errors: asyncio.Queue[RoleError] = asyncio.Queue()
        self._workers: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def output(self) -> asyncio.Queue[PipelineEvent]:
        return self._output

    @property
    def errors(self) -> asyncio.Queue[RoleError]:
        return self._errors

    async def start(self) -> None:
        if self.running:
            return
        self._inbox = asyncio.Queue()
        self._output = asyncio.Queue()
        self._errors = asyncio.Queue()
        self._workers = [
            asyncio.create_task(self._work(), name=f"{self.name}-worker-{i}")
            for i in range(self._concurrency)
        ]
        logger.debug(f"Role {self.name} started with {self._concurrency} worker(s)")

    async def stop(self) -> None:
        """Cancel the workers and wait for them to finish."""
        workers, self._workers = self._workers, []
        for worker in workers:
            worker.cancel()
        for worker in workers:
            try:
                await worker
            except asyncio.CancelledError:
                pass
        logger.debug(f"Role {self.name} stopped")

    async def submit(self, event: PipelineEvent) -> None:
        if not self.running:
            raise RoleNotRunningError(f"role {self.name} is not running")
        await self._inbox.put(event)

    async def _work(self) -> None:
        while True:
            event = await self._inbox.get()
            try:
                await self._handler(event, self._output)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.debug(f"Role {self.name} failed on event {event.id}: {exc}")
                self._errors.put_nowait(RoleError(self.name, exc, event_id=event.id))
            finally:
                self._inbox.task_done()


class RoleClient:
    """Correlates a role's responses with the requests that caused them."""

    def __init__(self, role: Role):
        self.role = role
        self._pending: Dict[str, asyncio.Future] = {}
        self._dispatchers: List[asyncio.Task] = []

    @property
    def name(self) -> str:
        return self.role.name

    async def start(self) -> None:
        await self.role.start()
        self._dispatchers = [
            asyncio.create_task(self._route_responses(), name=f"{self.name}-responses"),
            asyncio.create_task(self._route_errors(), name=f"{self.name}-errors"),
        ]

    async def stop(self) -> None:
        """Stop routing, fail whatever is still pending, and stop the role."""
        dispatchers, self._dispatchers = self._dispatchers, []
        for task in dispatchers:
            task.cancel()
        for task in dispatchers:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._fail_all(RoleNotRunningError(f"role {self.name} stopped"))
        await self.role.stop()

    async def submit(self, event: PipelineEvent) -> asyncio.Future:
        """Send event to the role and return a future for its response."""
        future = asyncio.get_running_loop().create_future()
        self._pending[event.id] = future
        future.add_done_callback(lambda _: self._pending.pop(event.id, None))
        try:
            await self.role.submit(event)
        except BaseException:
            self._pending.pop(event.id, None)
            future.cancel()
            raise
        return future

    async def request(self, event: PipelineEvent) -> PipelineEvent:
        """Submit event and wait for its response."""
        return await (await self.submit(event))

    def _fail_all(self, error: BaseException) -> None:
        for future in list(self._pending.values()):
            if not future.done():
                future.set_exception(error)

    async def _route_responses(self) -> None:
        while True:
            response = await self.role.output.get()
            origin_id = response.origin_id
            future = self._pending.get(origin_id) if origin_id else None
            if future is None:
                self._fail_all(
                    ProtocolError(
                        f"{self.name} sent {type(response).__name__} {response.id} "
                        f"answering unknown request {origin_id!r}"
                    )
                )
                continue
            if not future.done():
                future.set_result(response)

    async def _route_errors(self) -> None:
        while True:
            error = await self.role.errors.get()
            future = self._pending.get(error.event_id) if error.event_id else None
            if future is None:
                self._fail_all(error)
                continue
            if not future.done():
                future.set_exception(error)
