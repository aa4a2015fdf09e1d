"""
Stream Relay Module

Couples one upstream read loop to one downstream response body. The
producer (upstream read + translation) runs in its own task and writes into
a bounded channel; the downstream response iterates the channel. Either side
going away stops the other.
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional

from chatbridge.providers.base import StreamSignal

logger = logging.getLogger(__name__)


class _End:
    pass


class _Failure:
    def __init__(self, exc: Exception):
        self.exc = exc


_END = _End()


class DownstreamChannel:
    """
    Bounded channel from the producer to the downstream response

    send() reports StreamSignal.STOP once the downstream side has closed the
    channel instead of raising, so the producer can end its read loop.
    """

    def __init__(self, maxsize: int = 64):
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, data: bytes) -> StreamSignal:
        if self._closed:
            return StreamSignal.STOP
        await self._queue.put(data)
        return StreamSignal.STOP if self._closed else StreamSignal.CONTINUE

    async def send_all(self, items: list[bytes]) -> StreamSignal:
        for data in items:
            if await self.send(data) is StreamSignal.STOP:
                return StreamSignal.STOP
        return StreamSignal.STOP if self._closed else StreamSignal.CONTINUE

    async def _put(self, item: Any) -> None:
        if not self._closed:
            await self._queue.put(item)

    async def receive(self) -> Any:
        return await self._queue.get()

    def close(self) -> None:
        self._closed = True


Producer = Callable[[DownstreamChannel], Awaitable[Any]]
ErrorRenderer = Callable[[Exception], list[bytes]]


class StreamRelay:
    """
    Stream Relay

    Usage:
        relay = StreamRelay(produce, on_error)
        await relay.open()          # raises if the upstream fails before any output
        return StreamingResponse(relay.iter_bytes(), ...)

    Failures after the first output are rendered by on_error into terminal
    downstream events. Client disconnects are logged at INFO and cancel the
    producer, which closes the upstream connection.
    """

    def __init__(self, produce: Producer, on_error: ErrorRenderer, name: str = "stream"):
        self._produce = produce
        self._on_error = on_error
        self.name = name
        self._channel = DownstreamChannel()
        self._task: Optional[asyncio.Task] = None
        self._first: Any = None

    async def _run(self) -> None:
        try:
            await self._produce(self._channel)
        except Exception as e:
            await self._channel._put(_Failure(e))
            return
        await self._channel._put(_END)

    async def open(self) -> None:
        """Start the producer and wait for its first output"""
        self._task = asyncio.create_task(self._run())
        try:
            first = await self._channel.receive()
        except BaseException:
            await self.aclose()
            raise
        if isinstance(first, _Failure):
            await self.aclose()
            raise first.exc
        self._first = first

    async def iter_bytes(self) -> AsyncGenerator[bytes, None]:
        item = self._first
        try:
            while not isinstance(item, _End):
                if isinstance(item, _Failure):
                    logger.warning("%s failed after output started: %s", self.name, item.exc)
                    for data in self._on_error(item.exc):
                        yield data
                    break
                if item is not None:
                    yield item
                item = await self._channel.receive()
        except (asyncio.CancelledError, GeneratorExit):
            logger.info("%s: client disconnected, stopping upstream read", self.name)
            raise
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Close the channel and stop the producer"""
        self._channel.close()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait([self._task])
