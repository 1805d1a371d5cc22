"""In-process channel carrying restart requests to the supervisor."""

import asyncio

from loguru import logger

from foreman.bus.events import RestartRequest


class RestartQueue:
    """
    Single-consumer queue of restart requests.

    Hooks and the mini-goal dispatcher publish; only the supervisor
    consumes, so restart state is never mutated from more than one place.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[RestartRequest] = asyncio.Queue()

    def publish(self, request: RestartRequest) -> None:
        """Enqueue a request without waiting (callable from sync code)."""
        self._queue.put_nowait(request)
        logger.info(f"Restart requested: reason={request.reason.value}")

    async def consume(self) -> RestartRequest:
        return await self._queue.get()

    @property
    def size(self) -> int:
        return self._queue.qsize()
