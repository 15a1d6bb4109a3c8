"""
In-process bus, on top of asyncio.
"""

import asyncio
import copy
import logging
from typing import Any

from wiki.bus.types import (
    BusBase,
    DeliveryOptions,
    FailureCode,
    Handler,
    Message,
    ReplyException,
)

logger = logging.getLogger(__name__)


class LocalBus(BusBase):
    """
    Point to point request / reply between tasks of the same event loop.

    Each request gets its own future, and its handler runs as its own task, so
    many requests can be in flight at once.
    """

    def __init__(self):
        self._handlers: dict[str, Handler] = {}
        self._tasks: dict[asyncio.Task, Message] = {}

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} addresses={list(self._handlers.keys())}>"

    def register(self, address: str, handler: Handler) -> None:
        if address in self._handlers:
            raise ValueError(f"Address {address} already has a handler")
        self._handlers[address] = handler
        logger.info("Registered handler at address=%s", address)

    def unregister(self, address: str) -> None:
        if self._handlers.pop(address, None) is not None:
            logger.info("Unregistered handler at address=%s", address)

    def has_handler(self, address: str) -> bool:
        return address in self._handlers

    async def request(
        self, address: str, body: Any, options: DeliveryOptions | None = None
    ) -> Any:
        options = options or DeliveryOptions()
        handler = self._handlers.get(address)
        if handler is None:
            logger.error(
                "No handler for address=%s. Available addresses: %s",
                address,
                list(self._handlers.keys()),
            )
            raise ReplyException(
                FailureCode.NO_HANDLERS, f"No handlers for address {address}"
            )

        future = asyncio.get_running_loop().create_future()
        message = Message(
            address=address,
            body=copy.deepcopy(body),
            headers=dict(options.headers),
            future=future,
        )
        task = asyncio.create_task(self._dispatch(handler, message))
        self._tasks[task] = message
        task.add_done_callback(lambda done: self._tasks.pop(done, None))

        if options.timeout is None:
            return await future
        try:
            return await asyncio.wait_for(future, options.timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Timeout waiting for reply from address=%s after %ss",
                address,
                options.timeout,
            )
            raise ReplyException(
                FailureCode.TIMEOUT,
                f"Timed out after {options.timeout}s waiting for {address}",
            ) from None

    async def _dispatch(self, handler: Handler, message: Message) -> None:
        try:
            await handler(message)
        except asyncio.CancelledError:
            message.fail(FailureCode.TRANSPORT, "Bus closed")
            raise
        except Exception as e:
            logger.exception("Handler at address=%s failed", message.address)
            message.fail(FailureCode.TRANSPORT, str(e))
            return
        if not message.replied:
            logger.error("Handler at address=%s did not reply", message.address)
            message.fail(FailureCode.TRANSPORT, "No reply")

    async def close(self) -> None:
        """
        Stop all handlers. Requests still waiting for an answer fail.
        """
        in_flight = dict(self._tasks)
        for task in in_flight:
            task.cancel()
        await asyncio.gather(*in_flight, return_exceptions=True)
        # a task cancelled before its first step never reaches its handler
        for message in in_flight.values():
            if not message.replied:
                message.fail(FailureCode.TRANSPORT, "Bus closed")
        self._handlers.clear()
        if in_flight:
            logger.info("Closed bus, cancelled %d requests in flight", len(in_flight))
