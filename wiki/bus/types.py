"""
Types for the request / reply bus.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

ACTION_HEADER = "action"


class FailureCode(enum.IntEnum):
    """
    Why a request failed. The first three are set by the service router,
    the rest by the transport.
    """

    NO_ACTION_SPECIFIED = 0
    BAD_ACTION = 1
    DB_ERROR = 2
    NO_HANDLERS = 100
    TIMEOUT = 101
    TRANSPORT = 102


class ReplyException(Exception):
    """
    The failure a requester gets instead of a reply.
    """

    def __init__(self, failure_code: int, message: str):
        super().__init__(message)
        self.failure_code = failure_code
        self.message = message

    def __repr__(self) -> str:
        return f"<ReplyException failure_code={self.failure_code} message={self.message!r}>"

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the failure to a JSON-serializable dictionary.
        """
        return {"failure_code": int(self.failure_code), "message": self.message}


@dataclass
class DeliveryOptions:
    """
    Per request options: headers, and an optional timeout in seconds.
    """

    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None


@dataclass
class Message:
    """
    A request as seen by its handler. Exactly one of `reply` or `fail` is delivered.
    """

    address: str
    body: Any
    headers: dict[str, str] = field(default_factory=dict)
    future: asyncio.Future | None = field(default=None, repr=False)

    @property
    def replied(self) -> bool:
        return self.future is None or self.future.done()

    def reply(self, body: Any) -> None:
        """
        Send the reply back to the requester.
        """
        if self.replied:
            logger.warning("Ignoring reply to address=%s, already answered", self.address)
            return
        self.future.set_result(body)

    def fail(self, failure_code: int, message: str) -> None:
        """
        Send a failure back to the requester.
        """
        if self.replied:
            logger.warning(
                "Ignoring failure code=%s to address=%s, already answered",
                failure_code,
                self.address,
            )
            return
        self.future.set_exception(ReplyException(failure_code, message))


Handler = Callable[[Message], Awaitable[None]]


class BusBase:
    """
    Base class for all bus transports.
    """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"

    def register(self, address: str, handler: Handler) -> None:
        """
        Bind a handler to an address.
        """
        raise NotImplementedError(
            f"register not implemented in {self.__class__.__name__}"
        )

    def unregister(self, address: str) -> None:
        """
        Remove the handler bound to an address.
        """
        raise NotImplementedError(
            f"unregister not implemented in {self.__class__.__name__}"
        )

    async def request(
        self, address: str, body: Any, options: DeliveryOptions | None = None
    ) -> Any:
        """
        Send a request to an address and wait for its reply.

        Raises ReplyException when the request fails.
        """
        raise NotImplementedError(
            f"request not implemented in {self.__class__.__name__}"
        )

    async def close(self) -> None:
        """
        Release the transport resources. By default nothing to do.
        """
        return None
