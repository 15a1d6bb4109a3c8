"""
Caller side of the page store: the same operations as `WikiDbService`, sent
over a bus.
"""

import datetime
import logging
from typing import Any

from wiki.bus.factory import create_bus
from wiki.bus.types import ACTION_HEADER, BusBase, DeliveryOptions, FailureCode, ReplyException
from wiki.config import Config
from wiki.errors import (
    BadActionError,
    NoActionSpecifiedError,
    StorageError,
    TransportError,
    WikiError,
)
from wiki.types import PageInfo, Page, format_date, page_lookup_from_dict

logger = logging.getLogger(__name__)


def translate_failure(error: ReplyException) -> WikiError:
    """
    Turn a bus failure into the matching typed exception.
    """
    if error.failure_code == FailureCode.NO_ACTION_SPECIFIED:
        return NoActionSpecifiedError(error.failure_code, error.message)
    if error.failure_code == FailureCode.BAD_ACTION:
        return BadActionError(error.failure_code, error.message)
    if error.failure_code == FailureCode.DB_ERROR:
        return StorageError(error.message)
    return TransportError(error.failure_code, error.message)


class WikiDbServiceProxy:
    """
    Page store client. Every call is one request to the store's address.
    """

    def __init__(self, bus: BusBase, address: str, timeout: float | None = None):
        self.bus = bus
        self.address = address
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} address={self.address} bus={self.bus}>"

    async def send(self, action: str | None, body: dict[str, Any] | None = None) -> Any:
        """
        Send a raw request with the given action header. Failures are raised as WikiError.
        """
        headers = {ACTION_HEADER: action} if action else {}
        try:
            return await self.bus.request(
                self.address,
                body or {},
                DeliveryOptions(headers=headers, timeout=self.timeout),
            )
        except ReplyException as e:
            logger.debug("Request action=%s failed: %r", action, e)
            raise translate_failure(e) from e

    async def list_pages(self) -> list[PageInfo]:
        reply = await self.send("list_pages")
        return [PageInfo.from_dict(page) for page in reply["pages"]]

    async def get_page_by_id(self, id: str) -> Page | None:
        reply = await self.send("get_page_by_id", {"id": id})
        return page_lookup_from_dict(reply)

    async def get_page_by_name(self, name: str) -> Page | None:
        reply = await self.send("get_page_by_name", {"name": name})
        return page_lookup_from_dict(reply)

    async def create_page(
        self, id: str, name: str, creation_date: datetime.datetime
    ) -> None:
        await self.send(
            "create_page",
            {"id": id, "name": name, "creation_date": format_date(creation_date)},
        )

    async def save_page(
        self, id: str, content: str, update_date: datetime.datetime
    ) -> None:
        await self.send(
            "save_page",
            {"id": id, "content": content, "update_date": format_date(update_date)},
        )

    async def delete_page(self, id: str) -> None:
        await self.send("delete_page", {"id": id})


def create_proxy(config: Config, bus: BusBase | None = None) -> WikiDbServiceProxy:
    """
    Create a proxy to the page store at the configured address.

    Without `bus`, the configured transport is created, and the caller closes it
    with `proxy.bus.close()`. An in-process caller passes the bus the store is
    deployed on.
    """
    if bus is None:
        bus = create_bus(config.bus)
    return WikiDbServiceProxy(bus, config.service.address, timeout=config.bus.timeout)
