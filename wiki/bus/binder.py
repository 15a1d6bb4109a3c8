import logging
from typing import Protocol, Self

from wiki.bus.types import BusBase, Message

logger = logging.getLogger(__name__)


class ServiceHandler(Protocol):
    """
    Anything that answers bus messages for a service.
    """

    async def handle(self, message: Message) -> None: ...


class ServiceBinder:
    """
    Binds a service handler to one address of a bus.
    """

    def __init__(self, bus: BusBase):
        self.bus = bus
        self.address: str | None = None

    def set_address(self, address: str) -> Self:
        self.address = address
        return self

    def register(self, handler: ServiceHandler) -> Self:
        """
        Start answering requests sent to the address.
        """
        if not self.address:
            raise ValueError("Set an address before registering a service")
        self.bus.register(self.address, handler.handle)
        logger.info("Service %s bound to address=%s", handler, self.address)
        return self

    def unregister(self) -> None:
        """
        Stop answering requests. Safe to call if never registered.
        """
        if self.address:
            self.bus.unregister(self.address)
