"""
Starts and stops the page store on a bus.
"""

import logging

from wiki.bus.binder import ServiceBinder
from wiki.bus.types import BusBase
from wiki.config import Config
from wiki.db.database import Database
from wiki.db.handler import WikiDbServiceHandler
from wiki.db.queries import load_queries
from wiki.db.service import WikiDbService

logger = logging.getLogger(__name__)


class WikiDbDeployment:
    """
    The page store is ready only once the schema exists and its address is bound.
    Callers must wait for `start` before sending requests.
    """

    def __init__(self, bus: BusBase, config: Config):
        self.bus = bus
        self.config = config
        self.database: Database | None = None
        self.service: WikiDbService | None = None
        self.binder: ServiceBinder | None = None

    @property
    def ready(self) -> bool:
        return self.binder is not None

    @property
    def address(self) -> str:
        return self.config.service.address

    async def start(self) -> None:
        queries = load_queries(self.config.database.queries_file)
        database = Database(self.config.database, queries)
        service = WikiDbService(database)
        try:
            await service.prepare()
        except Exception:
            logger.error("Failed to prepare the database %s", database)
            await database.close()
            raise

        self.database = database
        self.service = service
        self.binder = (
            ServiceBinder(self.bus)
            .set_address(self.address)
            .register(WikiDbServiceHandler(service))
        )
        logger.info("Page store deployed at address=%s", self.address)

    async def stop(self) -> None:
        if self.binder:
            self.binder.unregister()
            self.binder = None
        if self.database:
            await self.database.close()
            self.database = None
        self.service = None
        logger.info("Page store at address=%s stopped", self.address)

    async def __aenter__(self) -> "WikiDbDeployment":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
