import logging

import httpx

from wiki.bus.http import HttpBus, create_bus_app
from wiki.bus.local import LocalBus
from wiki.bus.types import FailureCode, ReplyException
from wiki.db.deployment import WikiDbDeployment
from wiki.db.proxy import WikiDbServiceProxy
from wiki.errors import BadActionError, NoActionSpecifiedError, StorageError, TransportError
from tests.base import T0, T1, TestCase, new_id

logger = logging.getLogger(__name__)


class TestHttpBus(TestCase):
    """
    The page store behind the HTTP transport, served in process through ASGI.
    """

    async def asyncSetUp(self):
        self.config = self.get_config()
        self.local_bus = LocalBus()
        self.deployment = WikiDbDeployment(self.local_bus, self.config)
        self.app = create_bus_app(self.local_bus, ready=lambda: self.deployment.ready)
        await self.deployment.start()

        self.bus = HttpBus(
            base_url="http://store", transport=httpx.ASGITransport(app=self.app)
        )
        self.proxy = WikiDbServiceProxy(self.bus, self.config.service.address)

    async def asyncTearDown(self):
        await self.bus.close()
        await self.deployment.stop()
        await self.local_bus.close()

    async def test_crud_operations(self):
        id = new_id()
        await self.proxy.create_page(id, "Remote", T0)
        page = await self.proxy.get_page_by_name("remote")
        self.assertEqual(page.id, id)
        self.assertEqual(page.creation_date, T0)

        await self.proxy.save_page(id, "# Title", T1)
        page = await self.proxy.get_page_by_id(id)
        self.assertEqual(page.content, "# Title")
        self.assertEqual(page.update_date, T1)

        await self.proxy.delete_page(id)
        self.assertEqual(await self.proxy.list_pages(), [])
        self.assertTrue((await self.proxy.get_page_by_id(id)).is_deleted)

    async def test_not_found(self):
        self.assertIsNone(await self.proxy.get_page_by_id("nonexistent"))

    async def test_failures_keep_their_code(self):
        with self.assertRaises(BadActionError):
            await self.proxy.send("drop_everything", {})
        with self.assertRaises(NoActionSpecifiedError):
            await self.proxy.send(None, {})
        with self.assertRaises(StorageError):
            await self.proxy.delete_page("nonexistent")

        proxy = WikiDbServiceProxy(self.bus, "nowhere")
        with self.assertRaises(TransportError) as ctx:
            await proxy.list_pages()
        self.assertEqual(ctx.exception.failure_code, FailureCode.NO_HANDLERS)

    async def test_unreachable_store(self):
        bus = HttpBus(
            base_url="http://store",
            transport=httpx.MockTransport(self.refuse_connection),
        )
        with self.assertRaises(ReplyException) as ctx:
            await bus.request(self.config.service.address, {})
        self.assertEqual(ctx.exception.failure_code, FailureCode.TRANSPORT)
        await bus.close()

    @staticmethod
    def refuse_connection(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    async def test_health(self):
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=self.app), base_url="http://store"
        ) as client:
            response = await client.get("/api/v1/health")
            self.assertEqual(response.status_code, 200)

            await self.deployment.stop()
            response = await client.get("/api/v1/health")
            self.assertEqual(response.status_code, 503)

    async def test_register_not_supported(self):
        with self.assertRaises(NotImplementedError):
            self.bus.register("anything", None)
