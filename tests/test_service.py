import asyncio
import datetime
import logging

from wiki.db.database import Database
from wiki.db.queries import load_queries
from wiki.db.service import WikiDbService, now
from wiki.errors import PageNotFoundError, StorageError
from tests.base import T0, T1, TestCase, new_id

logger = logging.getLogger(__name__)


class TestWikiDbService(TestCase):
    """
    The service rules, without any bus in between.
    """

    async def asyncSetUp(self):
        self.database = Database(self.get_config().database, load_queries())
        self.service = WikiDbService(self.database, clock=lambda: T1)
        await self.service.prepare()

    async def asyncTearDown(self):
        await self.database.close()

    async def test_empty_store(self):
        self.assertEqual(await self.service.list_pages(), [])

    async def test_round_trip(self):
        await self.service.create_page("X", "foo", T0)
        page = await self.service.get_page_by_id("X")
        self.assertIsNotNone(page)
        self.assertEqual(page.id, "X")
        self.assertEqual(page.name, "foo")
        self.assertEqual(page.content, "")
        self.assertEqual(page.creation_date, T0)
        self.assertIsNone(page.update_date)
        self.assertIsNone(page.delete_date)

    async def test_name_is_lowercased(self):
        await self.service.create_page("X", "FooBar", T0)
        page = await self.service.get_page_by_name("foobar")
        self.assertEqual(page.id, "X")
        self.assertIsNone(await self.service.get_page_by_name("FooBar"))

    async def test_save(self):
        await self.service.create_page("X", "foo", T0)
        await self.service.save_page("X", "hello", T1)
        page = await self.service.get_page_by_id("X")
        self.assertEqual(page.content, "hello")
        self.assertEqual(page.update_date, T1)
        self.assertEqual(page.creation_date, T0)
        self.assertEqual(page.name, "foo")

    async def test_save_missing_page(self):
        with self.assertRaises(PageNotFoundError):
            await self.service.save_page(new_id(), "hello", T1)

    async def test_not_found_is_not_a_failure(self):
        self.assertIsNone(await self.service.get_page_by_id("nonexistent"))
        self.assertIsNone(await self.service.get_page_by_name("nonexistent"))

    async def test_list_ordered_by_name(self):
        for name in ["zeta", "alpha", "mu"]:
            await self.service.create_page(new_id(), name, T0)
        pages = await self.service.list_pages()
        self.assertEqual([p.name for p in pages], ["alpha", "mu", "zeta"])

    async def test_duplicate_name_is_storage_error(self):
        await self.service.create_page(new_id(), "test", T0)
        with self.assertRaises(StorageError):
            await self.service.create_page(new_id(), "test", T0)

    async def test_soft_delete(self):
        id = new_id()
        await self.service.create_page(id, "test", T0)
        await self.service.delete_page(id)

        self.assertEqual(await self.service.list_pages(), [])
        self.assertIsNone(await self.service.get_page_by_name("test"))

        page = await self.service.get_page_by_id(id)
        logger.debug("page=%s", page)
        self.assertIsNotNone(page)
        self.assertEqual(page.id, id)
        self.assertTrue(page.is_deleted)
        self.assertEqual(page.delete_date, T1)
        self.assertEqual(page.name, "test_deleted_20240302113000000000")

    async def test_default_clock_is_utc(self):
        service = WikiDbService(self.database)
        id = new_id()
        created = now()
        await service.create_page(id, "clock", created)
        await service.delete_page(id)

        page = await service.get_page_by_id(id)
        self.assertEqual(page.delete_date.utcoffset(), datetime.timedelta(0))
        self.assertGreaterEqual(page.delete_date, page.creation_date)

    async def test_name_recycling(self):
        first, second = new_id(), new_id()
        await self.service.create_page(first, "test", T0)
        await self.service.delete_page(first)
        await self.service.create_page(second, "test", T0)
        page = await self.service.get_page_by_name("test")
        self.assertEqual(page.id, second)

    async def test_repeated_deletes_of_same_name(self):
        stamps = iter([T0, T1])
        self.service.clock = lambda: next(stamps)
        first, second = new_id(), new_id()
        await self.service.create_page(first, "test", T0)
        await self.service.delete_page(first)
        await self.service.create_page(second, "test", T0)
        await self.service.delete_page(second)

        names = {
            (await self.service.get_page_by_id(first)).name,
            (await self.service.get_page_by_id(second)).name,
        }
        self.assertEqual(len(names), 2)

    async def test_delete_missing_page(self):
        with self.assertRaises(PageNotFoundError) as ctx:
            await self.service.delete_page("nonexistent")
        self.assertEqual(ctx.exception.page_id, "nonexistent")

    async def test_no_mutation_after_delete(self):
        id = new_id()
        await self.service.create_page(id, "test", T0)
        await self.service.delete_page(id)
        with self.assertRaises(StorageError):
            await self.service.delete_page(id)
        with self.assertRaises(StorageError):
            await self.service.save_page(id, "late", T1)
        page = await self.service.get_page_by_id(id)
        self.assertEqual(page.content, "")

    async def test_concurrent_create_same_name(self):
        results = await asyncio.gather(
            self.service.create_page(new_id(), "race", T0),
            self.service.create_page(new_id(), "race", T0),
            return_exceptions=True,
        )
        logger.debug("results=%s", results)
        failures = [r for r in results if isinstance(r, Exception)]
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], StorageError)
        self.assertEqual(len(await self.service.list_pages()), 1)

    async def test_concurrent_save_and_delete_keep_content(self):
        id = new_id()
        await self.service.create_page(id, "test", T0)
        await asyncio.gather(
            self.service.save_page(id, "saved", T1),
            self.service.delete_page(id),
            return_exceptions=True,
        )
        page = await self.service.get_page_by_id(id)
        self.assertTrue(page.is_deleted)
        # either the save landed before the delete, or it was refused
        self.assertIn(page.content, ["", "saved"])
        self.assertEqual(page.id, id)
