"""
The page store service.

Business rules over the relational backend adapter: names are lowercased on
creation, lookups of a missing page are a normal `None` result, and deletion
is a soft delete that frees the page name for reuse.
"""

import datetime
import logging
from typing import Callable

from wiki.db.database import Database
from wiki.db.queries import SqlQuery
from wiki.errors import PageNotFoundError, StorageError
from wiki.types import Page, PageInfo, format_date

logger = logging.getLogger(__name__)

DELETED_NAME_FORMAT = "{name}_deleted_{stamp}"
DELETED_STAMP_FORMAT = "%Y%m%d%H%M%S%f"


def now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class WikiDbService:
    """
    Owns the pages table. Every operation is one or two statements on the adapter.

    `delete_date` comes from `clock`, which is UTC by default. Callers must send
    `creation_date` and `update_date` as timezone-aware UTC datetimes so all
    dates of a page are comparable.
    """

    def __init__(
        self,
        database: Database,
        clock: Callable[[], datetime.datetime] = now,
    ):
        self.database = database
        self.clock = clock

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} database={self.database}>"

    async def prepare(self) -> None:
        """
        Create the pages table if it does not exist yet.
        """
        await self.database.execute(SqlQuery.CREATE_PAGES_TABLE)
        logger.info("Pages table ready")

    async def list_pages(self) -> list[PageInfo]:
        """
        All non deleted pages, ordered by name.
        """
        rows = await self.database.query(SqlQuery.ALL_PAGES)
        logger.debug("list_pages count=%d", len(rows))
        return [PageInfo(id=row[0], name=row[1]) for row in rows]

    async def get_page_by_id(self, id: str) -> Page | None:
        """
        The page with this id, deleted or not. None if there is no such page.
        """
        rows = await self.database.query(SqlQuery.GET_PAGE_BY_ID, {"id": id})
        logger.debug("get_page_by_id id=%s found=%s", id, bool(rows))
        if not rows:
            return None
        return Page.from_row(rows[0])

    async def get_page_by_name(self, name: str) -> Page | None:
        """
        The active page with this name. None if there is no such page.
        """
        rows = await self.database.query(SqlQuery.GET_PAGE_BY_NAME, {"name": name})
        logger.debug("get_page_by_name name=%s found=%s", name, bool(rows))
        if not rows:
            return None
        return Page.from_row(rows[0])

    async def create_page(
        self, id: str, name: str, creation_date: datetime.datetime
    ) -> None:
        """
        Insert a new empty page.

        There is no uniqueness check here: the unique name constraint rejects a
        duplicate, which surfaces as a StorageError.
        """
        await self.database.update(
            SqlQuery.CREATE_PAGE,
            {
                "id": id,
                "name": name.lower(),
                "content": "",
                "creation_date": format_date(creation_date),
            },
        )
        logger.info("Created page id=%s name=%s", id, name.lower())

    async def save_page(
        self, id: str, content: str, update_date: datetime.datetime
    ) -> None:
        """
        Overwrite the content of an active page.
        """
        count = await self.database.update(
            SqlQuery.SAVE_PAGE,
            {"content": content, "update_date": format_date(update_date), "id": id},
        )
        if count == 0:
            logger.error("Failed to save page id=%s, no active page with that id", id)
            raise PageNotFoundError(id)
        logger.info("Saved page id=%s size=%d", id, len(content))

    async def delete_page(self, id: str) -> None:
        """
        Soft delete a page: rename it out of the way and set its delete date.

        The rename uses the deletion instant, so several deleted pages can share
        the same original name.
        """
        page = await self.get_page_by_id(id)
        if page is None:
            logger.error("Failed to delete page id=%s, does not exist", id)
            raise PageNotFoundError(id)
        if page.is_deleted:
            logger.error("Failed to delete page id=%s, already deleted", id)
            raise StorageError(f"Page {id} is already deleted")

        delete_date = self.clock()
        name = DELETED_NAME_FORMAT.format(
            name=page.name, stamp=delete_date.strftime(DELETED_STAMP_FORMAT)
        )
        count = await self.database.update(
            SqlQuery.DELETE_PAGE,
            {"name": name, "delete_date": format_date(delete_date), "id": id},
        )
        if count == 0:
            # deleted by someone else between the read and the write
            logger.error("Failed to delete page id=%s, deleted concurrently", id)
            raise StorageError(f"Page {id} is already deleted")
        logger.info("Deleted page id=%s renamed_to=%s", id, name)
