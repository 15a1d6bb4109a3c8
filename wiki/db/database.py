"""
Relational backend adapter.

Runs the statements of the statement resource against a bounded SQLAlchemy
connection pool. Each call takes one connection, runs one statement in its own
transaction and gives the connection back, whatever the outcome.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Callable

import sqlalchemy
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from wiki.config import DatabaseConfig
from wiki.db.queries import SqlQuery
from wiki.errors import ConfigError, StorageError

logger = logging.getLogger(__name__)


def build_url(config: DatabaseConfig) -> URL:
    """
    Build the connection URL, with the explicit user, password and driver on top.
    """
    try:
        url = make_url(config.url)
    except ArgumentError as e:
        raise ConfigError(f"Invalid database url {config.url!r}: {e}") from e

    overrides = {}
    if config.user:
        overrides["username"] = config.user
    if config.password:
        overrides["password"] = config.password
    if config.driver:
        overrides["drivername"] = config.driver
    if overrides:
        url = url.set(**overrides)

    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # each pooled connection would get its own empty database
        raise ConfigError("In-memory SQLite can not be pooled, use a database file")
    return url


class Database:
    """
    Pooled access to the pages table.
    """

    def __init__(self, config: DatabaseConfig, queries: dict[SqlQuery, str]):
        self.config = config
        self.queries = queries
        url = build_url(config)
        if url.get_backend_name() == "sqlite":
            os.makedirs(Path(url.database).parent, exist_ok=True)
        logger.info(
            "Connecting to database: %s max_pool_size=%d",
            url.render_as_string(hide_password=True),
            config.max_pool_size,
        )
        try:
            self.engine = sqlalchemy.create_engine(
                url, pool_size=config.max_pool_size, max_overflow=0
            )
        except (ArgumentError, ImportError) as e:
            raise ConfigError(f"Can not create database engine: {e}") from e
        self._slots = asyncio.Semaphore(config.max_pool_size)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} url={self.engine.url!r}>"

    async def query(
        self, key: SqlQuery, params: dict[str, Any] | None = None
    ) -> list[tuple]:
        """
        Run a SELECT statement and return all its rows.
        """
        return await self._run(key, params, self._fetch_all)

    async def update(self, key: SqlQuery, params: dict[str, Any]) -> int:
        """
        Run an INSERT / UPDATE statement and return the affected row count.
        """
        return await self._run(key, params, self._row_count)

    async def execute(self, key: SqlQuery) -> None:
        """
        Run a statement without parameters nor result, like the schema creation.
        """
        await self._run(key, None, self._row_count)

    def checked_out(self) -> int:
        """
        Connections currently taken from the pool.
        """
        return self.engine.pool.checkedout()

    async def close(self) -> None:
        """
        Close all pooled connections.
        """
        logger.info("Closing database pool %s", self)
        await asyncio.to_thread(self.engine.dispose)

    async def _run(
        self,
        key: SqlQuery,
        params: dict[str, Any] | None,
        collect: Callable[[sqlalchemy.CursorResult], Any],
    ) -> Any:
        statement = self.queries[key]
        async with self._slots:
            try:
                return await asyncio.to_thread(
                    self._run_blocking, statement, params or {}, collect
                )
            except SQLAlchemyError as e:
                orig = getattr(e, "orig", None)
                message = str(orig) if orig is not None else str(e)
                logger.error("Error running statement=%s: %s", key.value, message)
                raise StorageError(message) from e

    def _run_blocking(
        self,
        statement: str,
        params: dict[str, Any],
        collect: Callable[[sqlalchemy.CursorResult], Any],
    ) -> Any:
        with self.engine.begin() as conn:
            result = conn.execute(sqlalchemy.text(statement), params)
            return collect(result)

    @staticmethod
    def _fetch_all(result: sqlalchemy.CursorResult) -> list[tuple]:
        return [tuple(row) for row in result.fetchall()]

    @staticmethod
    def _row_count(result: sqlalchemy.CursorResult) -> int:
        return result.rowcount
