from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from tome.base.interface import BaseInterface
from tome.exception import TomeError

try:
    import aiosqlite

    AIOSQLITE_ENABLED = True
except ModuleNotFoundError:
    AIOSQLITE_ENABLED = False


class SQLitePool(BaseInterface):
    """Interface for connecting to a SQLite database

    SQLite has no server side pool, so the interface holds a single
    connection in autocommit mode. Transactions are started explicitly.
    """

    dialect = "sqlite"

    def _setup_pool(self):
        if not AIOSQLITE_ENABLED:
            raise TomeError(
                "SQLite driver not found. Try reinstalling tome: "
                "pip install tome[sqlite]"
            )
        self._db = None

    async def _open(self):
        """Open the connection"""
        kwargs = {"isolation_level": None}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        self._db = await aiosqlite.connect(self.db, **kwargs)

    async def _close(self):
        """Close the connection"""
        db, self._db = self._db, None
        if db is not None:
            await db.close()

    @asynccontextmanager
    async def connection(self, timeout: Optional[float] = None):
        """Obtain a connection to the database

        Args:
            timeout (float, optional): _Not implemented_. Defaults to `None`.

        Returns:
            AsyncIterator[Connection]: Iterator that will yield a connection

        Yields:
            Iterator[AsyncIterator[Connection]]: A database connection
        """
        existing = self.existing_connection()
        if existing:
            yield existing
            return

        close_when_done = False
        if not self._db:
            close_when_done = True
            await self.open()
        try:
            yield self._db
        finally:
            if close_when_done:
                await self.close()

    async def begin(self, connection) -> None:
        await connection.execute("BEGIN")

    async def commit(self, connection) -> None:
        await connection.execute("COMMIT")

    async def rollback(self, connection) -> None:
        await connection.execute("ROLLBACK")
