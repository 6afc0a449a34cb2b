from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from tome.base.interface import BaseInterface
from tome.exception import TomeError

try:
    from asyncmy import Connection, create_pool

    MYSQL_ENABLED = True
except ModuleNotFoundError:
    MYSQL_ENABLED = False
    Connection = type("Connection", (), {})  # type: ignore

DEFAULT_MAX_SIZE = 10
DEFAULT_CONNECT_TIMEOUT = 10


class MysqlPool(BaseInterface):
    """Interface for connecting to a MySQL database"""

    dialect = "mysql"

    def _setup_pool(self):
        if not MYSQL_ENABLED:
            raise TomeError(
                "MySQL driver not found. Try reinstalling tome: "
                "pip install tome[mysql]"
            )
        self._pool = None

    async def _open(self):
        """Open connections to the pool"""
        self._pool = await create_pool(
            user=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            db=self.db,
            minsize=self.min_size,
            maxsize=self.max_size or max(self.min_size, DEFAULT_MAX_SIZE),
            connect_timeout=self.timeout or DEFAULT_CONNECT_TIMEOUT,
            autocommit=True,
        )

    async def _close(self):
        """Close connections to the pool"""
        pool, self._pool = self._pool, None
        if pool is not None:
            pool.close()
            await pool.wait_closed()

    @asynccontextmanager
    async def connection(
        self, timeout: Optional[float] = None
    ) -> AsyncIterator[Connection]:
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
        else:
            if self._pool is None:
                await self.open()
            async with self._pool.acquire() as conn:
                yield conn

    async def begin(self, connection) -> None:
        await connection.begin()
