from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from tome.base.interface import BaseInterface
from tome.exception import TomeError

try:
    from psycopg import AsyncConnection
    from psycopg_pool import AsyncConnectionPool

    POSTGRES_ENABLED = True
except ModuleNotFoundError:
    POSTGRES_ENABLED = False
    AsyncConnection = type("Connection", (), {})  # type: ignore
    AsyncConnectionPool = type("Connection", (), {})  # type: ignore

DEFAULT_CONNECT_TIMEOUT = 30.0


class PostgresPool(BaseInterface):
    """Interface for connecting to a Postgres database"""

    dialect = "postgres"

    def _setup_pool(self):
        if not POSTGRES_ENABLED:
            raise TomeError(
                "Postgres driver not found. Try reinstalling tome: "
                "pip install tome[postgres]"
            )
        self._pool = AsyncConnectionPool(
            self.full_dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            open=False,
            configure=self._configure,
        )

    async def _configure(self, connection: AsyncConnection) -> None:
        connection.add_notice_handler(self._on_notice)

    def _on_notice(self, diagnostic) -> None:
        self._notify_info(diagnostic.message_primary)

    async def _open(self):
        """Open connections to the pool"""
        await self._pool.open(
            wait=True, timeout=self.timeout or DEFAULT_CONNECT_TIMEOUT
        )

    async def _close(self):
        """Close connections to the pool"""
        await self._pool.close()

    @asynccontextmanager
    async def connection(
        self, timeout: Optional[float] = None
    ) -> AsyncIterator[AsyncConnection]:
        """Obtain a connection to the database

        Args:
            timeout (float, optional): Time before an error is raised on
                failure to connect. Defaults to `None`.

        Returns:
            AsyncIterator[Connection]: Iterator that will yield a connection

        Yields:
            Iterator[AsyncIterator[Connection]]: A database connection
        """
        existing = self.existing_connection()
        if existing:
            yield existing
        else:
            async with self._pool.connection(timeout=timeout) as conn:
                yield conn
