from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from tome.base.interface import BaseInterface
from tome.endpoint import AuthMode
from tome.exception import TomeError

try:
    import pyodbc

    SQLSERVER_ENABLED = True
except ImportError:
    SQLSERVER_ENABLED = False

DEFAULT_DRIVER = "ODBC Driver 18 for SQL Server"


class SQLServerPool(BaseInterface):
    """Interface for connecting to a SQL Server database

    The connection runs in autocommit mode, which is switched off for the
    duration of a transaction.
    """

    dialect = "sqlserver"

    def _setup_pool(self):
        if not SQLSERVER_ENABLED:
            raise TomeError(
                "SQL Server driver not found. Try reinstalling tome: "
                "pip install tome[sqlserver]"
            )
        self._db = None

    def connection_string(self) -> str:
        """Build the ODBC connection string for the endpoint"""
        options = dict(self.endpoint.options)
        driver = DEFAULT_DRIVER
        for key in list(options):
            if key.lower() == "driver":
                driver = options.pop(key).strip("{}")

        server = self.host or "localhost"
        if self.port:
            server += f",{self.port}"

        parts = [f"DRIVER={{{driver}}}", f"SERVER={server}"]
        if self.db:
            parts.append(f"DATABASE={self.db}")
        if self.endpoint.auth_mode is AuthMode.INTEGRATED:
            parts.append("Trusted_Connection=yes")
        elif self.user:
            parts.append(f"UID={self.user}")
            parts.append(f"PWD={self.password or ''}")
        parts.extend(f"{key}={value}" for key, value in options.items())
        return ";".join(parts)

    async def _open(self):
        """Open the connection"""
        self._db = pyodbc.connect(
            self.connection_string(),
            autocommit=True,
            timeout=int(self.timeout or 0),
        )

    async def _close(self):
        """Close the connection"""
        db, self._db = self._db, None
        if db is not None:
            db.close()

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

        if not self._db:
            await self.open()
        yield self._db

    async def begin(self, connection) -> None:
        connection.autocommit = False

    async def commit(self, connection) -> None:
        try:
            connection.commit()
        finally:
            connection.autocommit = True

    async def rollback(self, connection) -> None:
        try:
            connection.rollback()
        finally:
            connection.autocommit = True
