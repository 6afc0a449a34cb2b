from __future__ import annotations

from typing import Any, Optional

from tome.sql.executor import SQLExecutor, Values

try:
    import psycopg
    from psycopg.rows import dict_row

    POSTGRES_ENABLED = True
    POSTGRES_ERRORS = (psycopg.Error,)
except ModuleNotFoundError:
    POSTGRES_ENABLED = False
    POSTGRES_ERRORS = ()


class PostgresExecutor(SQLExecutor):
    """Executor for interfacing with a Postgres database"""

    ENABLED = POSTGRES_ENABLED
    IDENTITY_QUERY = "SELECT lastval()"
    PROCEDURE_TEMPLATE = "SELECT * FROM {name}({placeholders})"
    DRIVER_ERRORS = POSTGRES_ERRORS
    IDENTITY_COLUMN = "{column} SERIAL PRIMARY KEY"

    async def _run_sql(
        self,
        query: str,
        as_list: bool = False,
        no_result: bool = False,
        values: Optional[Values] = None,
    ):
        method_name = self._get_method(as_list=as_list)
        async with self.pool.connection() as conn:
            cursor = await conn.execute(query, values or None)
            if no_result:
                return cursor.rowcount
            cursor.row_factory = dict_row
            raw = await getattr(cursor, method_name)()
            return raw

    async def _run_identity(self, query: str, values: Values) -> Any:
        async with self.pool.connection() as conn:
            await conn.execute(query, values or None)
            cursor = await conn.execute(self.IDENTITY_QUERY)
            row = await cursor.fetchone()
            return row[0] if row else None
