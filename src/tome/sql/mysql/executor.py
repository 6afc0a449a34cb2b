from __future__ import annotations

from typing import Any, Optional

from tome.sql.executor import SQLExecutor, Values

try:
    from asyncmy.cursors import DictCursor
    from asyncmy.errors import MySQLError

    MYSQL_ENABLED = True
    MYSQL_ERRORS = (MySQLError,)
except ModuleNotFoundError:
    MYSQL_ENABLED = False
    MYSQL_ERRORS = ()


class MysqlExecutor(SQLExecutor):
    """Executor for interfacing with a MySQL database"""

    ENABLED = MYSQL_ENABLED
    IDENTITY_QUERY = "SELECT LAST_INSERT_ID()"
    PROCEDURE_TEMPLATE = "CALL {name}({placeholders})"
    DRIVER_ERRORS = MYSQL_ERRORS
    IDENTITY_COLUMN = "{column} INT AUTO_INCREMENT PRIMARY KEY"

    async def _run_sql(
        self,
        query: str,
        as_list: bool = False,
        no_result: bool = False,
        values: Optional[Values] = None,
    ):
        method_name = self._get_method(as_list=as_list)
        async with self.pool.connection() as conn:
            async with conn.cursor(cursor=DictCursor) as cursor:
                await cursor.execute(query, values or None)
                if no_result:
                    return cursor.rowcount
                raw = await getattr(cursor, method_name)()
                return raw

    async def _run_identity(self, query: str, values: Values) -> Any:
        async with self.pool.connection() as conn:
            async with conn.cursor() as cursor:
                await cursor.execute(query, values or None)
                await cursor.execute(self.IDENTITY_QUERY)
                row = await cursor.fetchone()
                return row[0] if row else None
