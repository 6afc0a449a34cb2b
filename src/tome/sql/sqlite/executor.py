from __future__ import annotations

import sqlite3
from datetime import date
from sqlite3 import Cursor
from typing import Any, Dict, Optional, Tuple

from tome.parameters import Parameter, SqlType
from tome.sql.executor import SQLExecutor, Values

try:
    import aiosqlite  # noqa

    AIOSQLITE_ENABLED = True
except ModuleNotFoundError:
    AIOSQLITE_ENABLED = False


class SQLiteExecutor(SQLExecutor):
    """Executor for interfacing with a SQLite database"""

    ENABLED = AIOSQLITE_ENABLED
    POSITIONAL_SUB = r"?"
    KEYWORD_SUB = r":\2"
    PLACEHOLDER = "?"
    IDENTITY_QUERY = "SELECT last_insert_rowid()"
    DRIVER_ERRORS = (sqlite3.Error,)
    TYPE_NAMES = {
        SqlType.NVARCHAR: "TEXT",
        SqlType.DATE: "DATE",
        SqlType.INT: "INTEGER",
    }
    IDENTITY_COLUMN = "{column} INTEGER PRIMARY KEY AUTOINCREMENT"

    async def _run_sql(
        self,
        query: str,
        as_list: bool = False,
        no_result: bool = False,
        values: Optional[Values] = None,
    ):
        method_name = self._get_method(as_list=as_list)
        async with self.pool.connection() as conn:
            cursor = await conn.execute(query, values or [])
            if no_result:
                return cursor.rowcount
            cursor.row_factory = self._dict_factory
            raw = await getattr(cursor, method_name)()
            return raw

    async def _run_identity(self, query: str, values: Values) -> Any:
        async with self.pool.connection() as conn:
            await conn.execute(query, values)
            cursor = await conn.execute(self.IDENTITY_QUERY)
            row = await cursor.fetchone()
            return row[0] if row else None

    def _adapt(self, value: Any) -> Any:
        if isinstance(value, date):
            return value.isoformat()
        return value

    @classmethod
    def _column_sql(cls, column: Parameter) -> str:
        sql = super()._column_sql(column)
        if column.size:
            # SQLite ignores declared lengths unless checked
            sql += f" CHECK (length({column.column}) <= {column.size})"
        return sql

    @staticmethod
    def _dict_factory(cursor: Cursor, row: Tuple[Any, ...]) -> Dict[str, Any]:
        return {val[0]: row[idx] for idx, val in enumerate(cursor.description)}
