from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple

from tome.convert import bind_values, convert_sql_params, to_positional
from tome.parameters import SqlType
from tome.sql.executor import SQLExecutor, Values

try:
    import pyodbc

    SQLSERVER_ENABLED = True
    SQLSERVER_ERRORS = (pyodbc.Error,)
except ImportError:
    SQLSERVER_ENABLED = False
    SQLSERVER_ERRORS = ()


class SQLServerExecutor(SQLExecutor):
    """Executor for interfacing with a SQL Server database

    pyODBC only understands `?` placeholders, so `$name` parameters are
    rewritten positionally in the order they appear.
    """

    ENABLED = SQLSERVER_ENABLED
    POSITIONAL_SUB = r"?"
    PLACEHOLDER = "?"
    IDENTITY_QUERY = "SELECT CAST(SCOPE_IDENTITY() AS int)"
    PROCEDURE_TEMPLATE = "{{CALL {name} ({placeholders})}}"
    DRIVER_ERRORS = SQLSERVER_ERRORS
    TYPE_NAMES = {
        SqlType.NVARCHAR: "NVARCHAR",
        SqlType.DATE: "DATE",
        SqlType.INT: "INT",
    }
    IDENTITY_COLUMN = "{column} INT IDENTITY(1,1) PRIMARY KEY"
    CREATE_TABLE = (
        "IF OBJECT_ID(N'{table}', N'U') IS NULL "
        "CREATE TABLE {table} ({columns})"
    )

    def _prepare(
        self,
        query: str,
        posargs: Optional[Sequence[Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, Values]:
        values = bind_values(query, posargs or (), params)
        if isinstance(values, dict):
            query, values = to_positional(query, values, self.PLACEHOLDER)
        else:
            query = convert_sql_params(
                query, self.POSITIONAL_SUB, self.KEYWORD_SUB
            )
        return query, [self._adapt(value) for value in values]

    async def _run_sql(
        self,
        query: str,
        as_list: bool = False,
        no_result: bool = False,
        values: Optional[Values] = None,
    ):
        method_name = self._get_method(as_list=as_list)
        async with self.pool.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, *(values or []))
            self._forward_messages(cursor)
            if no_result:
                return cursor.rowcount

            columns = [column[0] for column in cursor.description]
            raw = getattr(cursor, method_name)()

            if not as_list:
                return dict(zip(columns, raw)) if raw else None

            results = []
            for row in raw:
                results.append(dict(zip(columns, row)))

            return results

    async def _run_identity(self, query: str, values: Values) -> Any:
        # SCOPE_IDENTITY is only visible inside the batch that inserted
        batch = f"SET NOCOUNT ON; {query}; {self.IDENTITY_QUERY}"
        async with self.pool.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(batch, *(values or []))
            self._forward_messages(cursor)
            row = cursor.fetchone()
            return row[0] if row else None

    def _forward_messages(self, cursor) -> None:
        # PRINT and RAISERROR output with low severity
        for _, message in getattr(cursor, "messages", None) or []:
            self.pool._notify_info(message)
