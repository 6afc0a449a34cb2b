from __future__ import annotations

import asyncio
import re
import sys
from functools import wraps
from inspect import (
    Parameter,
    getmembers,
    isawaitable,
    isfunction,
    signature,
    unwrap,
)
from time import monotonic
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from tome.base.executor import Executor, is_auto_exec
from tome.convert import bind_values, convert_sql_params
from tome.decorator import QUERY_ATTRIBUTE
from tome.exception import (
    DatabaseError,
    MissingSQL,
    RecordNotFound,
    TomeError,
    TransactionError,
)
from tome.parameters import Parameter as Column
from tome.parameters import SqlType
from tome.sql.query import ParamType, SQLQuery
from tome.transaction import Transaction

if sys.version_info < (3, 10):  # no cov
    UnionType = type("UnionType", (), {})
else:
    from types import UnionType

Values = Union[List[Any], Dict[str, Any]]
PROCEDURE_NAME = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$"
)


class SQLExecutor(Executor):
    ENABLED: bool = False
    POSITIONAL_SUB: str = r"%s"
    KEYWORD_SUB: str = r"%(\2)s"
    PLACEHOLDER: str = "%s"
    IDENTITY_QUERY: str = ""
    """Query returning the identity generated by the last insert on the
    same connection"""
    PROCEDURE_TEMPLATE: Optional[str] = None
    """How to call a stored procedure, with `{name}` and `{placeholders}`
    fields. `None` when the dialect has no stored procedures"""
    DRIVER_ERRORS: Tuple[Type[BaseException], ...] = ()
    TYPE_NAMES: Dict[SqlType, str] = {
        SqlType.NVARCHAR: "VARCHAR",
        SqlType.DATE: "DATE",
        SqlType.INT: "INTEGER",
    }
    IDENTITY_COLUMN: str = "{column} INTEGER PRIMARY KEY"
    CREATE_TABLE: str = "CREATE TABLE IF NOT EXISTS {table} ({columns})"
    verb_prefixes: List[str] = [
        "select_",
        "insert_",
        "update_",
        "delete_",
    ]
    """Prefixes used to identify class methods that run queries

    Example:

        ```python
        SQLExecutor.verb_prefixes = ["create_","read_","update_","delete_"]
        ```
    """

    def execute(
        self,
        query: Union[str, SQLQuery],
        name: str = "",
        model: Optional[Type[object]] = None,
        as_list: bool = False,
        allow_none: bool = False,
        posargs: Optional[Sequence[Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ):
        if isinstance(query, SQLQuery):
            query = query.text
        return self._execute(
            query=query,
            name=name,
            model=model,
            as_list=as_list,
            allow_none=allow_none,
            posargs=posargs,
            params=params,
        )

    async def _execute(
        self,
        query: str,
        name: str = "",
        model: Optional[Type[object]] = None,
        as_list: bool = False,
        allow_none: bool = False,
        posargs: Optional[Sequence[Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ):
        no_result = False
        if model is None:
            model, _ = self._context.get((None, ""))
        if model in (None, Parameter.empty):
            no_result = True
        factory = self.hydrator._make(model)
        text, values = self._prepare(query, posargs, params)
        raw = await self._run(
            text, values, as_list=as_list, no_result=no_result
        )
        if no_result:
            return None
        if not raw:
            if allow_none:
                return None
            if as_list:
                return []
            query_name = f"<{name}> " if name else ""
            raise RecordNotFound(
                f"Query {query_name}did not find any record using "
                f"{posargs or ()} and {params or {}}"
            )
        results = factory(raw)
        if isawaitable(results):
            results = await results
        return results

    def run_sql(
        self,
        query: str = "",
        name: str = "",
        as_list: bool = False,
        no_result: bool = False,
        posargs: Optional[Sequence[Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ):
        """Execute a query and return the raw rows as dictionaries. With
        `no_result`, the affected row count is returned instead."""
        if not query:
            if not name:
                _, name = self._context.get((None, ""))
            query = self.get_query(name).text
        text, values = self._prepare(query, posargs, params)
        return self._run(text, values, as_list=as_list, no_result=no_result)

    async def execute_non_query(
        self,
        query: str,
        posargs: Optional[Sequence[Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Execute a statement that returns no rows

        Returns:
            int: The number of affected rows, or -1 when the driver cannot
                tell
        """
        text, values = self._prepare(query, posargs, params)
        return await self._run(text, values, no_result=True)

    async def execute_scalar(
        self,
        query: str,
        posargs: Optional[Sequence[Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Execute a query and return the first column of the first row, or
        `None` when there are no rows"""
        text, values = self._prepare(query, posargs, params)
        row = await self._run(text, values)
        if not row:
            return None
        return next(iter(row.values()))

    async def execute_identity(
        self,
        query: str,
        posargs: Optional[Sequence[Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Execute an insert and return the identity the database generated
        for the new row

        Raises:
            DatabaseError: When the statement fails or no identity was
                generated
        """
        text, values = self._prepare(query, posargs, params)
        started = monotonic()
        identity = await self._guard(self._run_identity(text, values))
        self.pool.record_execution(text, 1, started)
        if identity is None:
            raise DatabaseError(f"No identity was generated by: {text}")
        return int(identity)

    async def call_procedure(
        self,
        procedure: str,
        args: Sequence[Any] = (),
        model: Optional[Type[object]] = None,
    ) -> List[Any]:
        """Call a stored procedure and hydrate the rows it returns

        Raises:
            TomeError: When the dialect has no stored procedures, or the
                name is not a plain identifier
        """
        if self.PROCEDURE_TEMPLATE is None:
            raise TomeError(
                f"{self.__class__.__name__} does not support stored "
                "procedures"
            )
        if not PROCEDURE_NAME.match(procedure):
            raise TomeError(f"Invalid procedure name: {procedure!r}")
        text = self.PROCEDURE_TEMPLATE.format(
            name=procedure,
            placeholders=", ".join(self.PLACEHOLDER for _ in args),
        )
        values = [self._adapt(value) for value in args]
        raw = await self._run(text, values, as_list=True)
        if model is None:
            return raw
        return self.hydrator._make(model)(raw)

    async def _run(
        self,
        query: str,
        values: Values,
        as_list: bool = False,
        no_result: bool = False,
    ):
        started = monotonic()
        raw = await self._guard(
            self._run_sql(
                query, as_list=as_list, no_result=no_result, values=values
            )
        )
        if no_result:
            rows = raw
        elif as_list:
            rows = len(raw or [])
        else:
            rows = 1 if raw else 0
        self.pool.record_execution(query, rows, started)
        return raw

    async def _guard(self, coro):
        """Await a driver call, translating driver failures and timeouts into
        `DatabaseError`"""
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except TomeError:
            raise
        except asyncio.TimeoutError as e:
            raise DatabaseError(
                f"Statement timed out after {self.timeout} seconds"
            ) from e
        except self.DRIVER_ERRORS as e:
            raise DatabaseError(str(e) or e.__class__.__name__) from e

    def _prepare(
        self,
        query: str,
        posargs: Optional[Sequence[Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, Values]:
        values = bind_values(query, posargs or (), params)
        if isinstance(values, dict):
            values = {key: self._adapt(value) for key, value in values.items()}
        else:
            values = [self._adapt(value) for value in values]
        text = convert_sql_params(
            query, self.POSITIONAL_SUB, self.KEYWORD_SUB
        )
        return text, values

    def _adapt(self, value: Any) -> Any:
        return value

    def _get_method(self, as_list: bool) -> str:
        return "fetchall" if as_list else "fetchone"

    async def _run_sql(
        self,
        query: str,
        as_list: bool = False,
        no_result: bool = False,
        values: Optional[Values] = None,
    ):
        ...

    async def _run_identity(self, query: str, values: Values) -> Any:
        ...

    async def rollback(self, silent: bool = False) -> None:
        """Roll back the transaction running in the current context

        Args:
            silent (bool, optional): Do nothing instead of raising when
                there is no transaction. Defaults to `False`.
        """
        transaction = self.pool.current_transaction()
        if transaction is None or not transaction.is_active:
            if silent:
                return
            raise TransactionError("Cannot rollback non-existing transaction")
        await transaction.rollback()

    def transaction(self, timeout: Optional[float] = None) -> Transaction:
        """Create a transaction on this executor's interface

        Example:

        ```python
        async with executor.transaction() as txn:
            await executor.insert_book(...)
        ```
        """
        return Transaction(self.pool, timeout=timeout)

    @classmethod
    def create_table_sql(
        cls, table: str, identity: str, columns: Sequence[Column]
    ) -> str:
        """Build the DDL for a table with an identity column followed by
        the given columns"""
        declarations = [cls.IDENTITY_COLUMN.format(column=identity)]
        declarations.extend(cls._column_sql(column) for column in columns)
        return cls.CREATE_TABLE.format(
            table=table, columns=", ".join(declarations)
        )

    @classmethod
    def _column_sql(cls, column: Column) -> str:
        sql_type = cls.TYPE_NAMES[column.sql_type]
        if column.size:
            sql_type = f"{sql_type}({column.size})"
        null = "NULL" if column.nullable else "NOT NULL"
        return f"{column.column} {sql_type} {null}"

    @classmethod
    def _load(cls, strict: bool) -> None:
        cls._queries = {}

        for name, func in getmembers(cls, isfunction):
            if not cls.is_query_name(name):
                continue
            func = unwrap(func)
            auto_exec = is_auto_exec(func)
            query = getattr(func, QUERY_ATTRIBUTE, None)
            if query:
                cls._queries[name] = SQLQuery(name, query)
            elif auto_exec and strict:
                raise MissingSQL(
                    f"Could not find SQL for {cls.__name__}.{name}. "
                    "Supply it with the @query decorator"
                )
            setattr(cls, name, cls._setup(func))

        cls._loaded = True

    @classmethod
    def is_query_name(cls, name: str) -> bool:
        return any(name.startswith(prefix) for prefix in cls.verb_prefixes)

    @staticmethod
    def _setup(func):
        """
        Responsible for executing a DB query and passing the result off to a
        hydrator.

        If the Executor method does not contain any code, then the
        assumption is that we should automatically execute the in memory
        SQL, and pass the results off to the hydrator.
        """
        sig = signature(func)
        auto_exec = is_auto_exec(func)
        hints = get_type_hints(func)
        if "return" not in hints:
            model: Any = Parameter.empty
        elif hints["return"] is type(None):
            model = None
        else:
            model = hints["return"]
        as_list = False
        allow_none = False
        name = func.__name__

        if model is not None and (origin := get_origin(model)):
            check_model = True
            if origin is UnionType or origin is Union:
                args = get_args(model)
                allow_none = True
                none_type = type(None)
                if len(args) == 2 and any(arg is none_type for arg in args):
                    model = args[0] if args[1] is none_type else args[1]
                    origin = get_origin(model)
                    if not origin:
                        check_model = False

            if check_model:
                as_list = bool(origin is list)
                as_dict = bool(origin is dict)
                if as_list:
                    model = get_args(model)[0]
                elif as_dict:
                    model = dict
                else:
                    raise TomeError(
                        f"{func} must return either a model or a list of "
                        "models. eg. -> Foo or List[Foo]"
                    )

        @wraps(func)
        async def decorated_function(self: SQLExecutor, *args, **kwargs):
            if self._pool is None:
                raise TomeError(
                    "Connection pool to your database has not been setup. "
                )
            self._context.set((model, name))
            if not auto_exec:
                return await func(self, *args, **kwargs)

            query = self._queries[name]
            bound = sig.bind(self, *args, **kwargs)
            bound.apply_defaults()
            params = {**bound.arguments}
            params.pop("self", None)

            if query.param_type is ParamType.KEYWORD:
                results = await self._execute(
                    query.text,
                    model=model,
                    name=name,
                    as_list=as_list,
                    allow_none=allow_none,
                    params=params,
                )
            elif query.param_type is ParamType.POSITIONAL:
                results = await self._execute(
                    query.text,
                    model=model,
                    name=name,
                    as_list=as_list,
                    allow_none=allow_none,
                    posargs=list(params.values()),
                )
            else:
                results = await self._execute(
                    query.text,
                    model=model,
                    name=name,
                    as_list=as_list,
                    allow_none=allow_none,
                )

            if model is None:
                return None
            return results

        return decorated_function
