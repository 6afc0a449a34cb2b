from __future__ import annotations

from ast import AsyncFunctionDef, Constant, Expr, FunctionDef, Pass, parse
from contextvars import ContextVar
from inspect import cleandoc, getdoc, getsource, stack
from textwrap import dedent
from typing import Any, Dict, Optional, Sequence, Tuple, Type

from tome.base.hydrator import Hydrator
from tome.base.interface import BaseInterface
from tome.exception import TomeError
from tome.registry import Registry
from tome.sql.query import SQLQuery


class Executor:
    """
    Executors group the statements run against one kind of database. Subclass
    a dialect executor such as `SQLiteExecutor` rather than this class, and
    declare one method per statement.
    """

    _queries: Dict[str, SQLQuery]
    _fallback_hydrator: Hydrator = Hydrator()
    _fallback_pool: Optional[BaseInterface] = None
    _loaded: bool = False
    ENABLED: bool = True

    def __init__(
        self,
        pool: Optional[BaseInterface] = None,
        hydrator: Optional[Hydrator] = None,
        timeout: Optional[float] = None,
        register: bool = True,
    ) -> None:
        """Base class for creating executors

        Args:
            pool (BaseInterface, optional): An interface used
                for a specific executor to override a global pool.
                Defaults to `None`.
            hydrator (Hydrator, optional): A hydrator used
                for a specific executor to override a global hydrator.
                Defaults to `None`.
            timeout (float, optional): Seconds a single statement may run
                before it is abandoned. Defaults to `None`.
            register (bool, optional): Whether to add the executor to the
                registry so it can be fetched with `Tome.get`.
                Defaults to `True`.

        Raises:
            TomeError: If a dependency is missing
        """
        if not self.ENABLED:
            raise TomeError(
                f"Cannot instantiate {self.__class__.__name__}. "
                "Perhaps you have a missing dependency?"
            )
        self._pool = pool or self.__class__._fallback_pool
        self._hydrator = hydrator
        self.timeout = timeout
        self._context: ContextVar[Tuple[Any, str]] = ContextVar("_context")
        if not self.__class__.__dict__.get("_loaded", False):
            self.__class__._load(strict=True)
        if register:
            Registry().register(self)

    @property
    def hydrator(self) -> Hydrator:
        """The assigned hydrator. Will return an instance specific hydrator
        if one was assigned.

        Returns:
            Hydrator: The hydrator
        """
        if self._hydrator:
            return self._hydrator
        return self._fallback_hydrator

    @property
    def pool(self) -> BaseInterface:
        """The assigned pool. Will return an instance specific pool
        if one was assigned.

        Raises:
            TomeError: When no pool has been assigned yet

        Returns:
            BaseInterface: The pool interface
        """
        if self._pool is None:
            raise TomeError(
                f"{self.__class__.__name__} has no database interface. "
                "Pass a pool or load it with Tome(dsn=...)"
            )
        return self._pool

    def execute(
        self,
        query: str,
        name: str = "",
        model: Optional[Type[object]] = None,
        as_list: bool = False,
        allow_none: bool = False,
        posargs: Optional[Sequence[Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ):
        """Low-level API to execute a query and hydrate the results

        Args:
            query (str): The query to be executed
            name (str, optional): The name of the query. Defaults to `""`.
            model (Type[object], optional): The model to be used
                for hydration. Defaults to `None`.
            as_list (bool, optional): Whether to return the results as a
                list of hydrated objects. Defaults to `False`.
            allow_none (bool, optional): Whether `None` is an acceptable return
                value. Defaults to `False`.
            posargs (Sequence[Any], optional): Positional arguments.
                Defaults to `None`.
            params (Dict[str, Any], optional): Keyword arguments.
                Defaults to `None`.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} does not define execute"
        )

    def get_query(self, name: Optional[str] = None) -> SQLQuery:
        """Return a query

        Args:
            name (str, optional): The name of the query to be
                retrieved. If no name is supplied, it will look for the query
                by the name of the calling method. Defaults to `None`.

        Raises:
            TomeError: When the query could not be found

        Returns:
            SQLQuery: A query object
        """
        if not name:
            for frame in stack():
                if self.is_query_name(frame.function):
                    name = frame.function
                    break
            if not name:
                raise TomeError("Could not find query. Please specify a name.")
        try:
            return self._queries[name]
        except KeyError as e:
            raise TomeError(
                f"{self.__class__.__name__} has no query {name}"
            ) from e

    @classmethod
    def _load(cls, strict: bool) -> None:
        cls._queries = {}
        cls._loaded = True

    @classmethod
    def is_query_name(cls, name: str) -> bool:
        """Whether a method name marks it as a query

        Args:
            name (str): The method name

        Returns:
            bool: is it valid
        """
        return False


def is_auto_exec(func) -> bool:
    """Whether a method has no body of its own, in which case its `@query`
    SQL is run for it.

    Example:

    Each of these bodies counts as empty:

    ```python
    async def method_ellipsis(self) -> None:
        ...

    async def method_pass(self) -> None:
        pass

    async def method_docstring(self) -> None:
        '''This is a docstring'''
    ```

    Args:
        func: The executor method

    Returns:
        bool: True when the body is `...`, `pass` or only a docstring
    """
    src = dedent(getsource(func))
    tree = parse(src)

    assert isinstance(tree.body[0], (FunctionDef, AsyncFunctionDef))
    body = tree.body[0].body

    return len(body) == 1 and (
        (
            isinstance(body[0], Expr)
            and isinstance(body[0].value, Constant)
            and (
                body[0].value.value is Ellipsis
                or (
                    isinstance(body[0].value.value, str)
                    and cleandoc(body[0].value.value)
                    == cleandoc(getdoc(func) or "")
                )
            )
        )
        or isinstance(body[0], Pass)
    )
