from inspect import isclass
from typing import Optional, Sequence, Type, TypeVar, Union

from tome.base import Executor, Hydrator
from tome.base.interface import BaseInterface
from tome.endpoint import Endpoint
from tome.exception import TomeError
from tome.registry import InterfaceRegistry, Registry
from tome.sql.executor import SQLExecutor
from tome.sql.mysql.interface import MysqlPool
from tome.sql.postgres.interface import PostgresPool
from tome.sql.sqlite.interface import SQLitePool
from tome.sql.sqlserver.interface import SQLServerPool
from tome.transaction import Transaction

T = TypeVar("T", bound=Executor)
INTERFACES = (SQLitePool, PostgresPool, MysqlPool, SQLServerPool)


def create_interface(
    endpoint: Union[str, Endpoint], **kwargs
) -> BaseInterface:
    """Create a database interface for the dialect of an endpoint

    Args:
        endpoint (Union[str, Endpoint]): Where the database lives
        **kwargs: Passed on to the interface, eg. `timeout` or `max_size`

    Raises:
        TomeError: When no interface handles the dialect

    Returns:
        BaseInterface: The interface, not yet open
    """
    endpoint = Endpoint.parse(endpoint)
    for interface_type in (*INTERFACES, *BaseInterface.registered_interfaces):
        if interface_type.dialect == endpoint.dialect:
            return interface_type(endpoint, **kwargs)
    raise TomeError(f"No interface available for {endpoint.dialect}")


class Tome:
    """Main entryway for initializing access to the data layer.

    Example:

    ```python
    async def run():
        tome = Tome(
            executors=[SQLiteBookExecutor],
            dsn="sqlite:///books.db",
        )
        await tome.connect()
        executor = Tome.get(SQLiteBookExecutor)
        books = await executor.select_all_books()
    ```
    """

    def __init__(
        self,
        *,
        executors: Optional[Sequence[Union[Type[Executor], Executor]]] = None,
        dsn: Union[str, Endpoint] = "",
        hydrator: Optional[Hydrator] = None,
        pool: Optional[BaseInterface] = None,
        strict: bool = True,
        min_size: int = 1,
        max_size: Optional[int] = None,
        timeout: Optional[float] = None,
        statistics_enabled: bool = False,
    ):
        """Initializer for Tome instance

        The `dsn` and the `pool` are mutually exclusive. If one exists, it
        will be used as the fallback interface for every executor that does
        not define its own.

        Similarly, the `hydrator` is used in the case that an executor does
        not define a hydrator. If one is not provided, then a generic
        hydrator instance will be created.

        Args:
            executors (Sequence[Union[Type[Executor], Executor]], optional):
                Executors that are being loaded at initialization time.
                Defaults to `None`.
            dsn (Union[str, Endpoint], optional): DSN or connection string
                to the data source. Defaults to `""`.
            hydrator (Hydrator, optional): Fallback hydrator to use if not
                specified. Defaults to `None`.
            pool (BaseInterface, optional): Fallback database interface.
                Defaults to `None`.
            strict (bool, optional): Whether to raise an error if there is
                an empty method but no query. Defaults to `True`.
            timeout (float, optional): Seconds to wait while connecting.
                Defaults to `None`.
            statistics_enabled (bool, optional): Whether the interface
                created from the `dsn` collects statistics.
                Defaults to `False`.

        Raises:
            TomeError: If there is conflicting data access source
        """
        if pool and dsn:
            raise TomeError("Conflict with pool and DSN")

        if not pool and dsn:
            pool = create_interface(
                dsn,
                min_size=min_size,
                max_size=max_size,
                timeout=timeout,
                statistics_enabled=statistics_enabled,
            )

        self.pool = pool
        self.strict = strict
        self.load(executors=executors or [], hydrator=hydrator, pool=pool)

        if hydrator is None:
            hydrator = Hydrator()

        Executor._fallback_hydrator = hydrator
        Executor._fallback_pool = pool

    @staticmethod
    def get(executor: Type[T]) -> T:
        """Fetch the registered instance of an executor

        Example:

        ```python
        from tome import Tome
        from my.package.executors import BookExecutor

        async def some_func():
            executor = Tome.get(BookExecutor)
            books = await executor.select_all_books()
            ...
        ```

        Args:
            executor (Type[T]): The class of the registered executor instance

        Raises:
            TomeError: If the passed executor has not been registered

        Returns:
            Executor: The executor instance
        """
        instance = Registry().get(executor.__name__)
        if instance is None or isclass(instance):
            raise TomeError(f"{executor} has not been registered")
        return instance

    def register(self, executor: Executor) -> None:
        """Register an Executor instance

        Args:
            executor (Executor): The instance to be registered
        """
        Registry().register(executor)

    def reset_registry(self):
        """Empty the executor registry"""
        Registry.reset()

    def load(
        self,
        *,
        executors: Sequence[Union[Type[Executor], Executor]],
        hydrator: Optional[Hydrator] = None,
        pool: Optional[BaseInterface] = None,
        strict: Optional[bool] = None,
    ) -> None:
        """Instantiate and register executors, and load their queries

        Args:
            executors (Sequence[Union[Type[Executor], Executor]]): The
                executor classes or instances to be registered
            hydrator (Hydrator, optional): Fallback hydrator to use if not
                specified. Defaults to `None`.
            pool (BaseInterface, optional): Fallback database interface.
                Defaults to `None`.
            strict (bool, optional): Whether to raise an error if there is
                an empty method but no query. Defaults to `True`.

        Raises:
            TomeError: If an executor has no database interface of its own
                and there is no fallback
        """
        to_load = list(executors)
        to_load.extend(
            executor
            for executor in Registry().values()
            if executor not in to_load
        )
        strict = strict if strict is not None else self.strict
        for executor in to_load:
            if isclass(executor):
                registered = Registry().get(executor.__name__)
                if isinstance(registered, Executor):
                    executor = registered
                else:
                    if not executor.__dict__.get("_loaded"):
                        executor._load(strict)
                    executor = executor(pool=pool, hydrator=hydrator)

            if executor._pool is None:
                if not pool:
                    raise TomeError(f"Cannot load {executor} without a pool")
                executor._pool = pool

            executor_class = executor.__class__
            if not executor_class.__dict__.get("_loaded"):
                executor_class._load(strict)

    async def connect(self) -> None:
        """Connect to all database interfaces"""
        for interface in InterfaceRegistry():
            await interface.open()

    async def disconnect(self) -> None:
        """Disconnect from all database interfaces"""
        for interface in InterfaceRegistry():
            await interface.close()

    @classmethod
    def transaction(
        cls,
        executor: Union[SQLExecutor, Type[SQLExecutor]],
        timeout: Optional[float] = None,
    ) -> Transaction:
        """Create a transaction on the interface of an executor

        Example:

        ```python
        async with Tome.transaction(BookExecutor) as txn:
            executor = Tome.get(BookExecutor)
            await executor.insert_book(...)
        ```

        Args:
            executor (Union[SQLExecutor, Type[SQLExecutor]]): A registered
                executor, or its class
            timeout (float, optional): Seconds before the transaction is
                rolled back instead of committed. Defaults to `None`.

        Raises:
            TomeError: If the executor is not a registered SQL executor
        """
        if isclass(executor):
            executor = cls.get(executor)
        if not isinstance(executor, SQLExecutor):
            raise TomeError(
                f"Transactions need a SQL executor, got {type(executor)}"
            )
        return executor.transaction(timeout=timeout)
