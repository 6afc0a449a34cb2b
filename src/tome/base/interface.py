from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from contextvars import ContextVar
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Set,
    Type,
    Union,
)

from tome.endpoint import Endpoint
from tome.exception import DatabaseConnectionError, TomeError
from tome.registry import InterfaceRegistry
from tome.statistics import ConnectionStatistics

if TYPE_CHECKING:
    from tome.transaction import Transaction

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    CLOSED = "Closed"
    OPEN = "Open"


StateListener = Callable[[ConnectionState, ConnectionState], None]
InfoListener = Callable[[str], None]


class BaseInterface(ABC):
    """A connection to a database, possibly backed by a pool.

    Subclasses supply the driver specific `_open`, `_close` and
    `connection` methods, and may override the `begin`, `commit` and
    `rollback` hooks used by `tome.transaction.Transaction`.
    """

    dialect = "dummy"
    registered_interfaces: Set[Type[BaseInterface]] = set()

    def __init_subclass__(cls) -> None:
        BaseInterface.registered_interfaces.add(cls)

    @abstractmethod
    def _setup_pool(self): ...

    @abstractmethod
    async def _open(self): ...

    @abstractmethod
    async def _close(self): ...

    @abstractmethod
    def connection(self, timeout: Optional[float] = None): ...

    def __init__(
        self,
        endpoint: Union[str, Endpoint],
        min_size: int = 1,
        max_size: Optional[int] = None,
        timeout: Optional[float] = None,
        statistics_enabled: bool = False,
    ) -> None:
        """Interface initialization.

        Args:
            endpoint (Union[str, Endpoint]): Where the database lives. A
                string is parsed with `Endpoint.parse`
            min_size (int, optional): Minimum number of connections in pool.
                Defaults to 1
            max_size (int, optional): Maximum number of connections in pool.
                Defaults to None
            timeout (float, optional): Seconds to wait while connecting.
                Defaults to None
            statistics_enabled (bool, optional): Whether to collect
                connection statistics. Defaults to False

        Raises:
            TomeError: If the endpoint belongs to another dialect
        """
        self._endpoint = Endpoint.parse(endpoint)
        if self._endpoint.dialect != self.dialect:
            raise TomeError(
                f"{self.__class__.__name__} cannot connect to "
                f"{self._endpoint.dialect} endpoint {self._endpoint}"
            )

        self._min_size = min_size
        self._max_size = max_size
        self._timeout = timeout
        self._state = ConnectionState.CLOSED
        self._state_listeners: List[StateListener] = []
        self._info_listeners: List[InfoListener] = []
        self.statistics_enabled = statistics_enabled
        self._statistics = ConnectionStatistics()
        self._connection: ContextVar[Any] = ContextVar(
            "connection", default=None
        )
        self._transaction: ContextVar[Optional[Transaction]] = ContextVar(
            "transaction", default=None
        )

        self._setup_pool()
        InterfaceRegistry.add(self)

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self.dsn}>"

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def dsn(self) -> str:
        return self._endpoint.dsn

    @property
    def full_dsn(self) -> str:
        return self._endpoint.full_dsn

    @property
    def host(self):
        return self._endpoint.host

    @property
    def port(self):
        return self._endpoint.port

    @property
    def user(self):
        return self._endpoint.user

    @property
    def password(self):
        return self._endpoint.password

    @property
    def db(self):
        return self._endpoint.database

    @property
    def min_size(self):
        return self._min_size

    @property
    def max_size(self):
        return self._max_size

    @property
    def timeout(self):
        return self._timeout

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    async def open(self) -> None:
        """Open the connection, or the connections of the pool

        Raises:
            DatabaseConnectionError: If the database cannot be reached or
                refuses the credentials
        """
        if self.is_open:
            return
        try:
            try:
                await asyncio.wait_for(self._open(), timeout=self._timeout)
            except BaseException:
                await self._discard_partial_open()
                raise
        except TomeError:
            raise
        except asyncio.TimeoutError as e:
            raise DatabaseConnectionError(
                f"Timeout connecting to {self.dsn} after "
                f"{self._timeout} seconds"
            ) from e
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to connect to {self.dsn}: {e}"
            ) from e
        self._statistics.connected()
        self._set_state(ConnectionState.OPEN)

    async def _discard_partial_open(self) -> None:
        """Release whatever a failed `_open` already acquired"""
        try:
            await self._close()
        except Exception as e:
            logger.warning("Error closing %s after failed open: %s", self, e)

    async def close(self) -> None:
        """Close the connection, or the connections of the pool"""
        if not self.is_open:
            return
        try:
            await self._close()
        finally:
            self._statistics.disconnected()
            self._set_state(ConnectionState.CLOSED)

    async def begin(self, connection) -> None:
        """Start a transaction on a connection"""

    async def commit(self, connection) -> None:
        await connection.commit()

    async def rollback(self, connection) -> None:
        await connection.rollback()

    def add_state_listener(self, listener: StateListener) -> None:
        """Call `listener(previous, current)` whenever the connection opens
        or closes"""
        self._state_listeners.append(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.remove(listener)

    def add_info_listener(self, listener: InfoListener) -> None:
        """Call `listener(message)` for every informational message the
        server sends, eg. PostgreSQL notices or SQL Server PRINT output"""
        self._info_listeners.append(listener)

    def remove_info_listener(self, listener: InfoListener) -> None:
        self._info_listeners.remove(listener)

    def _notify_info(self, message: str) -> None:
        logger.debug("%s info message: %s", self, message)
        for listener in list(self._info_listeners):
            listener(message)

    def _set_state(self, state: ConnectionState) -> None:
        previous, self._state = self._state, state
        if previous is state:
            return
        logger.debug(
            "%s previous state: %s, current state: %s",
            self,
            previous.value,
            state.value,
        )
        for listener in list(self._state_listeners):
            listener(previous, state)

    def retrieve_statistics(self) -> Dict[str, int]:
        return self._statistics.as_dict()

    def reset_statistics(self) -> None:
        self._statistics.reset()

    def record_execution(self, query: str, rows: int, started: float) -> None:
        if self.statistics_enabled:
            self._statistics.record_execution(query, rows, started)

    def record_transaction(self, event: str) -> None:
        if self.statistics_enabled:
            self._statistics.record_transaction(event)

    def existing_connection(self):
        return self._connection.get()

    def current_transaction(self) -> Optional[Transaction]:
        return self._transaction.get()

    def in_transaction(self) -> bool:
        return self._transaction.get() is not None