from importlib.metadata import version

from .base.executor import Executor
from .base.hydrator import Hydrator
from .base.interface import ConnectionState
from .books import (
    Book,
    BookExecutor,
    BookHydrator,
    BookRecord,
    get_book_executor,
)
from .config import load_connection_string
from .decorator import query, register
from .endpoint import Endpoint
from .exception import (
    DatabaseConnectionError,
    DatabaseError,
    InsertionError,
    ParameterError,
    TomeError,
)
from .sql.mysql.executor import MysqlExecutor
from .sql.mysql.interface import MysqlPool
from .sql.postgres.executor import PostgresExecutor
from .sql.postgres.interface import PostgresPool
from .sql.sqlite.executor import SQLiteExecutor
from .sql.sqlite.interface import SQLitePool
from .sql.sqlserver.executor import SQLServerExecutor
from .sql.sqlserver.interface import SQLServerPool
from .statistics import log_statistics_report
from .tome import Tome, create_interface
from .transaction import Transaction, TransactionState
from .workflow import BookInsertWorkflow, insert_books

__version__ = version("tome")

__all__ = (
    "query",
    "register",
    "Book",
    "BookExecutor",
    "BookHydrator",
    "BookInsertWorkflow",
    "BookRecord",
    "ConnectionState",
    "DatabaseConnectionError",
    "DatabaseError",
    "Endpoint",
    "Executor",
    "Hydrator",
    "InsertionError",
    "MysqlExecutor",
    "MysqlPool",
    "ParameterError",
    "PostgresExecutor",
    "PostgresPool",
    "SQLiteExecutor",
    "SQLitePool",
    "SQLServerExecutor",
    "SQLServerPool",
    "Tome",
    "TomeError",
    "Transaction",
    "TransactionState",
    "create_interface",
    "get_book_executor",
    "insert_books",
    "load_connection_string",
    "log_statistics_report",
)
