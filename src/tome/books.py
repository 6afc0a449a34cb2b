"""
The `Books` catalog: its model, declared columns and executors.

Every dialect gets its own `BookExecutor` subclass so that the same
methods run against SQLite, PostgreSQL, MySQL and SQL Server. Use
`get_book_executor` to pick the right one for an interface.
"""

from __future__ import annotations

import inspect
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from tome.base.hydrator import Hydrator, to_date
from tome.base.interface import BaseInterface
from tome.decorator import query
from tome.exception import ParameterError, TomeError
from tome.parameters import Parameter, SqlType, StatementParameters
from tome.sql.executor import SQLExecutor
from tome.sql.mysql.executor import MysqlExecutor
from tome.sql.postgres.executor import PostgresExecutor
from tome.sql.sqlite.executor import SQLiteExecutor
from tome.sql.sqlserver.executor import SQLServerExecutor

TABLE = "Books"
IDENTITY = "Id"
PROCEDURE = "GetBooksByPublisher"

BOOK_PARAMETERS = (
    Parameter("title", "Title", SqlType.NVARCHAR, 50),
    Parameter("publisher", "Publisher", SqlType.NVARCHAR, 50),
    Parameter("isbn", "Isbn", SqlType.NVARCHAR, 20),
    Parameter("release_date", "ReleaseDate", SqlType.DATE),
)

INSERT_BOOK = (
    "INSERT INTO Books (Title, Publisher, Isbn, ReleaseDate) "
    "VALUES ($title, $publisher, $isbn, $release_date)"
)
SELECT_BOOKS = "SELECT Id, Title, Publisher, Isbn, ReleaseDate FROM Books"
SELECT_BOOKS_BY_PUBLISHER = (
    f"{SELECT_BOOKS} WHERE Publisher = $publisher ORDER BY Id"
)


@dataclass
class Book:
    id: int
    title: str
    publisher: str
    isbn: str
    release_date: Optional[date] = None


@dataclass(frozen=True)
class BookRecord:
    """A book that has not been inserted yet, so it has no identity"""

    title: str
    publisher: str
    isbn: str
    release_date: date

    def parameters(self) -> StatementParameters:
        return StatementParameters(BOOK_PARAMETERS, asdict(self))


def bind_book(
    record: Union[BookRecord, Mapping[str, Any]]
) -> StatementParameters:
    """Bind the insert parameters of a book

    Args:
        record (Union[BookRecord, Mapping[str, Any]]): The book, either as
            a `BookRecord` or a mapping of field name to value

    Raises:
        ParameterError: When a field is missing, unexpected or mistyped

    Returns:
        StatementParameters: The values for `INSERT_BOOK`
    """
    if isinstance(record, BookRecord):
        return record.parameters()
    if isinstance(record, Mapping):
        return StatementParameters(BOOK_PARAMETERS, record)
    raise ParameterError(f"Cannot bind {type(record).__name__} as a book")


class BookHydrator(Hydrator):
    """Casts `Books` rows into `Book`, whatever case the driver returns the
    column names in"""

    COLUMNS = {
        "id": "id",
        "title": "title",
        "publisher": "publisher",
        "isbn": "isbn",
        "releasedate": "release_date",
    }

    def hydrate(
        self,
        data: Dict[str, Any],
        model: Type[object] = inspect.Parameter.empty,
    ):
        if model is not Book:
            return super().hydrate(data, model)
        values = {
            self.COLUMNS[key.lower()]: value
            for key, value in data.items()
            if key.lower() in self.COLUMNS
        }
        if "release_date" in values:
            values["release_date"] = to_date(values["release_date"])
        return Book(**values)


class BookExecutor(SQLExecutor):
    PROCEDURE_SQL: Optional[str] = None

    def __init__(
        self,
        pool: Optional[BaseInterface] = None,
        hydrator: Optional[Hydrator] = None,
        timeout: Optional[float] = None,
        register: bool = True,
    ) -> None:
        super().__init__(
            pool=pool,
            hydrator=hydrator or BookHydrator(),
            timeout=timeout,
            register=register,
        )

    @query(
        """
        SELECT Id, Title, Publisher, Isbn, ReleaseDate
        FROM Books
        WHERE lower(Title) LIKE lower($pattern)
        ORDER BY Id
        """
    )
    async def select_books_by_title(self, pattern: str) -> List[Book]:
        """Books whose title matches a LIKE pattern, ignoring case"""

    @query(f"{SELECT_BOOKS} ORDER BY Id")
    async def select_all_books(self) -> List[Book]:
        ...

    @query("SELECT COUNT(*) AS BookCount FROM Books")
    async def select_book_count(self) -> int:
        ...

    async def select_books_by_publisher(self, publisher: str) -> List[Book]:
        """Books from one publisher, fetched through the stored procedure
        where the dialect has them"""
        if self.PROCEDURE_TEMPLATE is None:
            return await self.execute(
                SELECT_BOOKS_BY_PUBLISHER,
                model=Book,
                as_list=True,
                params={"publisher": publisher},
            )
        return await self.call_procedure(PROCEDURE, [publisher], model=Book)

    async def insert_book(
        self, record: Union[BookRecord, Mapping[str, Any]]
    ) -> int:
        """Insert a book

        Returns:
            int: The number of inserted rows
        """
        return await self.execute_non_query(
            INSERT_BOOK, params=bind_book(record)
        )

    async def insert_book_returning_id(
        self, record: Union[BookRecord, Mapping[str, Any]]
    ) -> int:
        """Insert a book

        Returns:
            int: The identity the database assigned to the book
        """
        return await self.execute_identity(
            INSERT_BOOK, params=bind_book(record)
        )

    async def create_books_table(self) -> None:
        await self.execute_non_query(
            self.create_table_sql(TABLE, IDENTITY, BOOK_PARAMETERS)
        )

    async def create_books_procedure(self) -> None:
        """Create `GetBooksByPublisher`. Dialects without stored procedures
        do nothing."""
        if self.PROCEDURE_SQL:
            await self.execute_non_query(self.PROCEDURE_SQL)


class SQLiteBookExecutor(BookExecutor, SQLiteExecutor):
    ...


class PostgresBookExecutor(BookExecutor, PostgresExecutor):
    PROCEDURE_SQL = (
        "CREATE OR REPLACE FUNCTION GetBooksByPublisher("
        "p_publisher VARCHAR) RETURNS SETOF Books AS $$ "
        "SELECT * FROM Books WHERE Publisher = p_publisher ORDER BY Id "
        "$$ LANGUAGE sql"
    )


class MysqlBookExecutor(BookExecutor, MysqlExecutor):
    PROCEDURE_SQL = (
        "CREATE PROCEDURE IF NOT EXISTS GetBooksByPublisher("
        "IN p_publisher VARCHAR(50)) "
        f"{SELECT_BOOKS} WHERE Publisher = p_publisher ORDER BY Id"
    )


class SQLServerBookExecutor(BookExecutor, SQLServerExecutor):
    PROCEDURE_SQL = (
        "CREATE OR ALTER PROCEDURE GetBooksByPublisher "
        "@Publisher NVARCHAR(50) AS "
        f"{SELECT_BOOKS} WHERE Publisher = @Publisher ORDER BY Id"
    )


BOOK_EXECUTORS: Dict[str, Type[BookExecutor]] = {
    "sqlite": SQLiteBookExecutor,
    "postgres": PostgresBookExecutor,
    "mysql": MysqlBookExecutor,
    "sqlserver": SQLServerBookExecutor,
}


def get_book_executor(
    pool: BaseInterface,
    hydrator: Optional[Hydrator] = None,
    timeout: Optional[float] = None,
    register: bool = True,
) -> BookExecutor:
    """Create the book executor matching the dialect of an interface

    Raises:
        TomeError: When there is no executor for the dialect
    """
    try:
        executor_class = BOOK_EXECUTORS[pool.dialect]
    except KeyError as e:
        raise TomeError(f"No book executor for {pool.dialect}") from e
    return executor_class(
        pool=pool, hydrator=hydrator, timeout=timeout, register=register
    )
