from datetime import date

import pytest

from tome import Book, BookHydrator, BookRecord, get_book_executor
from tome.books import (
    BOOK_PARAMETERS,
    INSERT_BOOK,
    SQLiteBookExecutor,
    bind_book,
)
from tome.exception import DatabaseError, ParameterError, RecordNotFound

from .conftest import PROGRAMMER, ROKA


async def test_insert_book_returns_row_count(book_executor):
    assert await book_executor.insert_book(ROKA) == 1
    assert await book_executor.select_book_count() == 1


async def test_insert_book_returning_id(book_executor):
    first = await book_executor.insert_book_returning_id(ROKA)
    second = await book_executor.insert_book_returning_id(PROGRAMMER)
    assert first < second


async def test_select_all_books(book_executor):
    await book_executor.insert_book(ROKA)
    await book_executor.insert_book(PROGRAMMER)

    books = await book_executor.select_all_books()

    assert all(isinstance(book, Book) for book in books)
    assert [book.title for book in books] == ["Roka", "Programmer"]
    assert books[0].release_date == date(2000, 10, 8)
    assert books[1].isbn == "42123"


async def test_select_books_by_title_ignores_case(book_executor):
    await book_executor.insert_book(ROKA)
    await book_executor.insert_book(PROGRAMMER)

    books = await book_executor.select_books_by_title("ROKA%")

    assert [book.title for book in books] == ["Roka"]


async def test_select_books_by_title_no_match(book_executor):
    assert await book_executor.select_books_by_title("Professional%") == []


async def test_select_books_by_publisher(book_executor):
    await book_executor.insert_book(ROKA)
    await book_executor.insert_book(
        BookRecord("Professional C#", "Wrox Press", "978", date(2018, 4, 2))
    )

    books = await book_executor.select_books_by_publisher("Wrox Press")

    assert [book.title for book in books] == ["Professional C#"]


async def test_execute_scalar(book_executor):
    await book_executor.insert_book(ROKA)
    count = await book_executor.execute_scalar("SELECT COUNT(*) FROM Books")
    assert count == 1


async def test_execute_scalar_without_rows(book_executor):
    value = await book_executor.execute_scalar(
        "SELECT Title FROM Books WHERE Id = $id", params={"id": 1}
    )
    assert value is None


async def test_run_sql_returns_dicts(book_executor):
    await book_executor.insert_book(ROKA)
    rows = await book_executor.run_sql(
        "SELECT Title, Publisher FROM Books", as_list=True
    )
    assert rows == [{"Title": "Roka", "Publisher": "Toch"}]


async def test_execute_record_not_found(book_executor):
    with pytest.raises(RecordNotFound):
        await book_executor.execute(
            "SELECT * FROM Books WHERE Id = $id",
            model=Book,
            params={"id": 999},
        )


async def test_overlong_isbn_is_rejected_by_database(book_executor):
    record = BookRecord("Roka", "Toch", "9" * 21, date(2000, 10, 8))
    with pytest.raises(DatabaseError, match="CHECK constraint"):
        await book_executor.insert_book(record)
    assert await book_executor.select_book_count() == 0


async def test_missing_statement_value(book_executor):
    with pytest.raises(ParameterError, match="isbn"):
        await book_executor.execute_non_query(
            INSERT_BOOK,
            params={
                "title": "Roka",
                "publisher": "Toch",
                "release_date": "2000-10-08",
            },
        )


async def test_transaction_rolls_back_inserts(book_executor):
    with pytest.raises(RuntimeError):
        async with book_executor.transaction():
            await book_executor.insert_book(ROKA)
            raise RuntimeError("boom")
    assert await book_executor.select_book_count() == 0


async def test_transaction_commits_inserts(book_executor):
    async with book_executor.transaction() as transaction:
        await book_executor.insert_book(ROKA)
        await book_executor.insert_book(PROGRAMMER)
    assert transaction.is_committed
    assert await book_executor.select_book_count() == 2


async def test_executor_rollback(book_executor):
    async with book_executor.transaction() as transaction:
        await book_executor.insert_book(ROKA)
        await book_executor.rollback()
    assert transaction.is_rolled_back
    assert await book_executor.select_book_count() == 0


def test_bind_book_from_mapping():
    parameters = bind_book(
        {
            "title": "Roka",
            "publisher": "Toch",
            "isbn": "42123",
            "release_date": date(2000, 10, 8),
        }
    )
    assert list(parameters) == ["title", "publisher", "isbn", "release_date"]


def test_bind_book_rejects_other_types():
    with pytest.raises(ParameterError):
        bind_book(("Roka", "Toch", "42123", date(2000, 10, 8)))


def test_book_hydrator_maps_columns():
    book = BookHydrator().hydrate(
        {
            "id": 3,
            "title": "Roka",
            "publisher": "Toch",
            "isbn": "42123",
            "releasedate": "2000-10-08",
        },
        model=Book,
    )
    assert book == Book(3, "Roka", "Toch", "42123", date(2000, 10, 8))


def test_sqlite_table_ddl_checks_lengths():
    sql = SQLiteBookExecutor.create_table_sql("Books", "Id", BOOK_PARAMETERS)
    assert sql.startswith(
        "CREATE TABLE IF NOT EXISTS Books "
        "(Id INTEGER PRIMARY KEY AUTOINCREMENT, "
    )
    assert "Isbn TEXT(20) NOT NULL CHECK (length(Isbn) <= 20)" in sql
    assert "ReleaseDate DATE NOT NULL" in sql


async def test_get_book_executor_matches_dialect(sqlite_pool):
    executor = get_book_executor(sqlite_pool, register=False)
    assert isinstance(executor, SQLiteBookExecutor)
    assert isinstance(executor.hydrator, BookHydrator)
