import asyncio
import logging
from datetime import date
from pathlib import Path

from tome import (
    BookRecord,
    create_interface,
    get_book_executor,
    insert_books,
    load_connection_string,
    log_statistics_report,
)

logger = logging.getLogger("books")

ROKA = BookRecord("Roka", "Toch", "42123", date(2000, 10, 8))
PROGRAMMER = BookRecord("Programmer", "Toch", "42123", date(2010, 10, 8))


async def open_connection(pool):
    await pool.open()
    print(f"{pool} is {pool.state.value}")


async def connection_information(pool):
    pool.add_state_listener(
        lambda previous, current: print(
            f"State changed from {previous.value} to {current.value}"
        )
    )
    pool.add_info_listener(lambda message: print(f"Info: {message}"))


async def command(executor):
    rows = await executor.run_sql(
        "SELECT Title, Publisher FROM Books ORDER BY Id", as_list=True
    )
    for row in rows:
        print(row)


async def non_query(executor):
    count = await executor.insert_book(
        BookRecord("Professional C#", "Wrox Press", "978", date(2018, 4, 2))
    )
    print(f"{count} book(s) inserted")


async def scalar(executor):
    print(f"{await executor.select_book_count()} book(s) in the catalog")


async def reader(executor):
    for book in await executor.select_books_by_title("pro%"):
        print(f"{book.id}: {book.title} ({book.release_date})")


async def stored_procedure(executor):
    for book in await executor.select_books_by_publisher("Wrox Press"):
        print(f"{book.title} by {book.publisher}")


async def async_read(executor):
    books = await executor.select_all_books()
    print(", ".join(book.title for book in books))


async def transaction(dsn):
    identities = await insert_books(dsn, [ROKA, PROGRAMMER])
    print(f"Inserted books with ids {identities}")


async def run():
    logging.basicConfig(level=logging.INFO)
    dsn = load_connection_string(Path(__file__).parent / "config.json")
    pool = create_interface(dsn, statistics_enabled=True)
    executor = get_book_executor(pool)

    await connection_information(pool)
    await open_connection(pool)
    await executor.create_books_table()
    await executor.create_books_procedure()

    await transaction(dsn)
    await non_query(executor)
    await command(executor)
    await scalar(executor)
    await reader(executor)
    await stored_procedure(executor)
    await async_read(executor)

    log_statistics_report(logger, pool)
    await pool.close()


asyncio.run(run())
