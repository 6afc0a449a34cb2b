from inspect import cleandoc

from tome.registry import Registry

QUERY_ATTRIBUTE = "__tome_query__"


def query(query: str):
    """Convenience decorator to supply a query to an executor method.

    Example:

    ```python
    from tome import SQLiteExecutor, query

    class BookExecutor(SQLiteExecutor):
        @query(
            '''
            SELECT *
            FROM Books
            WHERE Id = $book_id;
            '''
        )
        async def select_book(self, book_id: int) -> Book:
            ...
    ```

    Args:
        query (str): The query
    """

    def decorator(f):
        setattr(f, QUERY_ATTRIBUTE, cleandoc(query))
        return f

    return decorator


def register(cls):
    """Convenience decorator to preregister an executor

    Example:

    ```python
    from tome import PostgresExecutor, register

    @register
    class MyExecutor(PostgresExecutor):
        async def select_something(self) -> Something:
            ...
    ```
    """
    Registry().register(cls)
    return cls
