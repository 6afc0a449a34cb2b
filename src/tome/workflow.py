"""
Transactional insertion of books.

`BookInsertWorkflow` owns one interface for the duration of a run: it
opens it, inserts every record inside a single transaction and closes it
again on every exit path. Either all books are inserted and their
identities returned in input order, or none are.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

from tome.base.interface import BaseInterface
from tome.books import INSERT_BOOK, BookRecord, bind_book, get_book_executor
from tome.endpoint import Endpoint
from tome.exception import DatabaseError, InsertionError
from tome.registry import InterfaceRegistry
from tome.tome import create_interface
from tome.transaction import Transaction

logger = logging.getLogger(__name__)

Record = Union[BookRecord, Mapping[str, Any]]


class BookInsertWorkflow:
    def __init__(
        self,
        endpoint: Union[str, Endpoint],
        timeout: Optional[float] = None,
        statement_timeout: Optional[float] = None,
        transaction_timeout: Optional[float] = None,
    ) -> None:
        """Insert books atomically into the database at `endpoint`

        Args:
            endpoint (Union[str, Endpoint]): Where the database lives
            timeout (float, optional): Seconds to wait while connecting.
                Defaults to `None`.
            statement_timeout (float, optional): Seconds a single insert
                may take. Defaults to `None`.
            transaction_timeout (float, optional): Seconds the whole
                transaction may take before it is rolled back instead of
                committed. Defaults to `None`.
        """
        self.endpoint = Endpoint.parse(endpoint)
        self.timeout = timeout
        self.statement_timeout = statement_timeout
        self.transaction_timeout = transaction_timeout
        self.pool: Optional[BaseInterface] = None
        self.transaction: Optional[Transaction] = None

    async def run(self, records: Iterable[Record]) -> List[int]:
        """Insert the records in order, inside one transaction

        Args:
            records (Iterable[Record]): The books to insert

        Raises:
            ParameterError: If a record is missing a field or has a
                mistyped one. Nothing is opened in that case.
            DatabaseConnectionError: If the database cannot be reached
            InsertionError: If an insert, or the commit, failed. The
                transaction was rolled back.

        Returns:
            List[int]: The identity of each inserted book, in input order
        """
        bound = [bind_book(record) for record in records]

        self.pool = pool = create_interface(
            self.endpoint, timeout=self.timeout
        )
        try:
            await pool.open()
            executor = get_book_executor(
                pool, timeout=self.statement_timeout, register=False
            )
            self.transaction = transaction = executor.transaction(
                timeout=self.transaction_timeout
            )

            identities: List[int] = []
            try:
                async with transaction:
                    for parameters in bound:
                        identity = await executor.execute_identity(
                            INSERT_BOOK, params=parameters
                        )
                        logger.debug("Record with id %s added", identity)
                        identities.append(identity)
            except DatabaseError as e:
                logger.error(
                    "Insertion failed in %s, rolled back: %s",
                    transaction.transaction_id,
                    e,
                )
                raise InsertionError(str(e), e) from e

            logger.info(
                "Inserted %s book(s) in %s",
                len(identities),
                transaction.transaction_id,
            )
            return identities
        finally:
            await self._release(pool)

    async def _release(self, pool: BaseInterface) -> None:
        try:
            await pool.close()
        except Exception as e:
            logger.warning("Error closing %s: %s", pool, e)
        finally:
            InterfaceRegistry.discard(pool)


async def insert_books(
    endpoint: Union[str, Endpoint], records: Iterable[Record], **kwargs
) -> List[int]:
    """Insert books atomically and return their identities in input order.
    See `BookInsertWorkflow` for the keyword arguments."""
    return await BookInsertWorkflow(endpoint, **kwargs).run(records)
