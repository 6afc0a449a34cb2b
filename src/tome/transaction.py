"""
Transactions bound to a single database interface.

A `Transaction` acquires one connection when it begins and publishes it on
the interface so that every executor call made inside the transaction runs
on that connection. The connection is released when the transaction
commits or rolls back, whatever the outcome.
"""

from __future__ import annotations

import logging
import time
from contextlib import AsyncExitStack
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional
from uuid import uuid4

from tome.exception import (
    DatabaseConnectionError,
    DatabaseError,
    TomeError,
    TransactionError,
    TransactionTimeoutError,
)

if TYPE_CHECKING:
    from tome.base.interface import BaseInterface

logger = logging.getLogger(__name__)


class TransactionState(Enum):
    """Transaction state machine states"""

    PENDING = "pending"  # Created but not started
    ACTIVE = "active"  # Transaction has begun
    COMMITTED = "committed"  # Transaction committed successfully
    ROLLED_BACK = "rolled_back"  # Transaction was rolled back


class Transaction:
    def __init__(
        self, pool: BaseInterface, timeout: Optional[float] = None
    ) -> None:
        self.transaction_id = f"txn_{uuid4().hex[:8]}"
        self.pool = pool
        self.timeout = timeout
        self._state = TransactionState.PENDING
        self._stack: Optional[AsyncExitStack] = None
        self._connection: Any = None
        self._start_time = 0.0

        logger.debug(
            "Transaction %s created on %s", self.transaction_id, self.pool
        )

    def __str__(self) -> str:
        return f"<Transaction {self.transaction_id} ({self._state.value})>"

    async def begin(self) -> None:
        """Begin the transaction

        Raises:
            TransactionError: If the transaction was already begun, or the
                interface already has an active transaction
            DatabaseConnectionError: If no connection could be acquired
            DatabaseError: If the database refused to start the transaction
        """
        if self._state is not TransactionState.PENDING:
            raise TransactionError(
                f"Transaction {self.transaction_id} already "
                f"{self._state.value}"
            )
        if self.pool.in_transaction():
            raise TransactionError(
                f"{self.pool} already has an active transaction"
            )

        logger.debug("Beginning transaction %s", self.transaction_id)

        stack = AsyncExitStack()
        try:
            connection = await stack.enter_async_context(
                self.pool.connection(timeout=self.pool.timeout)
            )
        except TomeError:
            await stack.aclose()
            raise
        except Exception as e:
            await stack.aclose()
            raise DatabaseConnectionError(
                f"Failed to get connection for transaction "
                f"{self.transaction_id}: {e}"
            ) from e

        try:
            await self.pool.begin(connection)
        except Exception as e:
            await stack.aclose()
            raise DatabaseError(
                f"Failed to begin transaction {self.transaction_id}: {e}"
            ) from e
        except BaseException:
            await stack.aclose()
            raise

        self._stack = stack
        self._connection = connection
        self.pool._connection.set(connection)
        self.pool._transaction.set(self)
        self._state = TransactionState.ACTIVE
        self._start_time = time.monotonic()
        self.pool.record_transaction("begin")
        logger.info(
            "Transaction %s started successfully", self.transaction_id
        )

    async def commit(self) -> None:
        """Commit the transaction

        If the transaction outlived its timeout, or the commit fails, the
        transaction is rolled back instead.

        Raises:
            TransactionError: If the transaction is not active
            TransactionTimeoutError: If the transaction timed out
            DatabaseError: If the commit failed
        """
        self._ensure_active()
        logger.debug("Committing transaction %s", self.transaction_id)

        try:
            if self._expired():
                logger.warning(
                    "Transaction %s timed out, rolling back",
                    self.transaction_id,
                )
                await self._attempt_rollback("timeout")
                raise TransactionTimeoutError(
                    f"Transaction {self.transaction_id} timed out after "
                    f"{self.timeout} seconds"
                )

            try:
                await self.pool.commit(self._connection)
            except Exception as e:
                logger.error(
                    "Commit failed for %s, attempting rollback: %s",
                    self.transaction_id,
                    e,
                )
                await self._attempt_rollback("failed commit")
                raise DatabaseError(
                    f"Failed to commit transaction {self.transaction_id}: {e}"
                ) from e

            self._state = TransactionState.COMMITTED
            self.pool.record_transaction("commit")
            logger.info(
                "Transaction %s committed successfully", self.transaction_id
            )
        finally:
            await self._cleanup()

    async def rollback(self) -> None:
        """Rollback the transaction

        Raises:
            TransactionError: If the transaction is not active
            DatabaseError: If the database failed to roll back. The
                transaction is considered rolled back regardless.
        """
        self._ensure_active()
        logger.debug("Rolling back transaction %s", self.transaction_id)

        try:
            await self._rollback()
            logger.info(
                "Transaction %s rolled back successfully", self.transaction_id
            )
        except Exception as e:
            logger.critical(
                "CRITICAL: Rollback failed for %s: %s", self.transaction_id, e
            )
            raise DatabaseError(
                f"Failed to rollback transaction {self.transaction_id}: {e}"
            ) from e
        finally:
            await self._cleanup()

    async def _rollback(self) -> None:
        try:
            await self.pool.rollback(self._connection)
        finally:
            self._state = TransactionState.ROLLED_BACK
            self.pool.record_transaction("rollback")

    async def _attempt_rollback(self, reason: str) -> None:
        try:
            await self._rollback()
        except Exception as rollback_error:
            logger.critical(
                "Rollback after %s also failed: %s", reason, rollback_error
            )

    def _expired(self) -> bool:
        if self.timeout is None:
            return False
        return time.monotonic() - self._start_time > self.timeout

    def _ensure_active(self) -> None:
        if self._state is TransactionState.PENDING:
            raise TransactionError(
                f"Transaction {self.transaction_id} not begun"
            )
        if self._state is not TransactionState.ACTIVE:
            raise TransactionError(
                f"Transaction {self.transaction_id} already finalized"
            )

    async def _cleanup(self) -> None:
        """Release the connection and detach it from the interface"""
        self.pool._connection.set(None)
        self.pool._transaction.set(None)
        stack, self._stack = self._stack, None
        self._connection = None
        if stack is None:
            return
        try:
            await stack.aclose()
        except Exception as e:
            logger.error(
                "Error releasing connection of transaction %s: %s",
                self.transaction_id,
                e,
            )

    async def __aenter__(self) -> Transaction:
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._state is not TransactionState.ACTIVE:
            return False
        if exc_type is None:
            await self.commit()
            return False
        try:
            await self.rollback()
        except Exception as e:
            logger.error(
                "Error in context manager exit for %s: %s",
                self.transaction_id,
                e,
            )
        # Propagate the original exception
        return False

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def connection(self) -> Any:
        return self._connection

    @property
    def is_active(self) -> bool:
        return self._state is TransactionState.ACTIVE

    @property
    def is_committed(self) -> bool:
        return self._state is TransactionState.COMMITTED

    @property
    def is_rolled_back(self) -> bool:
        return self._state is TransactionState.ROLLED_BACK
