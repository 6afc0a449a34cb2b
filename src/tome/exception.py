class TomeError(Exception):
    """Base exception for all tome errors"""


class MissingSQL(TomeError):
    ...


class RecordNotFound(TomeError):
    ...


class ParameterError(TomeError):
    """Raised when a statement is missing a bound value, or a value does not
    match its declared type. Always raised before reaching the database."""


class DatabaseConnectionError(TomeError):
    """Raised when a connection cannot be established or authenticated"""


class DatabaseError(TomeError):
    """Raised when the database rejects a statement, or a statement times
    out"""


class InsertionError(TomeError):
    """Raised by the insertion workflow after the transaction was rolled
    back"""

    def __init__(self, message: str, original: BaseException) -> None:
        super().__init__(message)
        self.original = original


class TransactionError(TomeError):
    """Raised when a transaction is used out of order"""


class TransactionTimeoutError(TransactionError, DatabaseError):
    """Raised when a transaction outlives its timeout"""
