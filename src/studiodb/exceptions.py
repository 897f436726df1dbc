"""
Exception classes for studiodb database operations.
"""


class StudioDatabaseError(Exception):
    """Base exception for studiodb database operations."""

    pass


class DatabaseConnectionError(StudioDatabaseError):
    """Exception raised when a database connection cannot be opened."""

    pass


class DatabaseNotFoundError(DatabaseConnectionError):
    """Exception raised when the database file does not exist."""

    pass


class CorruptDatabaseError(DatabaseConnectionError):
    """Exception raised when SQLite rejects the file as a database."""

    pass


class DatabaseLockedError(DatabaseConnectionError):
    """Exception raised when the database file is locked or busy."""

    pass


class NoActiveConnectionError(StudioDatabaseError):
    """Exception raised when an operation needs an open connection and there is none."""

    pass


class SchemaNotFoundError(StudioDatabaseError):
    """Exception raised when a requested table is not found."""

    pass


TableNotFoundError = SchemaNotFoundError


class InvalidIdentifierError(StudioDatabaseError):
    """Exception raised when a column name is not part of the table schema."""

    pass


class NoPrimaryKeyError(StudioDatabaseError):
    """Exception raised when a mutation cannot resolve the primary key column."""

    pass


class InvalidRecordError(StudioDatabaseError):
    """Exception raised when a record payload is empty or malformed."""

    pass


class SqlError(StudioDatabaseError):
    """Exception raised when SQLite reports a syntax or constraint failure."""

    pass
