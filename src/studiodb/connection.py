"""
Lifecycle of the single active SQLite connection.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import sqlalchemy as sa
from sqlalchemy import Engine, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.pool import StaticPool

from .exceptions import (
    CorruptDatabaseError,
    DatabaseConnectionError,
    DatabaseLockedError,
    DatabaseNotFoundError,
    NoActiveConnectionError,
)
from .models import Connection, ConnectionState

logger = logging.getLogger(__name__)

_LOCKED_MARKERS = ("locked", "busy")


class ConnectionManager:
    """
    Owns the one database connection of a session.

    Opening a new database closes the previous one first. Open, close and
    statement execution through :meth:`connect` / :meth:`begin` share one
    re-entrant lock, so a close always completes before the next open starts
    and never runs underneath an executing statement.
    """

    def __init__(self, busy_timeout: float = 5.0):
        """
        Args:
            busy_timeout: Seconds SQLite waits on a locked file before failing
        """
        self.busy_timeout = busy_timeout
        self._lock = threading.RLock()
        self._connection: Connection | None = None
        self._state = ConnectionState.CLOSED
        self._generation = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    def open(self, path: str | Path, readonly: bool = False) -> Connection:
        """
        Open a SQLite database file, closing the current one first.

        Args:
            path: Path to an existing SQLite file
            readonly: Open the file in read-only mode

        Returns:
            The new open Connection

        Raises:
            DatabaseNotFoundError: If the file does not exist
            CorruptDatabaseError: If SQLite does not accept the file
            DatabaseLockedError: If the file is locked by another process
        """
        db_path = Path(path).expanduser().resolve()
        with self._lock:
            self.close()
            self._state = ConnectionState.OPENING
            try:
                engine = self._create_engine(db_path, readonly)
            except BaseException:
                self._state = ConnectionState.CLOSED
                raise

            self._generation += 1
            self._connection = Connection(
                path=db_path,
                engine=engine,
                readonly=readonly,
                state=ConnectionState.OPEN,
                generation=self._generation,
            )
            self._state = ConnectionState.OPEN
            logger.info("Opened database %s (readonly=%s)", db_path, readonly)
            return self._connection

    def _create_engine(self, db_path: Path, readonly: bool) -> Engine:
        """Create a SQLAlchemy engine over one sqlite3 handle and verify the file."""
        if not db_path.is_file():
            raise DatabaseNotFoundError(f"Database file not found: {db_path}")

        # mode=rw keeps sqlite3 from creating a new empty file
        uri = f"{db_path.as_uri()}?mode={'ro' if readonly else 'rw'}"

        def _connect() -> sqlite3.Connection:
            return sqlite3.connect(uri, uri=True, timeout=self.busy_timeout, check_same_thread=False)

        engine = sa.create_engine("sqlite+pysqlite://", creator=_connect, poolclass=StaticPool)
        try:
            # Test the connection to ensure the file really is a database
            with engine.connect() as conn:
                conn.execute(text("SELECT count(*) FROM sqlite_master"))
        except (DBAPIError, sqlite3.Error) as e:
            engine.dispose()
            raise self._open_error(db_path, e) from e
        return engine

    @staticmethod
    def _open_error(db_path: Path, error: Exception) -> DatabaseConnectionError:
        orig = getattr(error, "orig", None) or error
        message = f"Cannot access database: {db_path}. Error: {orig}"
        if any(marker in str(orig).lower() for marker in _LOCKED_MARKERS):
            return DatabaseLockedError(message)
        return CorruptDatabaseError(message)

    def close(self) -> None:
        """Release the current connection. Safe to call when nothing is open."""
        with self._lock:
            connection = self._connection
            self._connection = None
            self._state = ConnectionState.CLOSED
            if connection is None:
                return
            connection.state = ConnectionState.CLOSED
            connection.engine.dispose()
            logger.info("Closed database %s", connection.path)

    def current(self) -> Connection:
        """
        Get the open connection.

        Raises:
            NoActiveConnectionError: If no database is open
        """
        with self._lock:
            if self._state is not ConnectionState.OPEN or self._connection is None:
                raise NoActiveConnectionError("No database is open")
            return self._connection

    def is_current(self, connection: Connection) -> bool:
        """Check whether ``connection`` is still the open connection."""
        # Lock-free so watcher threads never wait behind a running statement
        current = self._connection
        return current is connection and connection.state is ConnectionState.OPEN

    @contextmanager
    def connect(self) -> Iterator[sa.Connection]:
        """Yield a SQLAlchemy connection on the current database."""
        with self._lock:
            connection = self.current()
            with connection.engine.connect() as conn:
                yield conn

    @contextmanager
    def begin(self) -> Iterator[sa.Connection]:
        """Yield a SQLAlchemy connection inside a transaction that commits on success."""
        with self._lock:
            connection = self.current()
            with connection.engine.begin() as conn:
                yield conn

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
