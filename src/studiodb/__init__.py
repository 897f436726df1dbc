"""
studiodb - browse and edit the SQLite database of a WordPress Studio site

This library opens the ``wp-content/database/.ht.sqlite`` file of a local
WordPress Studio installation and provides schema introspection, paginated
reads, ad-hoc SQL and primary-key based record editing on top of SQLAlchemy.
"""

from .config import Settings, get_settings
from .connection import ConnectionManager
from .exceptions import (
    CorruptDatabaseError,
    DatabaseConnectionError,
    DatabaseLockedError,
    DatabaseNotFoundError,
    InvalidIdentifierError,
    InvalidRecordError,
    NoActiveConnectionError,
    NoPrimaryKeyError,
    SchemaNotFoundError,
    SqlError,
    StudioDatabaseError,
    TableNotFoundError,
)
from .history import HistoryStore
from .installation import resolve_database_path
from .models import (
    ColumnInfo,
    Connection,
    ConnectionState,
    DatabaseInfo,
    HistoryEntry,
    MutationResult,
    PageRequest,
    QueryKind,
    QueryResult,
    RecentInstallation,
    SortDirection,
    TableInfo,
)
from .mutation import RecordMutator
from .query import QueryExecutor, classify_statement
from .schema import SchemaInspector
from .service import DatabaseService
from .watcher import ChangeWatcher

__version__ = "0.1.0"
__all__ = [
    "DatabaseService",
    "ConnectionManager",
    "SchemaInspector",
    "QueryExecutor",
    "RecordMutator",
    "ChangeWatcher",
    "HistoryStore",
    "Settings",
    "get_settings",
    "resolve_database_path",
    "classify_statement",
    "StudioDatabaseError",
    "DatabaseConnectionError",
    "DatabaseNotFoundError",
    "CorruptDatabaseError",
    "DatabaseLockedError",
    "NoActiveConnectionError",
    "SchemaNotFoundError",
    "TableNotFoundError",
    "InvalidIdentifierError",
    "NoPrimaryKeyError",
    "InvalidRecordError",
    "SqlError",
    "ColumnInfo",
    "Connection",
    "ConnectionState",
    "DatabaseInfo",
    "HistoryEntry",
    "MutationResult",
    "PageRequest",
    "QueryKind",
    "QueryResult",
    "RecentInstallation",
    "SortDirection",
    "TableInfo",
]
