"""
Data models for studiodb database structures.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

import pandas as pd
from sqlalchemy import Engine


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionState(str, Enum):
    """Lifecycle state of the managed connection."""

    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"


class SortDirection(str, Enum):
    """Sort direction for paginated reads."""

    ASC = "asc"
    DESC = "desc"


class QueryKind(str, Enum):
    """Classification of an ad-hoc statement."""

    READ = "read"
    WRITE = "write"


@dataclass
class Connection:
    """A live handle to one SQLite database file."""

    path: Path
    engine: Engine
    readonly: bool = False
    state: ConnectionState = ConnectionState.OPEN
    generation: int = 0


@dataclass
class ColumnInfo:
    """Information about a database column."""

    name: str
    type: str
    not_null: bool = False
    primary_key: bool = False
    default: str | None = None
    # 1-based position in the primary key, 0 when not part of it
    key_position: int = 0

    @property
    def nullable(self) -> bool:
        return not self.not_null


@dataclass
class TableInfo:
    """Information about a database table."""

    name: str
    columns: list[ColumnInfo]
    row_count: int | None = None

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]

    @property
    def primary_key(self) -> str | None:
        """Name of the leading primary-key column, if any."""
        keyed = [col for col in self.columns if col.primary_key]
        if not keyed:
            return None
        return min(keyed, key=lambda col: col.key_position).name


@dataclass
class PageRequest:
    """A request for one page of a table's rows."""

    table: str
    page: int = 1
    page_size: int = 50
    sort_column: str | None = None
    sort_direction: SortDirection = SortDirection.ASC

    def __post_init__(self):
        if not isinstance(self.sort_direction, SortDirection):
            self.sort_direction = SortDirection(str(self.sort_direction).lower())
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class QueryResult:
    """Rows and column names returned by a read, or the change count of a write."""

    columns: list[str]
    rows: list[dict[str, Any]]
    total: int | None = None
    kind: QueryKind = QueryKind.READ

    @property
    def changes(self) -> int | None:
        """Affected-row count for a write, None for a read."""
        if self.kind is QueryKind.WRITE and self.rows:
            return self.rows[0]["Changes"]
        return None

    def to_dataframe(self) -> pd.DataFrame:
        """Convert the result rows to a pandas DataFrame."""
        return pd.DataFrame(self.rows, columns=self.columns)


@dataclass
class MutationResult:
    """Outcome of an INSERT."""

    changes: int
    last_row_id: int | None = None


@dataclass
class HistoryEntry:
    """An executed ad-hoc statement."""

    query: str
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class RecentInstallation:
    """A recently opened WordPress Studio installation."""

    root_dir: str
    database_path: str
    display_name: str
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class DatabaseInfo:
    """File and engine details about the open database."""

    path: str
    size: int
    modified: datetime
    sqlite_version: str
    table_count: int
    readonly: bool = False
