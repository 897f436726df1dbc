"""
Paginated table reads and ad-hoc statement execution.
"""

import logging
import re
import sqlite3
from pathlib import Path

import pandas as pd
import sqlalchemy as sa
from sqlalchemy.exc import DBAPIError

from .connection import ConnectionManager
from .exceptions import InvalidIdentifierError, SqlError
from .history import HistoryStore
from .models import HistoryEntry, PageRequest, QueryKind, QueryResult, SortDirection, TableInfo
from .schema import SchemaInspector, table_clause

logger = logging.getLogger(__name__)

# First keywords of statements whose result is a row set
READ_KEYWORDS = frozenset({"select", "with", "pragma", "explain", "values"})

CHANGES_COLUMN = "Changes"

_LEADING_NOISE = re.compile(r"(?:\s+|--[^\n]*(?:\n|$)|/\*.*?\*/)*", re.DOTALL)
_FIRST_WORD = re.compile(r"[A-Za-z_]+")

ENGINE_ERRORS = (DBAPIError, sqlite3.Error, sqlite3.Warning)


def classify_statement(sql: str) -> QueryKind:
    """
    Classify an ad-hoc statement by its first keyword.

    Leading whitespace and SQL comments are skipped and the keyword is
    compared case-insensitively.
    """
    body = sql[_LEADING_NOISE.match(sql).end():]
    match = _FIRST_WORD.match(body)
    if match and match.group(0).lower() in READ_KEYWORDS:
        return QueryKind.READ
    return QueryKind.WRITE


def engine_error(error: Exception) -> SqlError:
    """Wrap a driver failure, keeping SQLite's own message."""
    orig = getattr(error, "orig", None)
    return SqlError(str(orig if orig is not None else error))


class QueryExecutor:
    """Builds and runs paginated reads and raw SQL against the open database."""

    def __init__(self, manager: ConnectionManager, schema: SchemaInspector, history: HistoryStore | None = None):
        self._manager = manager
        self._schema = schema
        self._history = history

    def fetch_page(self, request: PageRequest) -> QueryResult:
        """
        Read one page of a table.

        Args:
            request: Table, page number, page size and optional sort

        Returns:
            QueryResult with the page's rows and the table's total row count

        Raises:
            SchemaNotFoundError: If the table doesn't exist
            InvalidIdentifierError: If the sort column is not in the table
            NoActiveConnectionError: If no database is open
        """
        info = TableInfo(name=request.table, columns=self._schema.describe_table(request.table))
        if request.sort_column is not None and request.sort_column not in info.column_names:
            raise InvalidIdentifierError(
                f"Column '{request.sort_column}' not found in table '{request.table}'"
            )

        table = table_clause(info.name, info.columns)
        count_stmt = sa.select(sa.func.count()).select_from(table)
        rows_stmt = (
            sa.select(sa.literal_column("*"))
            .select_from(table)
            .limit(request.page_size)
            .offset(request.offset)
        )
        if request.sort_column is not None:
            rows_stmt = rows_stmt.order_by(*self._order_by(table, info, request))

        logger.debug("Fetching page %d of %s: %s", request.page, request.table, rows_stmt)
        try:
            with self._manager.connect() as conn:
                total = conn.execute(count_stmt).scalar_one()
                result = conn.execute(rows_stmt)
                columns = list(result.keys())
                rows = [dict(row) for row in result.mappings()]
        except ENGINE_ERRORS as e:
            raise engine_error(e) from e

        return QueryResult(columns=columns, rows=rows, total=total, kind=QueryKind.READ)

    @staticmethod
    def _order_by(table: sa.TableClause, info: TableInfo, request: PageRequest) -> list:
        # A unique tie-breaker makes DESC the exact reverse of ASC
        keys = [table.c[request.sort_column]]
        if info.primary_key is None:
            keys.append(sa.literal_column("rowid"))
        elif info.primary_key != request.sort_column:
            keys.append(table.c[info.primary_key])

        if request.sort_direction is SortDirection.DESC:
            return [key.desc() for key in keys]
        return [key.asc() for key in keys]

    def execute(self, sql: str) -> QueryResult:
        """
        Run a raw SQL statement.

        Reads return every row with columns taken from the first row. Writes
        return a single ``Changes`` column holding the affected-row count.

        Args:
            sql: One SQL statement

        Returns:
            QueryResult of kind READ or WRITE

        Raises:
            SqlError: If SQLite rejects or fails the statement
            NoActiveConnectionError: If no database is open
        """
        if not sql or not sql.strip():
            raise SqlError("Query is empty")

        kind = classify_statement(sql)
        logger.debug("Executing %s statement: %s", kind.value, sql)
        try:
            with self._manager.begin() as conn:
                result = conn.exec_driver_sql(sql)
                if kind is QueryKind.READ and not result.returns_rows:
                    # WITH ... DELETE and similar data-changing statements
                    kind = QueryKind.WRITE
                if kind is QueryKind.READ:
                    rows = [dict(row) for row in result.mappings()]
                    outcome = QueryResult(columns=list(rows[0]) if rows else [], rows=rows, kind=kind)
                else:
                    changes = max(result.rowcount, 0)
                    outcome = QueryResult(columns=[CHANGES_COLUMN], rows=[{CHANGES_COLUMN: changes}], kind=kind)
        except ENGINE_ERRORS as e:
            raise engine_error(e) from e

        if self._history is not None:
            self._history.record_query(HistoryEntry(query=sql))
        return outcome

    def export_table_to_csv(self, table_name: str, output_path: str | Path, chunksize: int | None = None) -> int:
        """
        Export a table to CSV file.

        Args:
            table_name: Name of the table to export
            output_path: Path to output CSV file
            chunksize: If specified, write data in chunks of this size.
                       Useful for memory-efficient export of large tables.

        Returns:
            Number of rows written

        Raises:
            SchemaNotFoundError: If table doesn't exist
        """
        columns = self._schema.describe_table(table_name)
        stmt = sa.select(sa.literal_column("*")).select_from(table_clause(table_name, columns))
        written = 0

        try:
            with self._manager.connect() as conn:
                if chunksize is None:
                    df = pd.read_sql(stmt, conn)
                    df.to_csv(output_path, index=False)
                    return len(df)

                first_chunk = True
                for chunk in pd.read_sql(stmt, conn, chunksize=chunksize):
                    chunk.to_csv(output_path, index=False, mode="w" if first_chunk else "a", header=first_chunk)
                    first_chunk = False
                    written += len(chunk)
        except ENGINE_ERRORS as e:
            raise engine_error(e) from e

        # If no chunks were written (empty table), create file with headers only
        if first_chunk:
            pd.DataFrame(columns=[col.name for col in columns]).to_csv(output_path, index=False)
        return written
