"""
Table and column metadata read from the open database.
"""

import sqlalchemy as sa
from sqlalchemy import inspect, text

from .connection import ConnectionManager
from .exceptions import SchemaNotFoundError
from .models import ColumnInfo, TableInfo

# pragma_table_info takes the table name as a bound value
_COLUMNS_SQL = text(
    'SELECT name, type, "notnull", dflt_value, pk FROM pragma_table_info(:table) ORDER BY cid'
)


def table_clause(table_name: str, columns: list[ColumnInfo]) -> sa.TableClause:
    """Lightweight table construct over schema-validated names, quoted by the compiler."""
    return sa.table(table_name, *(sa.column(col.name) for col in columns))


class SchemaInspector:
    """
    Reads schema information through the connection manager.

    Nothing is cached: every call reflects the database that is open right
    now, so a reconnect or a DDL statement is picked up immediately.
    """

    def __init__(self, manager: ConnectionManager):
        self._manager = manager

    def list_tables(self) -> list[str]:
        """
        Get list of all user tables in the database.

        Returns:
            Table names in lexical order

        Raises:
            NoActiveConnectionError: If no database is open
        """
        with self._manager.connect() as conn:
            # The SQLite dialect leaves out sqlite_* internal tables
            return sorted(inspect(conn).get_table_names())

    def describe_table(self, table_name: str) -> list[ColumnInfo]:
        """
        Get the columns of a table in declaration order.

        Args:
            table_name: Name of the table

        Returns:
            List of ColumnInfo

        Raises:
            SchemaNotFoundError: If table doesn't exist
            NoActiveConnectionError: If no database is open
        """
        with self._manager.connect() as conn:
            if table_name not in inspect(conn).get_table_names():
                raise SchemaNotFoundError(f"Table '{table_name}' not found")

            rows = conn.execute(_COLUMNS_SQL, {"table": table_name}).all()

        return [
            ColumnInfo(
                name=row.name,
                type=row.type or "",
                not_null=bool(row.notnull),
                primary_key=row.pk > 0,
                key_position=row.pk,
                default=row.dflt_value,
            )
            for row in rows
        ]

    def get_table_info(self, table_name: str, with_count: bool = False) -> TableInfo:
        """
        Get detailed information about a table.

        Args:
            table_name: Name of the table
            with_count: Also count the table's rows

        Returns:
            TableInfo object with column details

        Raises:
            SchemaNotFoundError: If table doesn't exist
        """
        info = TableInfo(name=table_name, columns=self.describe_table(table_name))
        if with_count:
            stmt = sa.select(sa.func.count()).select_from(table_clause(info.name, info.columns))
            with self._manager.connect() as conn:
                info.row_count = conn.execute(stmt).scalar_one()
        return info

    def primary_key(self, table_name: str) -> str | None:
        """Name of the table's primary-key column, or None when it has none."""
        return TableInfo(name=table_name, columns=self.describe_table(table_name)).primary_key
