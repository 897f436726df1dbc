"""
Primary-key aware record updates, inserts and deletes.
"""

import logging
from collections.abc import Mapping
from typing import Any

import sqlalchemy as sa

from .connection import ConnectionManager
from .exceptions import InvalidIdentifierError, InvalidRecordError, NoPrimaryKeyError
from .models import MutationResult, TableInfo
from .query import ENGINE_ERRORS, engine_error
from .schema import SchemaInspector, table_clause

logger = logging.getLogger(__name__)


class RecordMutator:
    """
    Writes single records through parameterized UPDATE, INSERT and DELETE.

    Table and column names must appear in the table's schema; values are
    always bound parameters. Each call runs in its own transaction.
    """

    def __init__(self, manager: ConnectionManager, schema: SchemaInspector):
        self._manager = manager
        self._schema = schema

    def _table(self, table_name: str) -> TableInfo:
        return TableInfo(name=table_name, columns=self._schema.describe_table(table_name))

    def _validate_record(self, info: TableInfo, record: Mapping[str, Any]) -> None:
        if not isinstance(record, Mapping) or not record:
            raise InvalidRecordError(f"Record for table '{info.name}' must be a non-empty mapping")
        unknown = [name for name in record if name not in info.column_names]
        if unknown:
            raise InvalidIdentifierError(
                f"Columns {', '.join(map(repr, unknown))} not found in table '{info.name}'"
            )

    def _resolve_key(self, info: TableInfo, primary_key: str | None) -> str:
        if primary_key is not None:
            if primary_key not in info.column_names:
                raise InvalidIdentifierError(f"Column '{primary_key}' not found in table '{info.name}'")
            return primary_key
        if info.primary_key is None:
            raise NoPrimaryKeyError(f"Table '{info.name}' has no primary key")
        return info.primary_key

    def _run(self, stmt) -> tuple[int, int | None]:
        """Execute in a transaction; returns the rowcount and lastrowid."""
        logger.debug("Executing %s", stmt)
        try:
            with self._manager.begin() as conn:
                result = conn.execute(stmt)
                return result.rowcount, result.lastrowid
        except ENGINE_ERRORS as e:
            raise engine_error(e) from e

    def update(self, table_name: str, record: Mapping[str, Any], primary_key: str | None = None) -> int:
        """
        Update one record identified by its primary key.

        Args:
            table_name: Name of the table
            record: Column values, including the primary key value
            primary_key: Key column to use instead of the schema's primary key

        Returns:
            Number of affected rows; 0 when no row has that key anymore

        Raises:
            SchemaNotFoundError: If table doesn't exist
            NoPrimaryKeyError: If no key column can be resolved
            InvalidRecordError: If the record is empty or lacks the key value
            InvalidIdentifierError: If a column is not in the table
        """
        info = self._table(table_name)
        self._validate_record(info, record)
        key = self._resolve_key(info, primary_key)
        if key not in record:
            raise InvalidRecordError(f"Record has no value for key column '{key}'")

        values = {name: value for name, value in record.items() if name != key}
        if not values:
            raise InvalidRecordError(f"Record for table '{table_name}' has no columns to update")

        table = table_clause(info.name, info.columns)
        stmt = sa.update(table).where(table.c[key] == record[key]).values(values)
        changes, _ = self._run(stmt)
        logger.info("Updated %d row(s) in %s where %s=%r", changes, table_name, key, record[key])
        return changes

    def insert(self, table_name: str, record: Mapping[str, Any]) -> MutationResult:
        """
        Insert one record.

        Args:
            table_name: Name of the table
            record: Column values

        Returns:
            MutationResult with the affected-row count and the new rowid

        Raises:
            SchemaNotFoundError: If table doesn't exist
            InvalidRecordError: If the record is empty
            InvalidIdentifierError: If a column is not in the table
        """
        info = self._table(table_name)
        self._validate_record(info, record)

        table = table_clause(info.name, info.columns)
        changes, row_id = self._run(sa.insert(table).values(dict(record)))
        outcome = MutationResult(changes=changes, last_row_id=row_id)
        logger.info("Inserted %d row(s) into %s (rowid=%s)", outcome.changes, table_name, outcome.last_row_id)
        return outcome

    def delete(self, table_name: str, key_value: Any, primary_key: str | None = None) -> int:
        """
        Delete one record by primary key value.

        Returns:
            Number of affected rows

        Raises:
            SchemaNotFoundError: If table doesn't exist
            NoPrimaryKeyError: If no key column can be resolved
        """
        info = self._table(table_name)
        key = self._resolve_key(info, primary_key)

        table = table_clause(info.name, info.columns)
        changes, _ = self._run(sa.delete(table).where(table.c[key] == key_value))
        logger.info("Deleted %d row(s) from %s where %s=%r", changes, table_name, key, key_value)
        return changes
