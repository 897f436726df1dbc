"""
Request/response facade over the database components.

Every operation runs on one background worker and returns a
``concurrent.futures.Future``, so an interactive caller never blocks on
SQLite and operations never overlap.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any

from sqlalchemy import text

from .config import Settings, get_settings
from .connection import ConnectionManager
from .history import HistoryStore
from .installation import make_installation, resolve_database_path
from .models import (
    ColumnInfo,
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
from .query import QueryExecutor
from .schema import SchemaInspector
from .watcher import ChangeWatcher

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]


class DatabaseService:
    """
    Main entry point for browsing and editing a WordPress Studio database.

    Example::

        with DatabaseService() as service:
            service.open_installation("~/Studio/my-site").result()
            page = service.fetch_page("wp_posts", sort_column="ID").result()
    """

    def __init__(self, settings: Settings | None = None, history: HistoryStore | None = None):
        self.settings = settings or get_settings()
        self.connections = ConnectionManager(busy_timeout=self.settings.busy_timeout)
        self.schema = SchemaInspector(self.connections)
        self.history = history or HistoryStore(
            self.settings.installations_file,
            query_limit=self.settings.query_history_limit,
            installation_limit=self.settings.recent_installations_limit,
        )
        self.queries = QueryExecutor(self.connections, self.schema, self.history)
        self.records = RecordMutator(self.connections, self.schema)
        self.watcher = ChangeWatcher(self.connections, interval=self.settings.watch_interval)

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="studiodb")
        self._subscribers: list[ChangeCallback] = []
        self._subscribers_lock = threading.Lock()
        self._closed = False

    def _submit(self, fn: Callable[..., Any], *args, **kwargs) -> Future:
        return self._executor.submit(fn, *args, **kwargs)

    # Connections

    def open_installation(self, root_dir: str | Path) -> "Future[str]":
        """Open ``<root>/wp-content/database/.ht.sqlite``; resolves to the database path."""
        return self._submit(self._open_installation, root_dir)

    def _open_installation(self, root_dir: str | Path) -> str:
        db_path = resolve_database_path(root_dir, self.settings)
        self._open(db_path)
        self.history.record_installation(make_installation(root_dir, db_path))
        return str(db_path)

    def open_recent(self, database_path: str | Path, readonly: bool = False) -> "Future[bool]":
        """Reopen a database path stored in the recent installations."""
        return self._submit(self._open_recent, database_path, readonly)

    def _open_recent(self, database_path: str | Path, readonly: bool) -> bool:
        connection = self._open(database_path, readonly=readonly)
        entry = self.history.find_installation(connection.path)
        if entry is not None:
            self.history.record_installation(replace(entry, timestamp=datetime.now(timezone.utc)))
        return True

    def _open(self, db_path: str | Path, readonly: bool = False):
        self.watcher.unwatch()
        connection = self.connections.open(db_path, readonly=readonly)
        self.watcher.watch(connection.path, partial(self._notify_changed, str(connection.path)))
        return connection

    def disconnect(self) -> "Future[None]":
        """Close the open database, keeping the service usable."""
        return self._submit(self._disconnect)

    def _disconnect(self) -> None:
        self.watcher.unwatch()
        self.connections.close()

    # Recent installations and history

    def list_recent_installations(self) -> "Future[list[RecentInstallation]]":
        return self._submit(self.history.installations)

    def remove_recent_installation(self, root_dir: str | Path) -> "Future[list[RecentInstallation]]":
        return self._submit(self.history.remove_installation, str(Path(root_dir).expanduser().resolve()))

    def get_query_history(self) -> "Future[list[HistoryEntry]]":
        return self._submit(self.history.query_history)

    # Schema

    def list_tables(self) -> "Future[list[str]]":
        return self._submit(self.schema.list_tables)

    def describe_table(self, table_name: str) -> "Future[list[ColumnInfo]]":
        return self._submit(self.schema.describe_table, table_name)

    def get_table_info(self, table_name: str, with_count: bool = False) -> "Future[TableInfo]":
        return self._submit(self.schema.get_table_info, table_name, with_count)

    def get_database_info(self) -> "Future[DatabaseInfo]":
        return self._submit(self._database_info)

    def _database_info(self) -> DatabaseInfo:
        connection = self.connections.current()
        stat = connection.path.stat()
        with self.connections.connect() as conn:
            version = conn.execute(text("SELECT sqlite_version()")).scalar_one()
        return DatabaseInfo(
            path=str(connection.path),
            size=stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            sqlite_version=version,
            table_count=len(self.schema.list_tables()),
            readonly=connection.readonly,
        )

    # Queries

    def fetch_page(
        self,
        request: PageRequest | str,
        page: int = 1,
        page_size: int | None = None,
        sort_column: str | None = None,
        sort_direction: SortDirection | str = SortDirection.ASC,
    ) -> "Future[QueryResult]":
        """
        Read one page of a table.

        Takes either a PageRequest or a table name plus paging arguments; the
        page size defaults to the configured one.
        """
        if isinstance(request, str):
            request = PageRequest(
                table=request,
                page=page,
                page_size=page_size or self.settings.page_size,
                sort_column=sort_column,
                sort_direction=sort_direction,
            )
        return self._submit(self.queries.fetch_page, request)

    def execute(self, sql: str) -> "Future[QueryResult]":
        return self._submit(self._execute, sql)

    def _execute(self, sql: str) -> QueryResult:
        result = self.queries.execute(sql)
        if result.kind is QueryKind.WRITE:
            self.watcher.mark_seen()
        return result

    def export_table_to_csv(self, table_name: str, output_path: str | Path, chunksize: int | None = None) -> "Future[int]":
        return self._submit(self.queries.export_table_to_csv, table_name, output_path, chunksize)

    # Records

    def update_record(
        self, table_name: str, record: Mapping[str, Any], primary_key: str | None = None
    ) -> "Future[int]":
        return self._submit(self._write, self.records.update, table_name, record, primary_key)

    def insert_record(self, table_name: str, record: Mapping[str, Any]) -> "Future[MutationResult]":
        return self._submit(self._write, self.records.insert, table_name, record)

    def delete_record(self, table_name: str, key_value: Any, primary_key: str | None = None) -> "Future[int]":
        return self._submit(self._write, self.records.delete, table_name, key_value, primary_key)

    def _write(self, fn: Callable[..., Any], *args) -> Any:
        outcome = fn(*args)
        self.watcher.mark_seen()
        return outcome

    # Change notifications

    def subscribe(self, callback: ChangeCallback) -> None:
        """Register ``callback(database_path)`` for external changes to the open database."""
        with self._subscribers_lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: ChangeCallback) -> None:
        with self._subscribers_lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _notify_changed(self, database_path: str) -> None:
        logger.info("Database %s changed outside this session", database_path)
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(database_path)
            except Exception:
                logger.exception("Change subscriber %r failed", callback)

    def close(self) -> None:
        """Close the database and stop the worker thread."""
        if self._closed:
            return
        self._closed = True
        try:
            self._submit(self._disconnect).result()
        finally:
            self._executor.shutdown(wait=True)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
