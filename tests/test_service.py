"""
Tests for the DatabaseService facade.
"""

import sqlite3
import threading
from concurrent.futures import Future
from pathlib import Path

import pytest

from studiodb import (
    DatabaseNotFoundError,
    DatabaseService,
    NoActiveConnectionError,
    PageRequest,
    QueryKind,
)


class TestDatabaseService:
    """Test the request/response operations end to end."""

    def test_open_installation(self, service, installation, db_path):
        """Test opening an installation resolves the database path."""
        future = service.open_installation(installation)
        assert isinstance(future, Future)
        assert future.result() == str(db_path)
        assert service.list_tables().result() == ["wp_log", "wp_options", "wp_posts"]

        recent = service.list_recent_installations().result()
        assert len(recent) == 1
        assert recent[0].root_dir == str(installation.resolve())
        assert recent[0].database_path == str(db_path)
        assert recent[0].display_name == "my-site"

    def test_open_missing_installation(self, service, tmp_path):
        """Test error for a directory without a database."""
        with pytest.raises(DatabaseNotFoundError):
            service.open_installation(tmp_path / "empty-site").result()
        assert service.list_recent_installations().result() == []
        with pytest.raises(NoActiveConnectionError):
            service.list_tables().result()

    def test_recent_installations_cap(self, service, make_installation):
        """Test six installations leave the five newest."""
        roots = [make_installation(name) for name in "ABCDEF"]
        for root in roots:
            service.open_installation(root).result()
        recent = service.list_recent_installations().result()
        assert [item.display_name for item in recent] == ["F", "E", "D", "C", "B"]

        service.open_installation(roots[1]).result()
        recent = service.list_recent_installations().result()
        assert [item.display_name for item in recent] == ["B", "F", "E", "D", "C"]

    def test_open_recent(self, service, make_installation):
        """Test reopening a stored database path moves it to the front."""
        first, second = make_installation("first"), make_installation("second")
        first_db = service.open_installation(first).result()
        service.open_installation(second).result()

        assert service.open_recent(first_db).result() is True
        assert service.get_database_info().result().path == first_db
        assert service.list_recent_installations().result()[0].display_name == "first"

    def test_remove_recent_installation(self, service, make_installation):
        root = make_installation("gone")
        service.open_installation(root).result()
        assert service.remove_recent_installation(root).result() == []
        assert service.remove_recent_installation(root).result() == []

    def test_recent_installations_survive_restart(self, settings, installation):
        with DatabaseService(settings) as service:
            service.open_installation(installation).result()
            service.execute("SELECT 1").result()
        with DatabaseService(settings) as service:
            assert [i.display_name for i in service.list_recent_installations().result()] == ["my-site"]
            assert service.get_query_history().result() == []

    def test_database_info(self, service, installation, db_path):
        service.open_installation(installation).result()
        info = service.get_database_info().result()
        assert info.path == str(db_path)
        assert info.size == db_path.stat().st_size
        assert info.sqlite_version == sqlite3.sqlite_version
        assert info.table_count == 3
        assert info.readonly is False

    def test_database_info_requires_connection(self, service):
        with pytest.raises(NoActiveConnectionError):
            service.get_database_info().result()

    def test_fetch_page_uses_configured_page_size(self, settings, installation):
        settings.page_size = 20
        with DatabaseService(settings) as service:
            service.open_installation(installation).result()
            result = service.fetch_page("wp_posts", page=2, sort_column="ID", sort_direction="desc").result()
            assert len(result.rows) == 20
            assert result.rows[0]["ID"] == 55
            assert result.total == 75

    def test_update_then_fetch(self, service, installation):
        service.open_installation(installation).result()
        assert service.update_record("wp_posts", {"ID": 5, "post_title": "y"}).result() == 1
        page = service.fetch_page(PageRequest(table="wp_posts", page_size=5)).result()
        assert page.rows[4] == {"ID": 5, "post_title": "y", "post_status": "publish", "menu_order": 5}

    def test_insert_and_delete(self, service, installation):
        service.open_installation(installation).result()
        inserted = service.insert_record("wp_options", {"option_name": "home", "option_value": "x"}).result()
        assert inserted.changes == 1
        assert service.delete_record("wp_options", inserted.last_row_id).result() == 1

    def test_execute_and_history(self, service, installation):
        service.open_installation(installation).result()
        result = service.execute("UPDATE wp_posts SET menu_order = 1 WHERE 0").result()
        assert result.kind is QueryKind.WRITE
        assert result.changes == 0
        history = service.get_query_history().result()
        assert [entry.query for entry in history] == ["UPDATE wp_posts SET menu_order = 1 WHERE 0"]

    def test_cte_write_is_marked_seen(self, service, installation):
        """Test a WITH ... DELETE through the service counts as the session's own write."""
        service.open_installation(installation).result()
        result = service.execute(
            "WITH doomed AS (SELECT ID FROM wp_posts WHERE ID <= 3) "
            "DELETE FROM wp_posts WHERE ID IN (SELECT ID FROM doomed)"
        ).result()
        assert result.kind is QueryKind.WRITE
        assert result.changes == 3
        watch = service.watcher._watch
        assert watch._signature == watch._snapshot()

    def test_table_info(self, service, installation):
        service.open_installation(installation).result()
        info = service.get_table_info("wp_options", with_count=True).result()
        assert info.row_count == 2
        assert info.primary_key == "option_id"

    def test_export(self, service, installation, tmp_path):
        service.open_installation(installation).result()
        assert service.export_table_to_csv("wp_options", tmp_path / "options.csv").result() == 2

    def test_change_subscription(self, service, installation, db_path):
        """Test subscribers hear about external writes."""
        seen = []
        changed = threading.Event()

        def on_change(path):
            seen.append(path)
            changed.set()

        service.subscribe(on_change)
        service.open_installation(installation).result()

        conn = sqlite3.connect(db_path)
        with conn:
            conn.executemany("INSERT INTO wp_log VALUES (?, ?)", [("y" * 500, 2) for _ in range(50)])
        conn.close()

        assert changed.wait(timeout=5)
        assert seen[0] == str(db_path)
        service.unsubscribe(on_change)
        service.unsubscribe(on_change)

    def test_disconnect(self, service, installation):
        service.open_installation(installation).result()
        service.disconnect().result()
        assert service.watcher.watched_path is None
        with pytest.raises(NoActiveConnectionError):
            service.list_tables().result()

    def test_close_is_idempotent(self, settings):
        service = DatabaseService(settings)
        service.close()
        service.close()
        with pytest.raises(RuntimeError):
            service.list_tables()

    def test_installation_path_layout(self, service, installation):
        db_path = Path(service.open_installation(installation).result())
        assert db_path.parts[-3:] == ("wp-content", "database", ".ht.sqlite")
