"""
Shared pytest fixtures and configuration for studiodb tests.
"""

from pathlib import Path

import pytest
import sqlalchemy as sa

from studiodb import (
    ConnectionManager,
    DatabaseService,
    HistoryStore,
    QueryExecutor,
    RecordMutator,
    SchemaInspector,
    Settings,
)

POST_COUNT = 75

SCHEMA = [
    """
    CREATE TABLE wp_posts (
        ID INTEGER PRIMARY KEY AUTOINCREMENT,
        post_title TEXT NOT NULL,
        post_status TEXT DEFAULT 'publish',
        menu_order INTEGER
    )
    """,
    """
    CREATE TABLE wp_options (
        option_id INTEGER PRIMARY KEY,
        option_name TEXT UNIQUE,
        option_value TEXT
    )
    """,
    "CREATE TABLE wp_log (message TEXT, level INTEGER)",
]


def create_database(db_path: Path) -> Path:
    """Create a small WordPress-like SQLite database at ``db_path``."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = sa.create_engine(f"sqlite:///{db_path}")
    with engine.begin() as conn:
        for statement in SCHEMA:
            conn.execute(sa.text(statement))
        conn.execute(
            sa.text("INSERT INTO wp_posts (post_title, menu_order) VALUES (:title, :order)"),
            [{"title": f"Post {i}", "order": i % 7} for i in range(1, POST_COUNT + 1)],
        )
        conn.execute(
            sa.text("INSERT INTO wp_options (option_name, option_value) VALUES (:name, :value)"),
            [
                {"name": "siteurl", "value": "http://localhost:8881"},
                {"name": "blogname", "value": "My Studio Site"},
            ],
        )
        conn.execute(
            sa.text("INSERT INTO wp_log (message, level) VALUES (:message, :level)"),
            [{"message": f"event {i}", "level": i % 3} for i in range(10)],
        )
    engine.dispose()
    return db_path


@pytest.fixture
def database_factory():
    """The create_database helper, for tests that need extra database files."""
    return create_database


@pytest.fixture
def make_installation(tmp_path):
    """Factory creating WordPress Studio installation directories with a database."""

    def _make(name: str = "my-site") -> Path:
        root = tmp_path / "sites" / name
        create_database(root / "wp-content" / "database" / ".ht.sqlite")
        return root

    return _make


@pytest.fixture
def installation(make_installation):
    """Root directory of one installation."""
    return make_installation()


@pytest.fixture
def db_path(installation):
    """Path to the installation's database file."""
    return (installation / "wp-content" / "database" / ".ht.sqlite").resolve()


@pytest.fixture
def settings(tmp_path):
    """Settings writing persistent state under the test's temp directory."""
    return Settings(config_dir=tmp_path / "config", watch_interval=0.05)


@pytest.fixture
def manager(db_path):
    """ConnectionManager with the test database open."""
    manager = ConnectionManager(busy_timeout=1.0)
    manager.open(db_path)
    yield manager
    manager.close()


@pytest.fixture
def schema(manager):
    return SchemaInspector(manager)


@pytest.fixture
def history(tmp_path):
    return HistoryStore(tmp_path / "config" / "recent_installations.json")


@pytest.fixture
def executor(manager, schema, history):
    return QueryExecutor(manager, schema, history)


@pytest.fixture
def mutator(manager, schema):
    return RecordMutator(manager, schema)


@pytest.fixture
def service(settings):
    """DatabaseService with nothing open yet."""
    service = DatabaseService(settings)
    yield service
    service.close()
