"""
Locating the SQLite database inside a WordPress Studio installation.
"""

from pathlib import Path

from .config import Settings, get_settings
from .models import RecentInstallation


def resolve_database_path(root_dir: str | Path, settings: Settings | None = None) -> Path:
    """
    Get the database file path for an installation root.

    Args:
        root_dir: The installation's root directory
        settings: Settings carrying the relative location, defaults to get_settings()

    Returns:
        ``<root>/wp-content/database/.ht.sqlite`` with the default settings
    """
    settings = settings or get_settings()
    root = Path(root_dir).expanduser().resolve()
    return root / settings.database_dir / settings.database_filename


def make_installation(root_dir: str | Path, database_path: str | Path) -> RecentInstallation:
    """Build a RecentInstallation entry named after the root directory."""
    root = Path(root_dir).expanduser().resolve()
    return RecentInstallation(
        root_dir=str(root),
        database_path=str(database_path),
        display_name=root.name or str(root),
    )
