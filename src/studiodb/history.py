"""
Bounded logs of executed queries and recently opened installations.
"""

import logging
import threading
from collections import deque
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from .models import HistoryEntry, RecentInstallation

logger = logging.getLogger(__name__)

_installations_adapter = TypeAdapter(list[RecentInstallation])


class HistoryStore:
    """
    Query history and recent installations, both newest first.

    Query history lives for the session only. The installation list is
    written to ``storage_path`` on every change and read back on start-up.
    """

    def __init__(
        self,
        storage_path: str | Path | None = None,
        query_limit: int = 50,
        installation_limit: int = 5,
    ):
        self.storage_path = Path(storage_path) if storage_path is not None else None
        self.installation_limit = installation_limit
        self._lock = threading.Lock()
        # appendleft on a full deque drops the oldest entry from the right
        self._queries: deque[HistoryEntry] = deque(maxlen=query_limit)
        self._installations: list[RecentInstallation] = self._load()

    @property
    def query_limit(self) -> int:
        return self._queries.maxlen

    def record_query(self, entry: HistoryEntry | str) -> HistoryEntry:
        """Prepend an executed query, evicting the oldest beyond the limit."""
        if isinstance(entry, str):
            entry = HistoryEntry(query=entry)
        with self._lock:
            self._queries.appendleft(entry)
        return entry

    def query_history(self) -> list[HistoryEntry]:
        with self._lock:
            return list(self._queries)

    def clear_query_history(self) -> None:
        with self._lock:
            self._queries.clear()

    def record_installation(self, entry: RecentInstallation) -> list[RecentInstallation]:
        """
        Move or add an installation to the front of the list and persist it.

        Args:
            entry: The installation that was just opened

        Returns:
            The updated list, newest first
        """
        with self._lock:
            remaining = [item for item in self._installations if item.root_dir != entry.root_dir]
            self._installations = [entry, *remaining][: self.installation_limit]
            self._save()
            return list(self._installations)

    def remove_installation(self, root_dir: str | Path) -> list[RecentInstallation]:
        """Remove an installation by root directory. Unknown roots are ignored."""
        key = str(root_dir)
        with self._lock:
            remaining = [item for item in self._installations if item.root_dir != key]
            if len(remaining) != len(self._installations):
                self._installations = remaining
                self._save()
            return list(self._installations)

    def installations(self) -> list[RecentInstallation]:
        with self._lock:
            return list(self._installations)

    def find_installation(self, database_path: str | Path) -> RecentInstallation | None:
        """Find a stored installation by its resolved database path."""
        key = str(database_path)
        with self._lock:
            for item in self._installations:
                if item.database_path == key:
                    return item
        return None

    def _load(self) -> list[RecentInstallation]:
        if self.storage_path is None or not self.storage_path.exists():
            return []
        try:
            items = _installations_adapter.validate_json(self.storage_path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable installation history %s: %s", self.storage_path, e)
            return []
        return items[: self.installation_limit]

    def _save(self) -> None:
        if self.storage_path is None:
            return
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.storage_path.with_suffix(".tmp")
        tmp_path.write_bytes(_installations_adapter.dump_json(self._installations, indent=2))
        tmp_path.replace(self.storage_path)
        logger.debug("Saved %d recent installations to %s", len(self._installations), self.storage_path)
