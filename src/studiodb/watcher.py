"""
Change notifications for the open database file.
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from .connection import ConnectionManager
from .models import Connection

logger = logging.getLogger(__name__)

Signature = tuple[tuple[int, int] | None, ...]


class _FileWatch(threading.Thread):
    """Polls one database file and its WAL sidecar for mtime or size changes."""

    def __init__(
        self,
        manager: ConnectionManager,
        connection: Connection,
        path: Path,
        on_changed: Callable[[], None],
        interval: float,
    ):
        super().__init__(name=f"studiodb-watch-{path.name}", daemon=True)
        self.manager = manager
        self.connection = connection
        self.path = path
        self.on_changed = on_changed
        self.interval = interval
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._signature = self._snapshot()

    def _snapshot(self) -> Signature | None:
        """File stats, or None when the database file cannot be observed."""
        try:
            main = self.path.stat()
        except OSError:
            return None
        wal_path = self.path.with_name(self.path.name + "-wal")
        try:
            wal = wal_path.stat()
            wal_part = (wal.st_mtime_ns, wal.st_size)
        except OSError:
            wal_part = None
        return (main.st_mtime_ns, main.st_size), wal_part

    def rebaseline(self) -> None:
        with self._state_lock:
            self._signature = self._snapshot()

    def run(self) -> None:
        while not self._stop_event.wait(self.interval):
            signature = self._snapshot()
            if signature is None:
                continue
            with self._state_lock:
                previous, self._signature = self._signature, signature
            if previous is None or previous == signature:
                continue

            if not self.manager.is_current(self.connection):
                logger.debug("Dropping change event for closed database %s", self.path)
                break
            try:
                self.on_changed()
            except Exception:
                logger.exception("Change callback failed for %s", self.path)

    def stop(self) -> None:
        self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout=self.interval + 1.0)


class ChangeWatcher:
    """
    Reports modifications of the open database file.

    Only one watch exists at a time. A watch belongs to the connection that
    was open when it was installed; once that connection is closed or
    replaced its events are dropped.
    """

    def __init__(self, manager: ConnectionManager, interval: float = 0.5):
        self._manager = manager
        self.interval = interval
        self._lock = threading.Lock()
        self._watch: _FileWatch | None = None

    @property
    def watched_path(self) -> Path | None:
        watch = self._watch
        return watch.path if watch is not None else None

    def watch(self, path: str | Path, on_changed: Callable[[], None]) -> None:
        """
        Start watching ``path``, replacing any previous watch.

        Args:
            path: The database file of the open connection
            on_changed: Called once per observed modification, on the watcher thread

        Raises:
            NoActiveConnectionError: If no database is open
        """
        connection = self._manager.current()
        self.unwatch()
        watch = _FileWatch(self._manager, connection, Path(path), on_changed, self.interval)
        with self._lock:
            self._watch = watch
        watch.start()
        logger.info("Watching %s for changes", watch.path)

    def unwatch(self) -> None:
        """Stop the current watch, if any."""
        with self._lock:
            watch, self._watch = self._watch, None
        if watch is not None:
            watch.stop()
            logger.info("Stopped watching %s", watch.path)

    def mark_seen(self) -> None:
        """Accept the file's current state so the session's own writes are not reported."""
        watch = self._watch
        if watch is not None:
            watch.rebaseline()
